from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from .errors import FileConversionError, UnknownFileType, error_kind
from .value_types import FILE_TYPES, FileKey, FileType, OutputKind, Stamp


@dataclass(slots=True, frozen=True)
class SourceFileDescriptor:
    key: FileKey
    file_type: FileType
    stamp: Stamp
    timestamp: datetime
    size: int = 0

    @classmethod
    def from_key(cls, key: str, size: int = 0) -> "SourceFileDescriptor":
        """Parse `<type>.<millis>.<ext>`; only the base name of `key` is inspected."""
        name = key.rsplit("/", 1)[-1]
        parts = name.split(".")
        if len(parts) < 2 or parts[0] not in FILE_TYPES:
            raise UnknownFileType(f"not a known source file: {key!r}")
        try:
            ts = datetime.fromtimestamp(int(parts[1]) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise UnknownFileType(f"bad timestamp token in {key!r}") from e
        return cls(key=FileKey(key), file_type=parts[0], stamp=Stamp(parts[1]), timestamp=ts, size=size)  # type: ignore[arg-type]


# ---------- decoded source records ---------------------------------------------

@dataclass(slots=True, frozen=True)
class BeaconReq:
    pub_key: bytes
    frequency: int
    channel: int
    tx_power: int
    timestamp: int
    tmst: int

@dataclass(slots=True, frozen=True)
class WitnessReq:
    pub_key: bytes
    timestamp: int
    tmst: int
    signal: int
    snr: int
    frequency: int

@dataclass(slots=True, frozen=True)
class BeaconReport:
    received_timestamp: int
    location: str
    report: BeaconReq | None

@dataclass(slots=True, frozen=True)
class WitnessReport:
    received_timestamp: int
    location: str
    report: WitnessReq | None

@dataclass(slots=True, frozen=True)
class PocRecord:
    poc_id: bytes
    beacon_report: BeaconReport | None
    selected_witnesses: tuple[WitnessReport, ...] = ()
    unselected_witnesses: tuple[WitnessReport, ...] = ()

@dataclass(slots=True, frozen=True)
class GatewayRewardShare:
    hotspot_key: bytes
    beacon_amount: int
    witness_amount: int
    start_period: int
    end_period: int


# ---------- output rows ----------------------------------------------------------

@dataclass(slots=True, frozen=True)
class BeaconRow:
    poc_id: bytes
    ingest_time: int
    beacon_location: int
    pub_key: bytes
    frequency: int
    channel: int
    tx_power: int
    timestamp: int
    tmst: int

@dataclass(slots=True, frozen=True)
class WitnessRow:
    poc_id: bytes
    pub_key: bytes
    ingest_time: int
    witness_location: int
    timestamp: int
    tmst: int
    signal: int
    snr: int
    frequency: int
    selected: bool


# ---------- artifacts and outcomes -----------------------------------------------

@dataclass(slots=True, frozen=True)
class OutputArtifact:
    path: str
    kind: OutputKind

@dataclass(slots=True, frozen=True)
class ConvertedFile:
    descriptor: SourceFileDescriptor
    artifacts: tuple[OutputArtifact, ...]
    rows: dict[str, int] = field(default_factory=dict)

@dataclass(slots=True, frozen=True)
class FileOutcome:
    key: str
    artifacts: tuple[OutputArtifact, ...] = ()
    error: FileConversionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> str | None:
        return None if self.error is None else error_kind(self.error)

@dataclass(slots=True)
class RunSummary:
    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def as_dict(self) -> dict[str, int]:
        return {
            "files": len(self.outcomes),
            "processed_ok": len(self.succeeded),
            "processed_failed": len(self.failed),
            "artifacts": sum(len(o.artifacts) for o in self.succeeded),
        }
