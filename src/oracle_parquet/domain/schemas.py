from __future__ import annotations
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable

import pyarrow as pa


def _wrap(bits: int) -> Callable[[int], int]:
    """Two's-complement truncation to `bits`; no overflow check."""
    mask = (1 << bits) - 1
    sign = 1 << (bits - 1)
    def narrow(v: int) -> int:
        v = int(v) & mask
        return v - (1 << bits) if v & sign else v
    return narrow

to_int32 = _wrap(32)
to_int64 = _wrap(64)

_NARROW: dict[pa.DataType, Callable[[Any], Any]] = {
    pa.int32(): to_int32,
    pa.int64(): to_int64,
    pa.bool_(): bool,
    pa.binary(): bytes,
}


@dataclass(slots=True, frozen=True)
class ColumnSpec:
    name: str
    type: pa.DataType
    accessor: Callable[[Any], Any]

    def value(self, row: Any) -> Any:
        v = self.accessor(row)
        narrow = _NARROW.get(self.type)
        return narrow(v) if narrow is not None else v


def _col(name: str, typ: pa.DataType) -> ColumnSpec:
    return ColumnSpec(name, typ, attrgetter(name))


@dataclass(slots=True, frozen=True)
class OutputSchema:
    name: str
    columns: tuple[ColumnSpec, ...]

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    def arrow(self) -> pa.Schema:
        return pa.schema([pa.field(c.name, c.type, nullable=False) for c in self.columns])


# Column order is the physical order in the written file.
BEACON_SCHEMA = OutputSchema("valid_beacons", (
    _col("poc_id",          pa.binary()),
    _col("ingest_time",     pa.int64()),
    _col("beacon_location", pa.int64()),
    _col("pub_key",         pa.binary()),
    _col("frequency",       pa.int64()),
    _col("channel",         pa.int32()),
    _col("tx_power",        pa.int32()),
    _col("timestamp",       pa.int64()),
    _col("tmst",            pa.int32()),
))

WITNESS_SCHEMA = OutputSchema("valid_witnesses", (
    _col("poc_id",           pa.binary()),
    _col("pub_key",          pa.binary()),
    _col("ingest_time",      pa.int64()),
    _col("witness_location", pa.int64()),
    _col("timestamp",        pa.int64()),
    _col("tmst",             pa.int32()),
    _col("signal",           pa.int32()),
    _col("snr",              pa.int32()),
    _col("frequency",        pa.int64()),
    _col("selected",         pa.bool_()),
))

GATEWAY_REWARD_SHARE_SCHEMA = OutputSchema("gateway_reward_share", (
    _col("hotspot_key",    pa.binary()),
    _col("beacon_amount",  pa.int64()),
    _col("witness_amount", pa.int64()),
    _col("start_period",   pa.int64()),
    _col("end_period",     pa.int64()),
))
