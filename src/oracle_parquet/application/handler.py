from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ..adapters.proto_decoder import ProtobufDecoder
from ..adapters.s3_store import S3ObjectStore, build_store
from ..domain.models import FileOutcome, RunSummary
from ..settings import Settings
from .converter import FileConverter
from .orchestrator import HistoricalOrchestrator
from .trigger import TriggerHandler
from .upload import UploadLifecycle

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HistoryMode:
    after: datetime
    before: datetime

@dataclass(slots=True, frozen=True)
class CurrentMode:
    event: Mapping[str, Any]

Mode = HistoryMode | CurrentMode


class Handler:
    def __init__(self, settings: Settings, mode: Mode) -> None:
        self.settings = settings
        self.mode = mode
        self.decoder = ProtobufDecoder()
        self.uploader = self._uploader()

    def _uploader(self) -> UploadLifecycle | None:
        out = self.settings.output
        if out is None:
            log.warning("no output store configured; parquet files stay in %s", self.settings.output_path)
            return None
        return UploadLifecycle(build_store(out.root, region=out.region, endpoint_url=out.endpoint))

    def _event_store(self, bucket: str, region: str | None) -> S3ObjectStore:
        ingest = self.settings.ingest
        return S3ObjectStore(bucket, region=region or ingest.region, endpoint_url=ingest.endpoint)

    async def run(self) -> RunSummary | FileOutcome | None:
        match self.mode:
            case HistoryMode(after=after, before=before):
                return await self.handle_history(after, before)
            case CurrentMode(event=event):
                return await self.handle_current(event)
        raise TypeError(f"unknown mode: {self.mode!r}")

    async def handle_history(self, after: datetime, before: datetime) -> RunSummary:
        ingest = self.settings.ingest
        store = build_store(ingest.root, region=ingest.region, endpoint_url=ingest.endpoint)
        orchestrator = HistoricalOrchestrator(
            store=store,
            converter=FileConverter(store, self.decoder, self.settings.output_path),
            uploader=self.uploader,
            workers=self.settings.workers,
        )
        return await orchestrator.run(self.settings.file_type, after, before)

    async def handle_current(self, event: Mapping[str, Any]) -> FileOutcome | None:
        trigger = TriggerHandler(
            store_factory=self._event_store,
            decoder=self.decoder,
            uploader=self.uploader,
            output_dir=self.settings.output_path,
            file_type=self.settings.file_type,
        )
        return await trigger.handle_event(event)
