from __future__ import annotations
import asyncio
import logging
from datetime import datetime

from ..domain.errors import FileConversionError
from ..domain.models import FileOutcome, RunSummary, SourceFileDescriptor
from ..domain.value_types import RunState
from ..ports.store import SourceStore
from .converter import FileConverter
from .upload import UploadLifecycle
from .use_cases import convert_and_publish

log = logging.getLogger(__name__)


class HistoricalOrchestrator:
    """
    Backfill every file of one type in [after, before) with at most `workers`
    files in flight. idle -> listing -> converting -> done.
    """
    def __init__(
        self,
        store: SourceStore,
        converter: FileConverter,
        uploader: UploadLifecycle | None,
        workers: int,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.store = store
        self.converter = converter
        self.uploader = uploader
        self.workers = workers
        self.state: RunState = "idle"

    def _enter(self, state: RunState) -> None:
        log.debug("history: %s -> %s", self.state, state)
        self.state = state

    async def run(self, file_type: str, after: datetime, before: datetime) -> RunSummary:
        if after >= before:
            raise ValueError(f"empty window: after={after.isoformat()} before={before.isoformat()}")
        log.debug("after_ts: %s", after.isoformat())
        log.debug("before_ts: %s", before.isoformat())

        self._enter("listing")
        files = await self.store.list_all(file_type, after, before)
        log.info("listed %d %s files in [%s, %s)", len(files), file_type, after.isoformat(), before.isoformat())

        self._enter("converting")
        sem = asyncio.Semaphore(self.workers)

        async def worker(desc: SourceFileDescriptor) -> FileOutcome:
            async with sem:
                log.debug("parsing %s with timestamp: %s", desc.file_type, desc.stamp)
                try:
                    return await convert_and_publish(desc, converter=self.converter, uploader=self.uploader)
                except FileConversionError as e:
                    log.error("file failed: %s", e)
                    return FileOutcome(key=desc.key, error=e)

        outcomes = await asyncio.gather(*(asyncio.create_task(worker(d)) for d in files))
        summary = RunSummary(outcomes=list(outcomes))
        self._enter("done")

        for o in summary.failed:
            log.warning("failed %s (%s)", o.key, o.error_kind)
        log.info("history summary: %s", summary.as_dict())
        return summary
