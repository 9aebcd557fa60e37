# oracle_parquet/ports/store.py
from __future__ import annotations

from datetime import datetime
from typing import AsyncIterator, Protocol
from ..domain.models import SourceFileDescriptor


class SourceStore(Protocol):
    """Port for the bucket holding length-delimited source files."""

    async def list_all(
        self,
        file_type: str,
        after: datetime,
        before: datetime,
    ) -> list[SourceFileDescriptor]:
        """Every file of `file_type` whose timestamp falls in [after, before), oldest first."""

    def stream(self, key: str) -> AsyncIterator[bytes]:
        """Yield each framed message payload of `key`, in file order."""


class DestinationStore(Protocol):
    """Port for the bucket receiving finished Parquet files."""

    async def put(self, local_path: str, key: str) -> None:
        """Upload the file at `local_path` under object key `key`."""
