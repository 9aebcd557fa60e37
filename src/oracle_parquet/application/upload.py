from __future__ import annotations
import logging
import os
from typing import Iterable

from ..domain.models import OutputArtifact
from ..ports.store import DestinationStore

log = logging.getLogger(__name__)


def destination_key(artifact: OutputArtifact) -> str:
    return f"{artifact.kind}/{os.path.basename(artifact.path)}"


class UploadLifecycle:
    """Publish finished artifacts, then remove their local files."""

    def __init__(self, store: DestinationStore) -> None:
        self.store = store

    async def publish(self, artifact: OutputArtifact) -> str:
        key = destination_key(artifact)
        await self.store.put(artifact.path, key)
        log.info("uploaded %s", key)
        return key

    def cleanup(self, artifacts: Iterable[OutputArtifact]) -> None:
        for a in artifacts:
            try:
                os.remove(a.path)
            except FileNotFoundError:
                log.debug("already gone: %s", a.path)

    async def publish_all(self, artifacts: Iterable[OutputArtifact]) -> list[str]:
        """
        Upload in order; each artifact is deleted right after its own upload.
        A failed upload raises and leaves that file (and any not yet tried) on disk.
        """
        keys: list[str] = []
        for a in artifacts:
            keys.append(await self.publish(a))
            self.cleanup([a])
        return keys
