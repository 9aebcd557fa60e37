from __future__ import annotations
import logging

from ..domain.errors import FileConversionError
from ..domain.models import FileOutcome, SourceFileDescriptor
from .converter import FileConverter
from .upload import UploadLifecycle

log = logging.getLogger(__name__)


async def convert_and_publish(
    desc: SourceFileDescriptor,
    *,
    converter: FileConverter,
    uploader: UploadLifecycle | None,
) -> FileOutcome:
    """
    Convert one source file and push its outputs. Raises FileConversionError
    naming the key; `uploader=None` keeps the local files and skips the upload.
    """
    converted = await converter.convert(desc)
    log.info("converted %s rows=%s", desc.key, converted.rows)
    if uploader is not None:
        try:
            await uploader.publish_all(converted.artifacts)
        except Exception as e:
            raise FileConversionError(desc.key, e) from e
    return FileOutcome(key=desc.key, artifacts=converted.artifacts)
