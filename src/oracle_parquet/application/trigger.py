from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import unquote_plus

from ..domain.errors import FileConversionError, InvalidEvent, UnknownFileType
from ..domain.models import FileOutcome, SourceFileDescriptor
from ..ports.decoder import RecordDecoder
from ..ports.store import SourceStore
from .converter import FileConverter
from .upload import UploadLifecycle
from .use_cases import convert_and_publish

log = logging.getLogger(__name__)

StoreFactory = Callable[[str, str | None], SourceStore]


@dataclass(slots=True, frozen=True)
class S3ObjectRef:
    bucket: str
    key: str
    region: str | None


def parse_event(event: Mapping[str, Any]) -> S3ObjectRef:
    """Only Records[0] is read; later records are ignored."""
    records = event.get("Records") if isinstance(event, Mapping) else None
    if not records:
        raise InvalidEvent("event has no Records")
    first = records[0]
    try:
        s3 = first["s3"]
        bucket = s3["bucket"]["name"]
        key = unquote_plus(s3["object"]["key"])
    except (KeyError, TypeError) as e:
        raise InvalidEvent(f"Records[0] is missing s3 bucket/object: {e}") from e
    if len(records) > 1:
        log.warning("event carries %d records; only the first is handled", len(records))
    return S3ObjectRef(bucket=bucket, key=key, region=first.get("awsRegion"))


class TriggerHandler:
    """Convert the single file named by an S3 object-created event."""

    def __init__(
        self,
        store_factory: StoreFactory,
        decoder: RecordDecoder,
        uploader: UploadLifecycle | None,
        output_dir: str,
        file_type: str,
    ) -> None:
        self.store_factory = store_factory
        self.decoder = decoder
        self.uploader = uploader
        self.output_dir = output_dir
        self.file_type = file_type

    async def handle_event(self, event: Mapping[str, Any]) -> FileOutcome | None:
        ref = parse_event(event)
        try:
            desc = SourceFileDescriptor.from_key(ref.key)
        except UnknownFileType:
            log.info("ignoring %s: not a source file", ref.key)
            return None
        if desc.file_type != self.file_type:
            log.info("ignoring %s: type %s, want %s", ref.key, desc.file_type, self.file_type)
            return None

        try:
            store = self.store_factory(ref.bucket, ref.region)
        except Exception as e:
            raise FileConversionError(ref.key, e) from e
        converter = FileConverter(store, self.decoder, self.output_dir)
        outcome = await convert_and_publish(desc, converter=converter, uploader=self.uploader)
        log.info("current: %s -> %d artifacts", ref.key, len(outcome.artifacts))
        return outcome
