from __future__ import annotations
import asyncio
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..domain.errors import StoreError, UnknownFileType
from ..domain.models import SourceFileDescriptor
from ..ports.store import DestinationStore, SourceStore
from .framing import decode_frames

log = logging.getLogger(__name__)


def _millis(ts: datetime) -> int:
    return int(ts.timestamp() * 1000)


def _in_window(desc: SourceFileDescriptor, after: datetime, before: datetime) -> bool:
    return after <= desc.timestamp < before


class S3ObjectStore(SourceStore, DestinationStore):
    """
    boto3-backed store. Blocking client calls run in worker threads so that
    many per-file tasks can wait on S3 at once.
    """
    def __init__(self, bucket: str, prefix: str = "", *, region: str | None = None,
                 endpoint_url: str | None = None, max_pool: int = 32) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=BotoConfig(max_pool_connections=max_pool, retries={"max_attempts": 5, "mode": "standard"}),
        )

    def _key(self, relative: str) -> str:
        relative = relative.lstrip("/")
        return f"{self.prefix}/{relative}" if self.prefix else relative

    def _list_keys(self, prefix: str, start_after: str) -> list[tuple[str, int]]:
        paginator = self._client.get_paginator("list_objects_v2")
        out: list[tuple[str, int]] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, StartAfter=start_after):
            for item in page.get("Contents", []):
                out.append((item["Key"], int(item.get("Size", 0))))
        return out

    async def list_all(self, file_type: str, after: datetime, before: datetime) -> list[SourceFileDescriptor]:
        prefix = self._key(f"{file_type}.")
        start_after = self._key(f"{file_type}.{_millis(after)}")
        try:
            listed = await asyncio.to_thread(self._list_keys, prefix, start_after)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"list s3://{self.bucket}/{prefix}*: {e}") from e
        found: list[SourceFileDescriptor] = []
        for key, size in listed:
            try:
                desc = SourceFileDescriptor.from_key(key, size)
            except UnknownFileType:
                log.debug("skipping unparseable key %s", key)
                continue
            if desc.file_type == file_type and _in_window(desc, after, before):
                found.append(desc)
        found.sort(key=lambda d: d.timestamp)
        return found

    def _get_body(self, key: str) -> bytes:
        resp = self._client.get_object(Bucket=self.bucket, Key=key)
        return resp["Body"].read()

    async def stream(self, key: str) -> AsyncIterator[bytes]:
        try:
            body = await asyncio.to_thread(self._get_body, key)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"get s3://{self.bucket}/{key}: {e}") from e
        for payload in decode_frames(body):
            yield payload

    async def put(self, local_path: str, key: str) -> None:
        dest = self._key(key)
        try:
            await asyncio.to_thread(self._client.upload_file, local_path, self.bucket, dest)
        except (ClientError, BotoCoreError, OSError) as e:
            raise StoreError(f"put s3://{self.bucket}/{dest}: {e}") from e
        log.debug("uploaded %s -> s3://%s/%s", local_path, self.bucket, dest)


class LocalObjectStore(SourceStore, DestinationStore):
    """Directory-backed store with the same key layout; for local runs and tests."""
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / key.lstrip("/")

    async def list_all(self, file_type: str, after: datetime, before: datetime) -> list[SourceFileDescriptor]:
        if not self.root.is_dir():
            raise StoreError(f"no such store directory: {self.root}")
        found: list[SourceFileDescriptor] = []
        for p in sorted(self.root.glob(f"{file_type}.*")):
            try:
                desc = SourceFileDescriptor.from_key(p.name, p.stat().st_size)
            except UnknownFileType:
                continue
            if desc.file_type == file_type and _in_window(desc, after, before):
                found.append(desc)
        found.sort(key=lambda d: d.timestamp)
        return found

    async def stream(self, key: str) -> AsyncIterator[bytes]:
        try:
            body = await asyncio.to_thread(self._path(key).read_bytes)
        except OSError as e:
            raise StoreError(f"get {self._path(key)}: {e}") from e
        for payload in decode_frames(body):
            yield payload

    async def put(self, local_path: str, key: str) -> None:
        dest = self._path(key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, local_path, dest)
        except OSError as e:
            raise StoreError(f"put {dest}: {e}") from e


def build_store(root: str, *, region: str | None = None, endpoint_url: str | None = None) -> Any:
    """`s3://bucket/prefix` -> S3ObjectStore; anything else is a local directory."""
    if root.startswith("s3://"):
        parsed = urlparse(root)
        if not parsed.netloc:
            raise ValueError(f"s3 root missing bucket: {root!r}")
        return S3ObjectStore(parsed.netloc, parsed.path.lstrip("/"), region=region, endpoint_url=endpoint_url)
    return LocalObjectStore(os.path.expanduser(root))
