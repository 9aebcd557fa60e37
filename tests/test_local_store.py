from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pyarrow.parquet as pq
import pytest

from fakes import poc_payload, witness
from oracle_parquet.adapters.framing import encode_frames
from oracle_parquet.adapters.s3_store import LocalObjectStore, S3ObjectStore, build_store
from oracle_parquet.application.handler import Handler, HistoryMode
from oracle_parquet.domain.errors import UnknownFileType
from oracle_parquet.domain.models import SourceFileDescriptor
from oracle_parquet.settings import load_settings

AFTER = datetime(2022, 12, 21, tzinfo=timezone.utc)
BEFORE = datetime(2022, 12, 22, tzinfo=timezone.utc)
STAMP = "1671643842138"


def _seed(root) -> None:
    root.mkdir()
    body = encode_frames([poc_payload(selected=[witness(b"s")], unselected=[witness(b"u"), witness(b"v")])])
    (root / f"iot_poc.{STAMP}.gz").write_bytes(body)
    (root / "iot_poc.1671000000000.gz").write_bytes(body)   # before the window
    (root / "notes.txt").write_text("ignored")


def test_local_store_lists_and_streams(tmp_path) -> None:
    _seed(tmp_path / "in")
    store = LocalObjectStore(tmp_path / "in")
    listed = asyncio.run(store.list_all("iot_poc", AFTER, BEFORE))
    assert [d.key for d in listed] == [f"iot_poc.{STAMP}.gz"]

    async def collect() -> list[bytes]:
        return [p async for p in store.stream(listed[0].key)]
    assert len(asyncio.run(collect())) == 1


def test_build_store_picks_backend(tmp_path) -> None:
    assert isinstance(build_store(str(tmp_path)), LocalObjectStore)
    s3 = build_store("s3://bucket/some/prefix", region="us-west-2")
    assert isinstance(s3, S3ObjectStore)
    assert (s3.bucket, s3.prefix) == ("bucket", "some/prefix")


def test_history_end_to_end_on_local_dirs(tmp_path) -> None:
    _seed(tmp_path / "in")
    settings = load_settings(None, environ={
        "LAMBDA_PARQUET_INGEST__ROOT": str(tmp_path / "in"),
        "LAMBDA_PARQUET_OUTPUT__ROOT": str(tmp_path / "out"),
        "LAMBDA_PARQUET_OUTPUT_PATH": str(tmp_path / "scratch"),
        "LAMBDA_PARQUET_WORKERS": "2",
    })
    summary = asyncio.run(Handler(settings, HistoryMode(AFTER, BEFORE)).run())

    assert summary.exit_code == 0
    witnesses = pq.read_table(tmp_path / "out" / "valid_witness" / f"valid_witnesses.{STAMP}.parquet")
    assert witnesses.column("selected").to_pylist() == [True, False, False]
    assert (tmp_path / "out" / "valid_beacon" / f"valid_beacons.{STAMP}.parquet").exists()
    assert list((tmp_path / "scratch").iterdir()) == []


def test_oversized_stamp_is_skipped_when_listing(tmp_path) -> None:
    _seed(tmp_path / "in")
    (tmp_path / "in" / "iot_poc.99999999999999999.gz").write_bytes(b"")
    listed = asyncio.run(LocalObjectStore(tmp_path / "in").list_all("iot_poc", AFTER, BEFORE))
    assert [d.key for d in listed] == [f"iot_poc.{STAMP}.gz"]


def test_oversized_stamp_is_not_a_source_key() -> None:
    with pytest.raises(UnknownFileType):
        SourceFileDescriptor.from_key("iot_poc.99999999999999999.gz")
