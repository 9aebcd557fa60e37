from __future__ import annotations

import asyncio

import pytest

from fakes import FakeDestinationStore
from oracle_parquet.application.upload import UploadLifecycle, destination_key
from oracle_parquet.domain.errors import StoreError
from oracle_parquet.domain.models import OutputArtifact


def _artifact(tmp_path, name: str, kind: str) -> OutputArtifact:
    p = tmp_path / name
    p.write_bytes(b"PAR1")
    return OutputArtifact(str(p), kind)


def test_destination_key_uses_kind_folder_and_file_name() -> None:
    a = OutputArtifact("/tmp/x/valid_beacons.1.parquet", "valid_beacon")
    assert destination_key(a) == "valid_beacon/valid_beacons.1.parquet"


def test_publish_then_cleanup(tmp_path) -> None:
    dest = FakeDestinationStore()
    up = UploadLifecycle(dest)
    a = _artifact(tmp_path, "valid_witnesses.1.parquet", "valid_witness")
    keys = asyncio.run(up.publish_all([a]))
    assert keys == ["valid_witness/valid_witnesses.1.parquet"]
    assert dest.objects[keys[0]] == b"PAR1"
    assert not (tmp_path / "valid_witnesses.1.parquet").exists()


def test_failed_upload_keeps_local_file(tmp_path) -> None:
    up = UploadLifecycle(FakeDestinationStore(fail_kinds={"valid_beacon"}))
    a = _artifact(tmp_path, "valid_beacons.1.parquet", "valid_beacon")
    b = _artifact(tmp_path, "valid_witnesses.1.parquet", "valid_witness")
    with pytest.raises(StoreError):
        asyncio.run(up.publish_all([a, b]))
    assert (tmp_path / "valid_beacons.1.parquet").exists()
    assert (tmp_path / "valid_witnesses.1.parquet").exists()


def test_cleanup_tolerates_missing_files(tmp_path) -> None:
    UploadLifecycle(FakeDestinationStore()).cleanup([OutputArtifact(str(tmp_path / "gone"), "valid_beacon")])
