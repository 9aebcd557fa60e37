from __future__ import annotations
import asyncio
import logging
import os

from ..adapters.column_batch import ColumnBatch
from ..domain.errors import FileConversionError, UnknownFileType
from ..domain.models import ConvertedFile, OutputArtifact, SourceFileDescriptor
from ..domain.schemas import BEACON_SCHEMA, GATEWAY_REWARD_SHARE_SCHEMA, WITNESS_SCHEMA
from ..domain.transform import check_reward_share, fan_out
from ..ports.decoder import RecordDecoder
from ..ports.store import SourceStore

log = logging.getLogger(__name__)


def output_path(output_dir: str, name: str, stamp: str) -> str:
    return os.path.join(output_dir, f"{name}.{stamp}.parquet")


class FileConverter:
    """Decode one source file and write its Parquet outputs to `output_dir`."""

    def __init__(self, store: SourceStore, decoder: RecordDecoder, output_dir: str) -> None:
        self.store = store
        self.decoder = decoder
        self.output_dir = output_dir

    async def convert(self, desc: SourceFileDescriptor) -> ConvertedFile:
        try:
            if desc.file_type == "iot_poc":
                return await self._convert_poc(desc)
            if desc.file_type == "gateway_reward_share":
                return await self._convert_reward_share(desc)
            raise UnknownFileType(f"no converter for {desc.file_type!r}")
        except FileConversionError:
            raise
        except Exception as e:
            raise FileConversionError(desc.key, e) from e

    async def _convert_poc(self, desc: SourceFileDescriptor) -> ConvertedFile:
        beacons = ColumnBatch(BEACON_SCHEMA)
        witnesses = ColumnBatch(WITNESS_SCHEMA)
        messages = dropped = 0
        async for payload in self.store.stream(desc.key):
            messages += 1
            beacon, rows = fan_out(self.decoder.decode_poc(payload))
            if beacon is None:
                dropped += 1
                continue
            beacons.append(beacon)
            witnesses.extend(rows)

        log.debug("%s: %d pocs, %d without selected witnesses", desc.key, messages, dropped)
        os.makedirs(self.output_dir, exist_ok=True)
        beacon_path = output_path(self.output_dir, BEACON_SCHEMA.name, desc.stamp)
        witness_path = output_path(self.output_dir, WITNESS_SCHEMA.name, desc.stamp)
        await asyncio.to_thread(beacons.write, beacon_path)
        try:
            await asyncio.to_thread(witnesses.write, witness_path)
        except BaseException:
            # no half pair on disk for a failed file
            if os.path.exists(beacon_path):
                os.remove(beacon_path)
            raise
        return ConvertedFile(
            descriptor=desc,
            artifacts=(
                OutputArtifact(beacon_path, "valid_beacon"),
                OutputArtifact(witness_path, "valid_witness"),
            ),
            rows={"messages": messages, "beacons": len(beacons), "witnesses": len(witnesses)},
        )

    async def _convert_reward_share(self, desc: SourceFileDescriptor) -> ConvertedFile:
        shares = ColumnBatch(GATEWAY_REWARD_SHARE_SCHEMA)
        async for payload in self.store.stream(desc.key):
            shares.append(check_reward_share(self.decoder.decode_reward_share(payload)))

        os.makedirs(self.output_dir, exist_ok=True)
        path = output_path(self.output_dir, GATEWAY_REWARD_SHARE_SCHEMA.name, desc.stamp)
        await asyncio.to_thread(shares.write, path)
        return ConvertedFile(
            descriptor=desc,
            artifacts=(OutputArtifact(path, "gateway_reward_share"),),
            rows={"messages": len(shares), "gateway_reward_share": len(shares)},
        )
