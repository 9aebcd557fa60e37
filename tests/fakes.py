"""In-memory stores and protobuf builders shared by the tests."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, AsyncIterator, Iterable

from oracle_parquet.adapters.proto_decoder import GatewayRewardShareV1, LoraPocV1
from oracle_parquet.domain.errors import StoreError
from oracle_parquet.domain.models import SourceFileDescriptor

BEACON_LOCATION = "631210968840687103"
WITNESS_LOCATION = "631210968849000000"


def witness(pub_key: bytes, *, location: str = WITNESS_LOCATION, signal: int = -1100,
            snr: int = 55, with_report: bool = True) -> dict[str, Any]:
    return {"pub_key": pub_key, "location": location, "signal": signal, "snr": snr, "with_report": with_report}


def poc_payload(
    poc_id: bytes = b"poc-1",
    *,
    selected: Iterable[dict[str, Any]] = (),
    unselected: Iterable[dict[str, Any]] = (),
    beacon_location: str = BEACON_LOCATION,
    with_beacon: bool = True,
    tmst: int = 1234,
) -> bytes:
    msg = LoraPocV1()
    msg.poc_id = poc_id
    if with_beacon:
        br = msg.beacon_report
        br.received_timestamp = 1_671_643_842_138
        br.location = beacon_location
        br.report.pub_key = b"beaconer"
        br.report.frequency = 904_100_000
        br.report.channel = 3
        br.report.tx_power = 27
        br.report.timestamp = 1_671_643_842_000_000_000
        br.report.tmst = tmst
    for target, items in ((msg.selected_witnesses, selected), (msg.unselected_witnesses, unselected)):
        for w in items:
            m = target.add()
            m.received_timestamp = 1_671_643_842_500
            m.location = w["location"]
            if w["with_report"]:
                m.report.pub_key = w["pub_key"]
                m.report.timestamp = 1_671_643_842_100_000_000
                m.report.tmst = 4321
                m.report.signal = w["signal"]
                m.report.snr = w["snr"]
                m.report.frequency = 904_100_000
    return msg.SerializeToString()


def reward_share_payload(hotspot_key: bytes, *, end_period: int = 1_671_643_842) -> bytes:
    msg = GatewayRewardShareV1()
    msg.hotspot_key = hotspot_key
    msg.beacon_amount = 10
    msg.witness_amount = 20
    msg.start_period = end_period - 86_400
    msg.end_period = end_period
    return msg.SerializeToString()


class FakeSourceStore:
    """Holds decoded-frame payloads per key and records how many streams overlap."""

    def __init__(self, files: dict[str, list[bytes]], *, delay: float = 0.0,
                 fail_list: bool = False) -> None:
        self.files = files
        self.delay = delay
        self.fail_list = fail_list
        self.in_flight = 0
        self.peak = 0
        self.streamed: list[str] = []

    async def list_all(self, file_type: str, after: datetime, before: datetime) -> list[SourceFileDescriptor]:
        if self.fail_list:
            raise StoreError("listing unavailable")
        out = []
        for key in self.files:
            d = SourceFileDescriptor.from_key(key)
            if d.file_type == file_type and after <= d.timestamp < before:
                out.append(d)
        return sorted(out, key=lambda d: d.timestamp)

    async def stream(self, key: str) -> AsyncIterator[bytes]:
        if key not in self.files:
            raise StoreError(f"no such key {key}")
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        self.streamed.append(key)
        try:
            await asyncio.sleep(self.delay)
            for payload in self.files[key]:
                yield payload
        finally:
            self.in_flight -= 1


class FakeDestinationStore:
    def __init__(self, *, fail_kinds: Iterable[str] = ()) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_kinds = set(fail_kinds)

    async def put(self, local_path: str, key: str) -> None:
        if key.split("/", 1)[0] in self.fail_kinds:
            raise StoreError(f"put {key}: access denied")
        with open(local_path, "rb") as f:
            self.objects[key] = f.read()
