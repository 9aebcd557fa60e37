from __future__ import annotations
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError as _ProtoDecodeError

from ..domain.errors import DecodeError
from ..domain.models import (
    BeaconReport, BeaconReq, GatewayRewardShare, PocRecord, WitnessReport, WitnessReq,
)
from ..ports.decoder import RecordDecoder

# Subset of helium `poc_lora.proto`; fields not listed are skipped as unknown.
_PKG = "helium.poc_lora"
_F = descriptor_pb2.FieldDescriptorProto

_MESSAGES: dict[str, list[tuple]] = {
    "lora_beacon_report_req_v1": [
        ("pub_key",   2,  _F.TYPE_BYTES),
        ("frequency", 6,  _F.TYPE_UINT64),
        ("channel",   7,  _F.TYPE_INT32),
        ("tx_power",  9,  _F.TYPE_INT32),
        ("timestamp", 10, _F.TYPE_UINT64),
        ("tmst",      12, _F.TYPE_UINT32),
    ],
    "lora_witness_report_req_v1": [
        ("pub_key",   2, _F.TYPE_BYTES),
        ("timestamp", 4, _F.TYPE_UINT64),
        ("tmst",      5, _F.TYPE_UINT32),
        ("signal",    6, _F.TYPE_SINT32),
        ("snr",       7, _F.TYPE_SINT32),
        ("frequency", 8, _F.TYPE_UINT64),
    ],
    "lora_valid_beacon_report_v1": [
        ("received_timestamp", 1, _F.TYPE_UINT64),
        ("location",           2, _F.TYPE_STRING),
        ("report",             4, _F.TYPE_MESSAGE, "lora_beacon_report_req_v1"),
    ],
    "lora_verified_witness_report_v1": [
        ("received_timestamp", 1, _F.TYPE_UINT64),
        ("report",             3, _F.TYPE_MESSAGE, "lora_witness_report_req_v1"),
        ("location",           4, _F.TYPE_STRING),
    ],
    "lora_poc_v1": [
        ("poc_id",               1, _F.TYPE_BYTES),
        ("beacon_report",        2, _F.TYPE_MESSAGE, "lora_valid_beacon_report_v1"),
        ("selected_witnesses",   3, _F.TYPE_MESSAGE, "lora_verified_witness_report_v1", True),
        ("unselected_witnesses", 4, _F.TYPE_MESSAGE, "lora_verified_witness_report_v1", True),
    ],
    "gateway_reward_share": [
        ("hotspot_key",    1, _F.TYPE_BYTES),
        ("beacon_amount",  2, _F.TYPE_UINT64),
        ("witness_amount", 3, _F.TYPE_UINT64),
        ("start_period",   4, _F.TYPE_UINT64),
        ("end_period",     5, _F.TYPE_UINT64),
    ],
}


def _build_pool() -> descriptor_pool.DescriptorPool:
    fdp = descriptor_pb2.FileDescriptorProto(name="oracle_parquet/poc_lora.proto", package=_PKG, syntax="proto3")
    for msg_name, fields in _MESSAGES.items():
        msg = fdp.message_type.add(name=msg_name)
        for spec in fields:
            name, number, ftype = spec[:3]
            type_name = spec[3] if len(spec) > 3 else None
            repeated = len(spec) > 4 and spec[4]
            f = msg.field.add(
                name=name, number=number, type=ftype,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name:
                f.type_name = f".{_PKG}.{type_name}"
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(fdp.SerializeToString())
    return pool

_POOL = _build_pool()

def message_class(name: str) -> Any:
    """Generated message class for `name` (e.g. "lora_poc_v1")."""
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PKG}.{name}"))

LoraPocV1 = message_class("lora_poc_v1")
GatewayRewardShareV1 = message_class("gateway_reward_share")


def _beacon(msg: Any) -> BeaconReport:
    req = None
    if msg.HasField("report"):
        r = msg.report
        req = BeaconReq(pub_key=r.pub_key, frequency=r.frequency, channel=r.channel,
                        tx_power=r.tx_power, timestamp=r.timestamp, tmst=r.tmst)
    return BeaconReport(received_timestamp=msg.received_timestamp, location=msg.location, report=req)

def _witness(msg: Any) -> WitnessReport:
    req = None
    if msg.HasField("report"):
        r = msg.report
        req = WitnessReq(pub_key=r.pub_key, timestamp=r.timestamp, tmst=r.tmst,
                         signal=r.signal, snr=r.snr, frequency=r.frequency)
    return WitnessReport(received_timestamp=msg.received_timestamp, location=msg.location, report=req)


class ProtobufDecoder(RecordDecoder):
    def decode_poc(self, payload: bytes) -> PocRecord:
        msg = LoraPocV1()
        try:
            msg.ParseFromString(payload)
        except _ProtoDecodeError as e:
            raise DecodeError(f"lora_poc_v1: {e}") from e
        return PocRecord(
            poc_id=msg.poc_id,
            beacon_report=_beacon(msg.beacon_report) if msg.HasField("beacon_report") else None,
            selected_witnesses=tuple(_witness(w) for w in msg.selected_witnesses),
            unselected_witnesses=tuple(_witness(w) for w in msg.unselected_witnesses),
        )

    def decode_reward_share(self, payload: bytes) -> GatewayRewardShare:
        msg = GatewayRewardShareV1()
        try:
            msg.ParseFromString(payload)
        except _ProtoDecodeError as e:
            raise DecodeError(f"gateway_reward_share: {e}") from e
        return GatewayRewardShare(
            hotspot_key=msg.hotspot_key,
            beacon_amount=msg.beacon_amount,
            witness_amount=msg.witness_amount,
            start_period=msg.start_period,
            end_period=msg.end_period,
        )
