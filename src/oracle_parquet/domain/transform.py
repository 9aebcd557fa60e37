from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from typing import Iterable

from .errors import DecodeError, LocationParseError, MissingRequiredField
from .models import (
    BeaconRow, GatewayRewardShare, PocRecord, WitnessReport, WitnessRow,
)

log = logging.getLogger(__name__)

_INT64_TEXT = re.compile(r"[+-]?[0-9]+", re.ASCII)
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


def parse_location(text: str, *, strict: bool) -> int:
    """
    Locations arrive as the decimal string of an h3 cell index: ASCII digits,
    optional sign, no padding, inside the signed 64-bit range.
    strict=True raises LocationParseError; strict=False logs and yields 0.
    """
    if isinstance(text, str) and _INT64_TEXT.fullmatch(text):
        value = int(text)
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
    if strict:
        raise LocationParseError(f"unparseable location {text!r}")
    log.warning("witness location %r unparseable; stored as 0", text)
    return 0


def beacon_row(record: PocRecord) -> BeaconRow:
    beacon = record.beacon_report
    if beacon is None:
        raise MissingRequiredField(f"poc {record.poc_id.hex()} has no beacon_report")
    req = beacon.report
    if req is None:
        raise MissingRequiredField(f"poc {record.poc_id.hex()} beacon_report has no report")
    return BeaconRow(
        poc_id=record.poc_id,
        ingest_time=beacon.received_timestamp,
        beacon_location=parse_location(beacon.location, strict=True),
        pub_key=req.pub_key,
        frequency=req.frequency,
        channel=req.channel,
        tx_power=req.tx_power,
        timestamp=req.timestamp,
        tmst=req.tmst,
    )


def _witness_rows(poc_id: bytes, witnesses: Iterable[WitnessReport], selected: bool) -> list[WitnessRow]:
    out: list[WitnessRow] = []
    for w in witnesses:
        req = w.report
        if req is None:
            raise MissingRequiredField(f"poc {poc_id.hex()} witness has no report")
        out.append(WitnessRow(
            poc_id=poc_id,
            pub_key=req.pub_key,
            ingest_time=w.received_timestamp,
            witness_location=parse_location(w.location, strict=False),
            timestamp=req.timestamp,
            tmst=req.tmst,
            signal=req.signal,
            snr=req.snr,
            frequency=req.frequency,
            selected=selected,
        ))
    return out


def fan_out(record: PocRecord) -> tuple[BeaconRow | None, list[WitnessRow]]:
    """
    One PoC -> (beacon row, witness rows). A PoC without selected witnesses is
    dropped entirely, beacon included. Selected rows precede unselected ones.
    """
    if not record.selected_witnesses:
        return None, []
    beacon = beacon_row(record)
    witnesses = _witness_rows(record.poc_id, record.selected_witnesses, True)
    witnesses += _witness_rows(record.poc_id, record.unselected_witnesses, False)
    return beacon, witnesses


def check_reward_share(share: GatewayRewardShare) -> GatewayRewardShare:
    # end_period is epoch seconds and must land on a real UTC instant
    try:
        datetime.fromtimestamp(share.end_period, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise DecodeError(f"unexpected end_period: {share.end_period}") from e
    return share
