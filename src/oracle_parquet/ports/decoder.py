# oracle_parquet/ports/decoder.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import GatewayRewardShare, PocRecord


class RecordDecoder(Protocol):
    """Port turning one framed message into a typed domain record."""

    def decode_poc(self, payload: bytes) -> PocRecord:
        """Decode an iot_poc message; raise DecodeError on malformed bytes."""

    def decode_reward_share(self, payload: bytes) -> GatewayRewardShare:
        """Decode a gateway_reward_share message; raise DecodeError on malformed bytes."""
