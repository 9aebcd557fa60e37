from __future__ import annotations
from typing import NewType, Literal

FileKey = NewType("FileKey", str)   # "<type>.<millis>.<ext>"
Stamp   = NewType("Stamp", str)     # the <millis> token of a FileKey
FileType   = Literal["iot_poc", "gateway_reward_share"]
OutputKind = Literal["valid_beacon", "valid_witness", "gateway_reward_share"]
RunState   = Literal["idle", "listing", "converting", "done"]

FILE_TYPES: tuple[str, ...] = ("iot_poc", "gateway_reward_share")
