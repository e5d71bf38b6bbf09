"""Resolution of (data type, slot) pairs to storage keys.

Keys are a pure function of their inputs so the same logical save always maps
to the same entry across restarts. Slot 0 keeps the bare ``session`` name used
by the single-slot layout; slots 1 and 2 get a numeric suffix.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from .errors import InvalidRequest

SESSION_SLOT_COUNT = 3
ACCOUNT_ID_LENGTH = 16
SAVE_EXTENSION = ".pzs"


class DataType(IntEnum):
    SYSTEM = 0
    SESSION = 1


@dataclass(frozen=True)
class SaveKey:
    data_type: DataType
    slot: Optional[int] = None

    @property
    def name(self) -> str:
        if self.data_type is DataType.SYSTEM:
            return "system"
        if self.slot == 0:
            return "session"
        return f"session{self.slot}"

    @property
    def filename(self) -> str:
        return self.name + SAVE_EXTENSION


def parse_data_type(token: Any) -> DataType:
    """Parse a data type token ("0", "1", 0, 1 or a DataType)."""
    if isinstance(token, DataType):
        return token
    if isinstance(token, bool):
        raise InvalidRequest("invalid data type")
    try:
        return DataType(int(token))
    except (TypeError, ValueError) as exc:
        raise InvalidRequest("invalid data type") from exc


def parse_slot(token: Any) -> int:
    if isinstance(token, bool) or token is None:
        raise InvalidRequest(f"invalid slot id: {token!r}")
    try:
        slot = int(token)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"failed to convert slot id: {token!r}") from exc
    if slot < 0 or slot >= SESSION_SLOT_COUNT:
        raise InvalidRequest(f"slot id {slot} out of range")
    return slot


def resolve(data_type: Any, slot: Any = None) -> SaveKey:
    """Resolve a data type and slot to a SaveKey.

    The slot is ignored for system data. Session data requires a slot in
    ``[0, SESSION_SLOT_COUNT)``. Raises InvalidRequest otherwise.
    """
    kind = parse_data_type(data_type)
    if kind is DataType.SYSTEM:
        return SaveKey(DataType.SYSTEM)
    return SaveKey(DataType.SESSION, parse_slot(slot))


def namespace_for(account: bytes) -> str:
    """Hex-encode an account id into its storage namespace segment."""
    if not isinstance(account, (bytes, bytearray)) or len(account) != ACCOUNT_ID_LENGTH:
        raise InvalidRequest("invalid account id")
    return bytes(account).hex()
