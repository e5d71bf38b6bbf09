"""Save data persistence and run-completion pipeline for the game backend.

This package provides:
- Addressing of per-account saves (system singleton, three session slots)
- Wire (JSON) and durable (msgpack + zstd) codecs for save data
- File and in-memory blob stores with atomic whole-file replacement
- Completion classification and the run ledger (daily runs, seed completions)
- SaveDataService and a FastAPI transport wiring the pieces together
"""

__version__ = "0.1.0"

from .addressing import SESSION_SLOT_COUNT, DataType, SaveKey, resolve
from .errors import (
    CorruptSaveError,
    DecodeError,
    EncodeError,
    InvalidRequest,
    InvalidSystemData,
    LedgerFault,
    SaveDataError,
    SaveNotFound,
    StoreFault,
    WireDecodeError,
)
from .models import BattleType, GameMode, SessionSaveData, SystemSaveData

__all__ = [
    "__version__",
    "SESSION_SLOT_COUNT",
    "DataType",
    "SaveKey",
    "resolve",
    "BattleType",
    "GameMode",
    "SessionSaveData",
    "SystemSaveData",
    "SaveDataError",
    "InvalidRequest",
    "InvalidSystemData",
    "DecodeError",
    "WireDecodeError",
    "CorruptSaveError",
    "EncodeError",
    "StoreFault",
    "SaveNotFound",
    "LedgerFault",
]
