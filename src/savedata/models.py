"""Save data models shared by the wire and durable codecs.

Only the fields the server reasons about are typed; everything else a client
sends is kept as an extra field so a save round-trips unchanged.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

# trainer and secret ids are unsigned 32-bit on the client
ID_LIMIT = 2**32


class GameMode(IntEnum):
    CLASSIC = 0
    ENDLESS = 1
    SPLICED_ENDLESS = 2
    DAILY = 3


class BattleType(IntEnum):
    WILD = 0
    TRAINER = 1
    CLEAR = 2


class _SaveModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SystemSaveData(_SaveModel):
    """Account-wide progress. The identity pair is required on the wire."""

    trainer_id: int = Field(alias="trainerId", strict=True, ge=0, lt=ID_LIMIT)
    secret_id: int = Field(alias="secretId", strict=True, ge=0, lt=ID_LIMIT)
    gender: int = 0
    dex_data: Dict[str, Any] = Field(default_factory=dict, alias="dexData")
    starter_data: Dict[str, Any] = Field(default_factory=dict, alias="starterData")
    game_stats: Dict[str, Any] = Field(default_factory=dict, alias="gameStats")
    unlocks: Dict[str, Any] = Field(default_factory=dict)
    achv_unlocks: Dict[str, Any] = Field(default_factory=dict, alias="achvUnlocks")
    voucher_unlocks: Dict[str, Any] = Field(default_factory=dict, alias="voucherUnlocks")
    voucher_counts: Dict[str, Any] = Field(default_factory=dict, alias="voucherCounts")
    eggs: List[Any] = Field(default_factory=list)
    game_version: str = Field(default="", alias="gameVersion")
    timestamp: int = 0

    def has_valid_identity(self) -> bool:
        return not (self.trainer_id == 0 and self.secret_id == 0)


class SessionSaveData(_SaveModel):
    """One run in progress, held in a session slot."""

    seed: str = ""
    play_time: int = Field(default=0, alias="playTime")
    game_mode: int = Field(default=int(GameMode.CLASSIC), alias="gameMode")
    party: List[Any] = Field(default_factory=list)
    enemy_party: List[Any] = Field(default_factory=list, alias="enemyParty")
    modifiers: List[Any] = Field(default_factory=list)
    enemy_modifiers: List[Any] = Field(default_factory=list, alias="enemyModifiers")
    arena: Any = None
    pokeball_counts: Dict[str, Any] = Field(default_factory=dict, alias="pokeballCounts")
    money: int = 0
    score: int = 0
    wave_index: int = Field(default=0, alias="waveIndex")
    battle_type: int = Field(default=int(BattleType.WILD), alias="battleType")
    trainer: Any = None
    game_version: str = Field(default="", alias="gameVersion")
    timestamp: int = 0


SaveData = Union[SystemSaveData, SessionSaveData]
