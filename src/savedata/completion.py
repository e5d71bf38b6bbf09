"""Classification of cleared sessions into finished or abandoned runs.

A run is finished when its final battle was won: the session ends on a Clear
battle at the final wave of a mode that has one. Endless modes have no final
wave and never complete.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .models import BattleType, GameMode, SessionSaveData

DEFAULT_FINAL_WAVES: Mapping[int, int] = {
    GameMode.CLASSIC: 200,
    GameMode.DAILY: 50,
}


@dataclass(frozen=True)
class CompletionResult:
    completed: bool
    wave_reached: int


class CompletionClassifier:
    def __init__(self, final_waves: Optional[Mapping[int, int]] = None) -> None:
        source = DEFAULT_FINAL_WAVES if final_waves is None else final_waves
        self.final_waves = {int(mode): int(wave) for mode, wave in source.items()}

    def is_completed(self, session: SessionSaveData) -> bool:
        final_wave = self.final_waves.get(session.game_mode)
        if final_wave is None:
            return False
        return session.battle_type == BattleType.CLEAR and session.wave_index == final_wave

    def classify(self, session: SessionSaveData) -> CompletionResult:
        """Pure: decide completion and the wave reached for scoring.

        An unfinished run did not clear the wave it stopped on, so it is
        credited one wave less (never below zero).
        """
        completed = self.is_completed(session)
        wave_reached = session.wave_index if completed else max(session.wave_index - 1, 0)
        return CompletionResult(completed=completed, wave_reached=wave_reached)

    __call__ = classify


default_classifier = CompletionClassifier()


def classify(session: SessionSaveData) -> CompletionResult:
    return default_classifier.classify(session)
