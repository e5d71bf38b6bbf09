"""Interface to the relational account store, plus an in-memory implementation."""
from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from .daily import Clock, utc_now


def _utc_day(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()


@dataclass
class DailyRunRecord:
    score: int
    wave: int
    updated_at: datetime


class AccountStore(ABC):
    """Bookkeeping calls the save pipeline makes against the account store.

    Implementations raise LedgerFault when the backend fails.
    """

    @abstractmethod
    def update_stats(self, account: bytes, stats: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    def upsert_daily_run(self, account: bytes, score: int, wave_reached: int) -> None:
        """Record today's daily run, keeping the best score and wave."""

    @abstractmethod
    def try_record_seed_completion(self, account: bytes, seed: str, mode: int) -> bool:
        """Record a completion. True only for the first caller per (account, seed, mode)."""

    @abstractmethod
    def touch_last_activity(self, account: bytes) -> None:
        ...


class InMemoryAccountStore(AccountStore):
    """Test/deterministic AccountStore that holds records in memory only."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._stats: Dict[bytes, Dict[str, Any]] = {}
        self._daily_runs: Dict[Tuple[bytes, date], DailyRunRecord] = {}
        self._completions: Set[Tuple[bytes, str, int]] = set()
        self._last_activity: Dict[bytes, datetime] = {}

    def update_stats(self, account: bytes, stats: Mapping[str, Any]) -> None:
        with self._lock:
            self._stats[bytes(account)] = copy.deepcopy(dict(stats))

    def upsert_daily_run(self, account: bytes, score: int, wave_reached: int) -> None:
        now = self._clock()
        key = (bytes(account), _utc_day(now))
        with self._lock:
            record = self._daily_runs.get(key)
            if record is None:
                self._daily_runs[key] = DailyRunRecord(score=score, wave=wave_reached, updated_at=now)
                return
            if score > record.score:
                record.updated_at = now
            record.score = max(record.score, score)
            record.wave = max(record.wave, wave_reached)

    def try_record_seed_completion(self, account: bytes, seed: str, mode: int) -> bool:
        key = (bytes(account), seed, int(mode))
        with self._lock:
            if key in self._completions:
                return False
            self._completions.add(key)
            return True

    def touch_last_activity(self, account: bytes) -> None:
        with self._lock:
            self._last_activity[bytes(account)] = self._clock()

    # Read helpers

    def stats_for(self, account: bytes) -> Optional[Dict[str, Any]]:
        with self._lock:
            stats = self._stats.get(bytes(account))
            return copy.deepcopy(stats) if stats is not None else None

    def daily_run_for(self, account: bytes, day: Optional[date] = None) -> Optional[DailyRunRecord]:
        day = day or _utc_day(self._clock())
        with self._lock:
            record = self._daily_runs.get((bytes(account), day))
            return copy.copy(record) if record is not None else None

    def has_completed(self, account: bytes, seed: str, mode: int) -> bool:
        with self._lock:
            return (bytes(account), seed, int(mode)) in self._completions

    def last_activity_for(self, account: bytes) -> Optional[datetime]:
        with self._lock:
            return self._last_activity.get(bytes(account))
