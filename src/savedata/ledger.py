"""Turns a cleared session into permanent records.

Both updates are best-effort: a failing account store is logged and the
caller carries on, so a player's save is never lost to bookkeeping.
"""
from __future__ import annotations

import logging

from .account_store import AccountStore
from .daily import DailySeedProvider
from .errors import LedgerFault
from .models import GameMode, SessionSaveData

logger = logging.getLogger(__name__)


class RunLedger:
    def __init__(self, accounts: AccountStore, daily_seeds: DailySeedProvider) -> None:
        self.accounts = accounts
        self.daily_seeds = daily_seeds

    def is_daily_run(self, session: SessionSaveData) -> bool:
        """True when the session plays the daily mode on the published seed."""
        return session.game_mode == GameMode.DAILY and session.seed == self.daily_seeds.current_seed()

    def apply_daily_run(self, account: bytes, session: SessionSaveData, wave_reached: int) -> bool:
        """Upsert today's best score and wave. Returns whether the record was written."""
        try:
            self.accounts.upsert_daily_run(account, session.score, wave_reached)
        except LedgerFault as e:
            logger.warning("Failed to add or update daily run record: %s", e)
            return False
        return True

    def apply_completion(
        self, account: bytes, session: SessionSaveData, completed: bool, wave_reached: int
    ) -> bool:
        """Record seed completion for a finished run.

        Returns True only when this call produced a new completion for the
        (account, seed, mode) triple.
        """
        if not completed:
            return False
        try:
            new_completion = self.accounts.try_record_seed_completion(account, session.seed, session.game_mode)
        except LedgerFault as e:
            logger.warning("Failed to mark seed as completed: %s", e)
            return False
        if new_completion:
            logger.info("New completion of seed %s in mode %d at wave %d", session.seed, session.game_mode, wave_reached)
        return new_completion
