from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from .account_store import AccountStore
from .addressing import DataType, SaveKey, namespace_for, parse_slot, resolve
from .blob_store import BlobStore
from .codec import DEFAULT_COMPRESSION_LEVEL, decode_durable, decode_wire, encode_durable, encode_wire
from .completion import CompletionResult, classify
from .daily import DailySeedProvider
from .errors import InvalidSystemData, LedgerFault
from .ledger import RunLedger
from .models import SessionSaveData, SystemSaveData

logger = logging.getLogger(__name__)

Body = Union[str, bytes]
Classifier = Callable[[SessionSaveData], CompletionResult]


class SaveDataService:
    """Get, update, delete and clear operations over the blob and account stores.

    Holds no state between calls; every request is independent.
    """

    def __init__(
        self,
        blobs: BlobStore,
        accounts: AccountStore,
        ledger: RunLedger,
        *,
        classifier: Classifier = classify,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        self.blobs = blobs
        self.accounts = accounts
        self.ledger = ledger
        self.classifier = classifier
        self.compression_level = compression_level

    def get(self, account: bytes, data_type: Any, slot: Any = None) -> str:
        """Return the stored save as wire JSON. A missing entry raises SaveNotFound."""
        namespace_for(account)
        key = resolve(data_type, slot)
        save = decode_durable(key.data_type, self.blobs.read(account, key))
        return encode_wire(save)

    def update(self, account: bytes, data_type: Any, slot: Any, body: Body) -> None:
        namespace_for(account)
        key = resolve(data_type, slot)
        save = decode_wire(key.data_type, body)
        if key.data_type is DataType.SYSTEM:
            self._check_system(save)
        # nothing is mutated until the stored form is known to encode
        data = encode_durable(save, level=self.compression_level)
        self._touch(account)

        if isinstance(save, SystemSaveData):
            try:
                self.accounts.update_stats(account, save.game_stats)
            except LedgerFault as e:
                logger.warning("Failed to update account stats: %s", e)

        self._write(account, key, data)

    def delete(self, account: bytes, data_type: Any, slot: Any = None) -> None:
        """Remove a save. Deleting an absent save is not an error."""
        namespace_for(account)
        key = resolve(data_type, slot)
        self._touch(account)
        self.blobs.delete(account, key)

    def clear(self, account: bytes, slot: Any, body: Body) -> bool:
        """Finish a session: record ledger entries, then delete the slot.

        Returns whether this call produced a new seed completion. The session
        entry is removed even if ledger updates failed.
        """
        namespace_for(account)
        key = SaveKey(DataType.SESSION, parse_slot(slot))
        session = decode_wire(DataType.SESSION, body)
        self._touch(account)

        result = self.classifier(session)
        try:
            if self.ledger.is_daily_run(session):
                recorded = self.ledger.apply_daily_run(account, session, result.wave_reached)
                logger.debug("Daily run for %s recorded: %s", account.hex(), recorded)
            new_completion = self.ledger.apply_completion(
                account, session, result.completed, result.wave_reached
            )
        finally:
            self.blobs.delete(account, key)
        return new_completion

    def _check_system(self, save: SystemSaveData) -> None:
        if not save.has_valid_identity():
            raise InvalidSystemData("invalid system data")

    def _touch(self, account: bytes) -> None:
        try:
            self.accounts.touch_last_activity(account)
        except LedgerFault as e:
            logger.warning("Failed to update account last activity: %s", e)

    def _write(self, account: bytes, key: SaveKey, data: bytes) -> None:
        self.blobs.ensure_namespace(account)
        self.blobs.write(account, key, data)


def build_service(
    blobs: BlobStore,
    accounts: AccountStore,
    daily_seeds: DailySeedProvider,
    *,
    classifier: Optional[Classifier] = None,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
) -> SaveDataService:
    ledger = RunLedger(accounts, daily_seeds)
    return SaveDataService(
        blobs,
        accounts,
        ledger,
        classifier=classifier or classify,
        compression_level=compression_level,
    )
