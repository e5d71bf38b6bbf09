from __future__ import annotations

import base64
import hmac
import logging
import os
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Callable, Optional

from .fs import atomic_write_bytes, ensure_dir

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SEED_BYTES = 24


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailySeedProvider(ABC):
    """Source of the currently published daily-challenge seed."""

    @abstractmethod
    def current_seed(self) -> str:
        ...


class FixedDailySeed(DailySeedProvider):
    def __init__(self, seed: str) -> None:
        self.seed = seed

    def current_seed(self) -> str:
        return self.seed


class DerivedDailySeed(DailySeedProvider):
    """Derives the seed for the current UTC day from a secret.

    Every process sharing the secret publishes the same seed on the same day
    without coordinating.
    """

    def __init__(self, secret: bytes, clock: Clock = utc_now) -> None:
        if not secret:
            raise ValueError("daily seed secret must not be empty")
        self._secret = secret
        self._clock = clock

    def seed_for(self, day: date) -> str:
        digest = hmac.new(self._secret, day.isoformat().encode("ascii"), sha256).digest()
        return base64.b64encode(digest[:SEED_BYTES]).decode("ascii")

    def current_seed(self) -> str:
        return self.seed_for(self._clock().astimezone(timezone.utc).date())


class SecretKeyManager:
    """Manages a per-install secret used to derive daily seeds."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.sec_dir = self.base_dir / "security"
        self.key_path = self.sec_dir / "daily_seed.key"

    def get_or_create_key(self) -> bytes:
        if self.key_path.exists():
            key = self.key_path.read_bytes()
            if key:
                return key
            logger.warning("Daily seed key at %s is empty; regenerating.", self.key_path)
        ensure_dir(self.sec_dir, mode=0o700)
        key = os.urandom(32)
        atomic_write_bytes(self.key_path, key)
        try:
            os.chmod(self.key_path, 0o600)
        except OSError:
            logger.debug("Could not chmod key file", exc_info=True)
        logger.info("Generated new daily seed key at %s", self.key_path)
        return key


def provider_from_settings(
    *,
    fixed_seed: Optional[str],
    secret: Optional[str],
    data_root: Path,
    clock: Clock = utc_now,
) -> DailySeedProvider:
    if fixed_seed:
        return FixedDailySeed(fixed_seed)
    key = secret.encode("utf-8") if secret else SecretKeyManager(data_root).get_or_create_key()
    return DerivedDailySeed(key, clock=clock)
