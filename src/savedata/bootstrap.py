"""Builds the concrete stores and service from a ServerConfig."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .auth import Authenticator
from .blob_store import FileBlobStore
from .config import ServerConfig
from .daily import DailySeedProvider, provider_from_settings
from .db import SqlAccountStore, SqlAuthenticator
from .fs import ensure_dir
from .service import SaveDataService, build_service

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    config: ServerConfig
    service: SaveDataService
    accounts: SqlAccountStore
    authenticator: Authenticator
    daily_seeds: DailySeedProvider


def build_runtime(config: ServerConfig) -> Runtime:
    ensure_dir(config.data_root)
    accounts = SqlAccountStore.from_url(config.resolved_database_url())
    accounts.create_schema()
    daily_seeds = provider_from_settings(
        fixed_seed=config.daily_seed,
        secret=config.daily_seed_secret,
        data_root=config.data_root,
    )
    blobs = FileBlobStore(config.userdata_dir)
    service = build_service(blobs, accounts, daily_seeds, compression_level=config.compression_level)
    logger.info("Save data stored under %s", config.userdata_dir)
    return Runtime(
        config=config,
        service=service,
        accounts=accounts,
        authenticator=SqlAuthenticator(accounts.engine),
        daily_seeds=daily_seeds,
    )
