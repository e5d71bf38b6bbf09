"""Durable per-account byte storage.

Each account owns a namespace (its hex id); each resolved SaveKey is one
entry in it. Writes replace the whole entry, so concurrent writers to the same
key race at whole-file granularity and the last one wins.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Tuple

from .addressing import SaveKey, namespace_for
from .errors import SaveNotFound, StoreFault
from .fs import atomic_write_bytes, ensure_dir, remove_if_exists

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Interface for the hierarchical byte store holding saves."""

    @abstractmethod
    def ensure_namespace(self, account: bytes) -> None:
        """Create the account's namespace if it does not exist."""

    @abstractmethod
    def write(self, account: bytes, key: SaveKey, data: bytes) -> None:
        """Replace the entry for ``key`` with ``data``."""

    @abstractmethod
    def read(self, account: bytes, key: SaveKey) -> bytes:
        """Return the entry for ``key``; raise SaveNotFound when absent."""

    @abstractmethod
    def delete(self, account: bytes, key: SaveKey) -> bool:
        """Remove the entry if present. Returns whether something was removed."""

    @abstractmethod
    def exists(self, account: bytes, key: SaveKey) -> bool:
        ...


class FileBlobStore(BlobStore):
    """Stores entries as ``<root>/<hex account>/<key name>.pzs``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def namespace_path(self, account: bytes) -> Path:
        return self.root / namespace_for(account)

    def path_for(self, account: bytes, key: SaveKey) -> Path:
        return self.namespace_path(account) / key.filename

    def ensure_namespace(self, account: bytes) -> None:
        path = self.namespace_path(account)
        try:
            ensure_dir(path)
        except OSError as exc:
            logger.exception("Failed to create userdata folder %s", path)
            raise StoreFault(f"failed to create userdata folder: {exc}") from exc

    def write(self, account: bytes, key: SaveKey, data: bytes) -> None:
        path = self.path_for(account, key)
        try:
            atomic_write_bytes(path, data)
        except OSError as exc:
            logger.exception("Failed to write save file %s", path)
            raise StoreFault(f"failed to write save file: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(data), path)

    def read(self, account: bytes, key: SaveKey) -> bytes:
        path = self.path_for(account, key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise SaveNotFound(f"save file not found: {key.filename}") from exc
        except OSError as exc:
            logger.exception("Failed to read save file %s", path)
            raise StoreFault(f"failed to read save file: {exc}") from exc

    def delete(self, account: bytes, key: SaveKey) -> bool:
        path = self.path_for(account, key)
        try:
            removed = remove_if_exists(path)
        except OSError as exc:
            logger.exception("Failed to delete save file %s", path)
            raise StoreFault(f"failed to delete save file: {exc}") from exc
        if removed:
            logger.debug("Deleted %s", path)
        return removed

    def exists(self, account: bytes, key: SaveKey) -> bool:
        return self.path_for(account, key).is_file()


class InMemoryBlobStore(BlobStore):
    """Test/deterministic BlobStore that keeps entries in memory only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._namespaces: Dict[str, Dict[str, bytes]] = {}

    def _locate(self, account: bytes, key: SaveKey) -> Tuple[str, str]:
        return namespace_for(account), key.name

    def ensure_namespace(self, account: bytes) -> None:
        with self._lock:
            self._namespaces.setdefault(namespace_for(account), {})

    def write(self, account: bytes, key: SaveKey, data: bytes) -> None:
        ns, name = self._locate(account, key)
        with self._lock:
            if ns not in self._namespaces:
                raise StoreFault(f"namespace {ns} does not exist")
            self._namespaces[ns][name] = bytes(data)

    def read(self, account: bytes, key: SaveKey) -> bytes:
        ns, name = self._locate(account, key)
        with self._lock:
            try:
                return self._namespaces[ns][name]
            except KeyError as exc:
                raise SaveNotFound(f"save file not found: {key.filename}") from exc

    def delete(self, account: bytes, key: SaveKey) -> bool:
        ns, name = self._locate(account, key)
        with self._lock:
            return self._namespaces.get(ns, {}).pop(name, None) is not None

    def exists(self, account: bytes, key: SaveKey) -> bool:
        ns, name = self._locate(account, key)
        with self._lock:
            return name in self._namespaces.get(ns, {})
