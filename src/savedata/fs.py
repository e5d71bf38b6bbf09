from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_dir(path: Path, *, mode: int = 0o755) -> Path:
    """Create a directory (and parents) if absent."""
    path.mkdir(mode=mode, parents=True, exist_ok=True)
    return path


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically replace ``path`` with ``data`` via a temporary file in the same directory.

    Readers see either the previous content or the new content, never a
    partially written file.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            try:
                os.remove(tmp_name)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)


def remove_if_exists(path: Path) -> bool:
    """Delete ``path``. Returns False when it was already absent."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
