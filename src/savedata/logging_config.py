import logging
import os
import sys
from typing import Union

LOG_LEVEL_ENV = "SAVEDATA_LOG_LEVEL"


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install a single stdout handler on the root logger.

    The SAVEDATA_LOG_LEVEL env var, if set, takes precedence over ``level``.
    """
    level_name = os.getenv(LOG_LEVEL_ENV)
    if level_name:
        level = level_name
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream=sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # Remove existing handlers to avoid duplicates in repeated test runs
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
