from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from platformdirs import user_data_dir
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "savedata"

ENV_OVERRIDES = {
    "SAVEDATA_ROOT": "data_root",
    "SAVEDATA_DATABASE_URL": "database_url",
    "SAVEDATA_DAILY_SEED": "daily_seed",
    "SAVEDATA_LOG_LEVEL": "log_level",
}


def default_data_root() -> Path:
    return Path(user_data_dir(APP_NAME, appauthor=False))


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_root: Path = Field(default_factory=default_data_root)
    database_url: Optional[str] = None
    compression_level: int = Field(default=3, ge=1, le=22)
    daily_seed: Optional[str] = None
    daily_seed_secret: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = Field(default=8001, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        name = v.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level: {v}")
        return name

    @property
    def userdata_dir(self) -> Path:
        return self.data_root / "userdata"

    def resolved_database_url(self) -> str:
        return self.database_url or f"sqlite:///{self.data_root / 'accounts.db'}"


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"configuration in {path} must be a mapping")
    return data


def _deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, Mapping) and isinstance(base.get(k), Mapping):
            merged[k] = _deep_merge(base[k], v)
        else:
            merged[k] = v
    return merged


def _load_defaults() -> Dict[str, Any]:
    text = resources.files("savedata.defaults").joinpath("server.yaml").read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}


def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Load built-in defaults, overlay an optional YAML file, then environment overrides."""
    env = os.environ if env is None else env
    data = _load_defaults()

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")
        try:
            data = _deep_merge(data, _load_yaml(path))
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        logger.info("Loaded config from %s", path)

    for var, field_name in ENV_OVERRIDES.items():
        if env.get(var):
            data[field_name] = env[var]

    try:
        config = ServerConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    logger.debug("Config resolved: %s", config)
    return config
