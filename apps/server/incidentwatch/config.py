from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    DEFAULT_READING_INTERVAL_MS,
    DEFAULT_WS_PORT,
    MAX_READINGS,
    MIN_READING_INTERVAL_MS,
    WS_PORT_ENV,
)

SERVER_DIR = Path(__file__).resolve().parents[1]
"""Root of the ``apps/server/`` package tree."""

LOGGER = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": DEFAULT_WS_PORT},
    "readings": {
        "default_interval_ms": DEFAULT_READING_INTERVAL_MS,
        "min_interval_ms": MIN_READING_INTERVAL_MS,
        "max_history": MAX_READINGS,
    },
    "hub": {
        "send_timeout_s": 0.5,
        "outbox_maxsize": 256,
    },
    "catalog": {
        "path": None,
        "seed_incidents": True,
    },
    "logging": {"level": "INFO"},
}


def documented_default_config() -> dict[str, Any]:
    """Return runtime defaults in the shape documented by config.example.yaml."""
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_config_path(path_text: str, config_path: Path) -> Path:
    path = Path(path_text)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path


def _port_from_env(default: int) -> int:
    raw = os.environ.get(WS_PORT_ENV)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{WS_PORT_ENV} must be an integer port, got {raw!r}") from None


@dataclass(slots=True)
class ServerConfig:
    host: str
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ValueError(f"ServerConfig.port must be 1-65535, got {self.port!r}")


@dataclass(slots=True)
class ReadingsConfig:
    default_interval_ms: int
    min_interval_ms: int
    max_history: int

    def __post_init__(self) -> None:
        _cfg_logger = logging.getLogger(__name__)
        if self.min_interval_ms < 1:
            _cfg_logger.warning(
                "readings.min_interval_ms=%s is below 1; clamped to 1",
                self.min_interval_ms,
            )
            object.__setattr__(self, "min_interval_ms", 1)
        if self.default_interval_ms < self.min_interval_ms:
            _cfg_logger.warning(
                "readings.default_interval_ms=%s is below min_interval_ms %s; clamped",
                self.default_interval_ms,
                self.min_interval_ms,
            )
            object.__setattr__(self, "default_interval_ms", self.min_interval_ms)
        if self.max_history < 1:
            _cfg_logger.warning(
                "readings.max_history=%s is below 1; clamped to 1",
                self.max_history,
            )
            object.__setattr__(self, "max_history", 1)

    def clamp_interval(self, interval_ms: float) -> int:
        """Round to whole milliseconds, then apply the ``min_interval_ms`` floor."""
        return max(self.min_interval_ms, round(interval_ms))


@dataclass(slots=True)
class HubConfig:
    send_timeout_s: float
    outbox_maxsize: int

    def __post_init__(self) -> None:
        if not isinstance(self.send_timeout_s, (int, float)) or self.send_timeout_s <= 0:
            object.__setattr__(self, "send_timeout_s", 0.5)
        if not isinstance(self.outbox_maxsize, int) or self.outbox_maxsize < 1:
            object.__setattr__(self, "outbox_maxsize", max(1, int(self.outbox_maxsize or 1)))


@dataclass(slots=True)
class CatalogConfig:
    path: Path | None
    seed_incidents: bool


@dataclass(slots=True)
class LoggingConfig:
    level: str

    def __post_init__(self) -> None:
        level = str(self.level).upper()
        if level not in VALID_LOG_LEVELS:
            LOGGER.warning("logging.level=%r is not a known level; using INFO", self.level)
            level = "INFO"
        object.__setattr__(self, "level", level)


@dataclass(slots=True)
class AppConfig:
    server: ServerConfig
    readings: ReadingsConfig
    hub: HubConfig
    catalog: CatalogConfig
    logging: LoggingConfig
    config_path: Path


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML object at the top level.")
        return data


def load_config(config_path: Path | None = None) -> AppConfig:
    path = config_path or (SERVER_DIR / "config.yaml")
    path = path.resolve()
    override = _read_config_file(path)
    merged = _deep_merge(DEFAULT_CONFIG, override)

    server_port = _port_from_env(int(merged["server"]["port"]))
    if not 1 <= server_port <= 65535:
        raise ValueError(f"server.port must be 1-65535, got {server_port}")

    readings_cfg = merged["readings"]
    hub_cfg = merged["hub"]
    catalog_cfg = merged["catalog"]
    catalog_path_raw = catalog_cfg.get("path")
    catalog_path = (
        _resolve_config_path(str(catalog_path_raw), path)
        if isinstance(catalog_path_raw, str) and catalog_path_raw.strip()
        else None
    )

    app_config = AppConfig(
        server=ServerConfig(
            host=str(merged["server"]["host"]),
            port=server_port,
        ),
        readings=ReadingsConfig(
            default_interval_ms=int(readings_cfg["default_interval_ms"]),
            min_interval_ms=int(readings_cfg["min_interval_ms"]),
            max_history=int(readings_cfg["max_history"]),
        ),  # NOTE: ReadingsConfig.__post_init__ validates & clamps all fields
        hub=HubConfig(
            send_timeout_s=float(hub_cfg["send_timeout_s"]),
            outbox_maxsize=int(hub_cfg["outbox_maxsize"]),
        ),
        catalog=CatalogConfig(
            path=catalog_path,
            seed_incidents=bool(catalog_cfg.get("seed_incidents", True)),
        ),
        logging=LoggingConfig(level=str(merged["logging"].get("level", "INFO"))),
        config_path=path,
    )
    LOGGER.info(
        "Loaded config=%s port=%d interval_ms=%d catalog=%s",
        app_config.config_path,
        app_config.server.port,
        app_config.readings.default_interval_ms,
        app_config.catalog.path or "built-in",
    )
    return app_config
