"""Configuration management for livetv-tui."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .logging_utils import get_logger

CONFIG_PATH = Path.home() / ".config" / "livetv_tui" / "config.yaml"

DEFAULT_PLAYLIST_URL = (
    "https://raw.githubusercontent.com/Miguel179-spe/tvlion/refs/heads/peliculas/LiveTV.m3u"
)

log = get_logger(__name__)


@dataclass(slots=True)
class EngineOptions:
    """Buffering options handed through to the playback engine untouched."""

    buffer_ahead_seconds: int = 30
    max_buffer_bytes: int = 60 * 1000 * 1000
    network_timeout_seconds: int = 10
    reconnect_attempts: int = 5
    low_latency: bool = False


@dataclass(slots=True)
class AppConfig:
    """Top level application configuration."""

    playlist_url: str = DEFAULT_PLAYLIST_URL
    user_agent: Optional[str] = None
    preferred_player: Optional[str] = None
    theme: Optional[str] = None
    last_category: Optional[str] = None
    engine: EngineOptions = field(default_factory=EngineOptions)


_ENGINE_INT_FIELDS = (
    "buffer_ahead_seconds",
    "max_buffer_bytes",
    "network_timeout_seconds",
    "reconnect_attempts",
)
_OPTIONAL_STR_FIELDS = ("user_agent", "preferred_player", "theme", "last_category")


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _clean_scalar(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        value = value[1:-1]
    return value


def _parse_bool(value: object, *, default: bool) -> bool:
    """Coerce *value* into a boolean flag."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "yes", "on", "1"}:
            return True
        if normalized in {"false", "no", "off", "0"}:
            return False
    return default


def _parse_positive_int(name: str, value: object, default: int) -> int:
    if isinstance(value, bool):
        log.warning("Ignoring non-numeric value for %s", name)
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        log.warning("Ignoring invalid value %r for %s; using %d", value, name, default)
        return default
    if parsed <= 0:
        log.warning("Value for %s must be positive; using %d", name, default)
        return default
    return parsed


def _parse_config(raw: str) -> dict[str, object]:
    """Parse the flat ``key: value`` format with one level of nested mappings."""

    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        pass
    else:
        return data if isinstance(data, dict) else {}

    result: dict[str, object] = {}
    current_section: Optional[dict[str, str]] = None
    for line in raw.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        if not line.startswith(" "):
            key, _, remainder = line.partition(":")
            key = key.strip()
            value = remainder.strip()
            if value:
                result[key] = _clean_scalar(value)
                current_section = None
            else:
                current_section = {}
                result[key] = current_section
            continue
        if current_section is not None:
            key, _, value = line.strip().partition(":")
            current_section[key.strip()] = _clean_scalar(value)
    return result


def _dump_config(data: AppConfig) -> str:
    lines: list[str] = [f"playlist_url: {data.playlist_url}"]
    for name in _OPTIONAL_STR_FIELDS:
        value = getattr(data, name)
        if value:
            lines.append(f"{name}: {value}")
    lines.append("engine:")
    for name in _ENGINE_INT_FIELDS:
        lines.append(f"  {name}: {getattr(data.engine, name)}")
    lines.append(f"  low_latency: {'true' if data.engine.low_latency else 'false'}")
    lines.append("")
    return "\n".join(lines)


def _load_engine(raw: object) -> EngineOptions:
    engine = EngineOptions()
    if not isinstance(raw, dict):
        if raw not in (None, ""):
            log.warning("Ignoring malformed engine section in configuration")
        return engine
    for name in _ENGINE_INT_FIELDS:
        if name in raw:
            setattr(engine, name, _parse_positive_int(name, raw[name], getattr(engine, name)))
    engine.low_latency = _parse_bool(raw.get("low_latency"), default=engine.low_latency)
    return engine


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from *path* or return the defaults."""

    config_path = path or CONFIG_PATH
    if not config_path.exists():
        log.info("Configuration file missing at %s; using defaults", config_path)
        return AppConfig()
    log.debug("Loading configuration from %s", config_path)
    try:
        raw = config_path.read_text(encoding="utf8")
    except OSError:
        log.warning("Unable to read configuration at %s; using defaults", config_path)
        return AppConfig()
    data = _parse_config(raw)

    config = AppConfig()
    playlist_raw = data.get("playlist_url")
    if isinstance(playlist_raw, str) and playlist_raw.strip():
        config.playlist_url = playlist_raw.strip()
    elif playlist_raw is not None:
        log.warning("Ignoring empty playlist_url; using %s", DEFAULT_PLAYLIST_URL)
    for name in _OPTIONAL_STR_FIELDS:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            setattr(config, name, value.strip())
    config.engine = _load_engine(data.get("engine"))
    log.info("Loaded configuration from %s (playlist %s)", config_path, config.playlist_url)
    return config


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    """Persist *config* to disk at *path*."""

    config_path = path or CONFIG_PATH
    _ensure_parent(config_path)
    config_path.write_text(_dump_config(config), encoding="utf8")
    log.info("Configuration saved to %s", config_path)


__all__ = [
    "AppConfig",
    "CONFIG_PATH",
    "DEFAULT_PLAYLIST_URL",
    "EngineOptions",
    "load_config",
    "save_config",
]
