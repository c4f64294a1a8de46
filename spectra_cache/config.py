"""
Central configuration loader for spectra-cache.

Reads ``config/config.yaml`` and ``.env``, merges environment-variable
overrides (``SPECTRA_`` prefix), and exposes a typed :class:`Settings`
singleton via :func:`get_settings`.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from spectra_cache.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve project root (directory containing ``config/``)
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent          # spectra_cache/
_PROJECT_ROOT = _THIS_DIR.parent                     # repo root


def _project_path(*parts: str) -> Path:
    """Build an absolute path relative to the project root."""
    return _PROJECT_ROOT.joinpath(*parts)


# ---------------------------------------------------------------------------
# Nested settings dataclasses
# ---------------------------------------------------------------------------


@dataclass
class CacheSettings:
    filter_capacity: int = 10000
    false_positive_rate: float = 0.01
    default_ttl_seconds: Optional[float] = None


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = "text"


@dataclass
class Settings:
    """Top-level settings container."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> Dict[str, Any]:
    """Read and parse a YAML file.  Returns ``{}`` if the file is missing."""
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _apply_dict(target: object, data: Dict[str, Any]) -> None:
    """Apply *data* values onto a dataclass instance, ignoring unknown keys."""
    for key, value in data.items():
        if not hasattr(target, key):
            continue
        setattr(target, key, value)


# ---------------------------------------------------------------------------
# Env-var overrides  (SPECTRA_SECTION_KEY  e.g. SPECTRA_CACHE_FILTER_CAPACITY)
# ---------------------------------------------------------------------------

_FLAT_SECTIONS = ["cache", "logging"]

_TYPE_MAP = {
    int: int,
    float: float,
    bool: lambda v: v.lower() in ("1", "true", "yes"),
    str: str,
}

# Fields whose default is ``None`` cannot be cast from their current type.
_OPTIONAL_CASTS = {
    ("cache", "default_ttl_seconds"): float,
}


def _apply_env_overrides(settings: Settings) -> None:
    """Override flat scalar fields via ``SPECTRA_<SECTION>_<KEY>`` env vars."""
    for section_name in _FLAT_SECTIONS:
        section = getattr(settings, section_name, None)
        if section is None:
            continue
        prefix = f"SPECTRA_{section_name.upper()}_"
        for key in list(vars(section)):
            env_key = prefix + key.upper()
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            current = getattr(section, key)
            cast = _OPTIONAL_CASTS.get(
                (section_name, key), _TYPE_MAP.get(type(current), str)
            )
            try:
                setattr(section, key, cast(env_val))
                logger.debug("Env override applied: %s=%s", env_key, env_val)
            except (ValueError, TypeError):
                logger.warning("Invalid env override %s=%s", env_key, env_val)


def _validate(settings: Settings) -> None:
    """Reject settings no filter could be built from."""
    cache = settings.cache
    if not isinstance(cache.filter_capacity, int) or cache.filter_capacity <= 0:
        raise ConfigurationError(
            f"cache.filter_capacity must be a positive integer, got {cache.filter_capacity!r}"
        )
    if not 0.0 < float(cache.false_positive_rate) < 1.0:
        raise ConfigurationError(
            f"cache.false_positive_rate must be in (0, 1), got {cache.false_positive_rate!r}"
        )
    if cache.default_ttl_seconds is not None and cache.default_ttl_seconds < 0:
        raise ConfigurationError(
            f"cache.default_ttl_seconds must not be negative, got {cache.default_ttl_seconds!r}"
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Optional[Settings] = None
_lock = threading.Lock()


def get_settings(
    *,
    yaml_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    _force_reload: bool = False,
) -> Settings:
    """Return the process-wide :class:`Settings` singleton.

    On first call (or when ``_force_reload=True``) the function:

    1. Calls ``load_dotenv()`` to populate env vars from ``.env``.
    2. Reads ``config/config.yaml``.
    3. Applies ``SPECTRA_*`` environment-variable overrides.

    Args:
        yaml_path: Override the YAML config file path (testing).
        env_path: Override the ``.env`` file path (testing).
        _force_reload: Re-read everything even if already loaded.

    Returns:
        The global ``Settings`` instance.

    Raises:
        ConfigurationError: If the merged cache settings are invalid.
    """
    global _settings

    if _settings is not None and not _force_reload:
        return _settings

    with _lock:
        # Double-check after acquiring lock
        if _settings is not None and not _force_reload:
            return _settings

        # 1. Load .env
        dotenv_path = env_path or _project_path(".env")
        load_dotenv(dotenv_path, override=True)

        # 2. Read YAML
        config_path = yaml_path or _project_path("config", "config.yaml")
        raw = _load_yaml(config_path)

        # 3. Build Settings with defaults, then overlay YAML values
        settings = Settings()
        for section_name in _FLAT_SECTIONS:
            section_data = raw.get(section_name)
            if isinstance(section_data, dict):
                _apply_dict(getattr(settings, section_name), section_data)

        # 4. Apply SPECTRA_* env-var overrides
        _apply_env_overrides(settings)
        _validate(settings)

        _settings = settings
        logger.info("Settings loaded from %s", config_path)
        return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for testing)."""
    global _settings
    with _lock:
        _settings = None


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object, including ``extra`` fields."""

    _RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message"}

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in self._RESERVED:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure the root logger from the ``logging`` settings section.

    Library modules only create module-level loggers; a host program
    calls this once at startup if it wants spectra-cache output.
    """
    log_settings = (settings or get_settings()).logging
    handler = logging.StreamHandler()
    if log_settings.format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logging.basicConfig(
        level=getattr(logging, log_settings.level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
