"""Storage configuration loader.

Loads settings from ~/.complaints-store/config.json, then applies
``COMPLAINTS_STORE_*`` environment overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .docs import DOCS_FORMATS
from .errors import InvalidConfigurationError
from .repo.cache import DEFAULT_CACHE_SIZE, EvictionPolicy, validate_cache_size

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".complaints-store" / "config.json"
ENV_PREFIX = "COMPLAINTS_STORE_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def default_base_dir() -> Path:
    """XDG data directory for complaint files."""
    data_home = os.getenv("XDG_DATA_HOME")
    root = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return root / "complaints"


@dataclass
class StorageConfig:
    """Configuration for the complaint store.

    Attributes:
        base_dir: Directory holding one JSON file per complaint.
        cache_enabled: Use the cached repository.
        cache_max_size: Cache capacity, 1..100000.
        cache_eviction: Eviction policy (lru, fifo, none).
        docs_enabled: Export filed complaints as documentation.
        docs_dir: Directory for exported documentation.
        docs_format: markdown or text.
        log_level: Root log level for the CLI.
        trace_file: Optional JSONL file receiving finished spans.
    """

    base_dir: Path = field(default_factory=default_base_dir)
    cache_enabled: bool = True
    cache_max_size: int = DEFAULT_CACHE_SIZE
    cache_eviction: EvictionPolicy = EvictionPolicy.LRU
    docs_enabled: bool = False
    docs_dir: Path = Path("docs/complaints")
    docs_format: str = "markdown"
    log_level: str = "WARNING"
    trace_file: Path | None = None

    def __post_init__(self) -> None:
        """Validate config and normalize types."""
        self.base_dir = Path(self.base_dir).expanduser()
        self.docs_dir = Path(self.docs_dir).expanduser()
        if self.trace_file is not None:
            self.trace_file = Path(self.trace_file).expanduser()

        self.cache_max_size = validate_cache_size(self.cache_max_size)
        self.cache_eviction = EvictionPolicy.parse(self.cache_eviction)

        if self.docs_format not in DOCS_FORMATS:
            raise InvalidConfigurationError(
                f"invalid docs format '{self.docs_format}' "
                f"(expected one of: {', '.join(DOCS_FORMATS)})"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise InvalidConfigurationError(f"invalid log level '{self.log_level}'")


def load_config(
    config_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> StorageConfig:
    """Load StorageConfig from a JSON file plus environment overrides.

    The config file should have this structure:
    ```json
    {
      "storage": {
        "base_dir": "~/complaints",
        "cache_enabled": true,
        "cache_max_size": 1000,
        "cache_eviction": "lru"
      },
      "docs": {"enabled": true, "dir": "docs/complaints", "format": "markdown"},
      "log": {"level": "INFO", "trace_file": "~/.complaints-store/spans.jsonl"}
    }
    ```

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.
        environ: Environment mapping. Uses os.environ if None.

    Returns:
        StorageConfig instance with loaded values.

    Raises:
        InvalidConfigurationError: If a value is out of range.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
    else:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        except OSError as e:
            logger.warning("Cannot read %s: %s. Using defaults.", path, e)

    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        data = {}

    values = _parse_config(data)
    values.update(_env_overrides(os.environ if environ is None else environ))
    return StorageConfig(**values)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _parse_config(data: dict[str, Any]) -> dict[str, Any]:
    """Map the nested JSON layout onto StorageConfig keyword arguments."""
    storage = _section(data, "storage")
    docs = _section(data, "docs")
    log = _section(data, "log")

    mapping = {
        "base_dir": storage.get("base_dir"),
        "cache_enabled": storage.get("cache_enabled"),
        "cache_max_size": storage.get("cache_max_size"),
        "cache_eviction": storage.get("cache_eviction"),
        "docs_enabled": docs.get("enabled"),
        "docs_dir": docs.get("dir"),
        "docs_format": docs.get("format"),
        "log_level": log.get("level"),
        "trace_file": log.get("trace_file"),
    }
    values = {k: v for k, v in mapping.items() if v is not None}
    for key in ("cache_enabled", "docs_enabled"):
        if key in values and not isinstance(values[key], bool):
            raise InvalidConfigurationError(f"{key} must be true or false")
    return values


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise InvalidConfigurationError(f"{name} must be a boolean, got '{raw}'")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise InvalidConfigurationError(f"{name} must be an integer, got '{raw}'") from None


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    """Collect COMPLAINTS_STORE_* overrides."""
    overrides: dict[str, Any] = {}
    for key in (
        "base_dir",
        "cache_enabled",
        "cache_max_size",
        "cache_eviction",
        "docs_enabled",
        "docs_dir",
        "docs_format",
        "log_level",
        "trace_file",
    ):
        name = ENV_PREFIX + key.upper()
        raw = environ.get(name)
        if raw is None or raw == "":
            continue
        if key in ("cache_enabled", "docs_enabled"):
            overrides[key] = _parse_bool(name, raw)
        elif key == "cache_max_size":
            overrides[key] = _parse_int(name, raw)
        else:
            overrides[key] = raw
    return overrides


def save_config(config: StorageConfig, config_path: Path | None = None) -> None:
    """Save StorageConfig to a JSON file, writing only non-default values.

    Args:
        config: The config to save.
        config_path: Path to write to. Uses DEFAULT_CONFIG_PATH if None.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    defaults = StorageConfig()

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    storage: dict[str, Any] = {}
    if config.base_dir != defaults.base_dir:
        storage["base_dir"] = str(config.base_dir)
    if config.cache_enabled != defaults.cache_enabled:
        storage["cache_enabled"] = config.cache_enabled
    if config.cache_max_size != defaults.cache_max_size:
        storage["cache_max_size"] = config.cache_max_size
    if config.cache_eviction != defaults.cache_eviction:
        storage["cache_eviction"] = config.cache_eviction.value

    docs: dict[str, Any] = {}
    if config.docs_enabled != defaults.docs_enabled:
        docs["enabled"] = config.docs_enabled
    if config.docs_dir != defaults.docs_dir:
        docs["dir"] = str(config.docs_dir)
    if config.docs_format != defaults.docs_format:
        docs["format"] = config.docs_format

    log: dict[str, Any] = {}
    if config.log_level != defaults.log_level:
        log["level"] = config.log_level
    if config.trace_file is not None:
        log["trace_file"] = str(config.trace_file)

    data = {
        name: section
        for name, section in (("storage", storage), ("docs", docs), ("log", log))
        if section
    }

    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise
