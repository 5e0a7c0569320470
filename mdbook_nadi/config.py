"""
mdbook-nadi Configuration
=========================

Configuration is layered, later sources win:

1. Defaults (NadiBookConfig)
2. nadi-book.yaml or .nadi-book.yaml at the book root
3. The [preprocessor.nadi] table of book.toml (sent by mdBook in the context)
4. Environment variables:
   - MDBOOK_NADI_COMMAND -> nadi_command
   - MDBOOK_NADI_TIMEOUT -> timeout
   - MDBOOK_NADI_SHOW_SOURCE -> show_source
   - MDBOOK_NADI_LOG_LEVEL -> log_level
"""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .logging_utils import LogLevel

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("nadi-book.yaml", ".nadi-book.yaml")
WORKING_DIRS = ("src", "root")

# book.toml keys mdBook itself uses in a preprocessor table
_MDBOOK_KEYS = frozenset({"command", "renderers", "before", "after", "optional"})


@dataclass
class NadiBookConfig:
    """Preprocessor configuration."""
    nadi_command: str = "nadi"
    nadi_args: List[str] = field(default_factory=list)
    timeout: Optional[float] = None
    show_source: bool = True
    hide_silent_lines: bool = False
    result_label: str = "Results:"
    error_label: str = "*Error*:"
    working_dir: str = "src"
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# =============================================================================
# Value coercion
# =============================================================================

def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"'{key}' must be a boolean, got {value!r}")


def _as_timeout(key: str, value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none")):
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return timeout


def _as_args(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigError(f"'{key}' must be a list of strings, got {value!r}")


def _as_str(key: str, value: Any) -> str:
    if not isinstance(value, (str, int, float)):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return str(value)


_COERCE = {
    "nadi_command": _as_str,
    "nadi_args": _as_args,
    "timeout": _as_timeout,
    "show_source": _as_bool,
    "hide_silent_lines": _as_bool,
    "result_label": _as_str,
    "error_label": _as_str,
    "working_dir": _as_str,
    "log_level": _as_str,
}


def apply_mapping(config: NadiBookConfig, data: Mapping[str, Any], source: str) -> NadiBookConfig:
    """Apply a mapping of settings onto a config; dashes in keys are accepted."""
    for raw_key, value in data.items():
        key = str(raw_key).replace("-", "_")
        coerce = _COERCE.get(key)
        if coerce is None:
            if raw_key not in _MDBOOK_KEYS:
                logger.warning(f"Ignoring unknown setting '{raw_key}' in {source}")
            continue
        setattr(config, key, coerce(key, value))
    return config


# =============================================================================
# Configuration Loader
# =============================================================================

def find_config_file(book_root: Path) -> Optional[Path]:
    """Find nadi-book.yaml (or .nadi-book.yaml) at the book root."""
    for name in CONFIG_FILENAMES:
        candidate = Path(book_root) / name
        if candidate.exists():
            return candidate
    return None


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    # allow the settings to live under a top-level "nadi" key
    return data.get("nadi", data) if isinstance(data.get("nadi"), dict) else data


def _apply_env_overrides(config: NadiBookConfig) -> NadiBookConfig:
    """Apply environment variable overrides to config."""
    env = {
        "nadi_command": os.environ.get("MDBOOK_NADI_COMMAND"),
        "timeout": os.environ.get("MDBOOK_NADI_TIMEOUT"),
        "show_source": os.environ.get("MDBOOK_NADI_SHOW_SOURCE"),
        "log_level": os.environ.get("MDBOOK_NADI_LOG_LEVEL"),
    }
    return apply_mapping(config, {k: v for k, v in env.items() if v}, "environment")


def _validate_config(config: NadiBookConfig) -> None:
    if config.working_dir not in WORKING_DIRS:
        raise ConfigError(f"'working_dir' must be one of {', '.join(WORKING_DIRS)}, got {config.working_dir!r}")
    if config.log_level.upper() not in LogLevel.__members__:
        raise ConfigError(f"'log_level' must be one of {', '.join(LogLevel.__members__)}")
    if not config.nadi_command.strip():
        raise ConfigError("'nadi_command' must not be empty")


def load_config(
    book_root: Optional[Path] = None,
    preprocessor_table: Optional[Mapping[str, Any]] = None,
    config_path: Optional[Path] = None,
) -> NadiBookConfig:
    """
    Load configuration from the book root, the book.toml table and the environment.

    Args:
        book_root: Book root directory (searched for nadi-book.yaml)
        preprocessor_table: The [preprocessor.nadi] table from book.toml
        config_path: Explicit YAML file (skips the search)

    Returns:
        NadiBookConfig instance

    Raises:
        ConfigError: On invalid values
    """
    config = NadiBookConfig()

    if config_path is None and book_root is not None:
        config_path = find_config_file(book_root)

    if config_path is not None:
        logger.info(f"Loading config from: {config_path}")
        apply_mapping(config, _load_yaml(Path(config_path)), str(config_path))

    if preprocessor_table:
        apply_mapping(config, preprocessor_table, "book.toml [preprocessor.nadi]")

    config = _apply_env_overrides(config)
    _validate_config(config)
    return config
