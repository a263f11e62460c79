"""Configuration for cache hosts.

Settings come from four layers; the first one that knows a key wins:

1. Values pinned with `set_config_for_testing`.
2. `TMPLCACHE_*` environment variables (a `.env` file is merged into the
   environment without overriding variables that are already set).
3. The YAML file, default `~/.tmplcache/config.yaml`.
4. The caller's default.

`get_cache_options` turns the `cache.*` keys into CacheOptions.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
import yaml

from tmplcache.domain.models.errors import ConfigurationError
from tmplcache.domain.models.options import (
    DEFAULT_MAX_FILES,
    DEFAULT_TTL_DAYS,
    CacheOptions,
    default_cache_dir,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".tmplcache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "TMPLCACHE_"

_TRUE_WORDS = ('true', '1', 'yes')
_FALSE_WORDS = ('false', '0', 'no')

# Module-level state; load_configuration() fills it once per process
_file_settings: Dict[str, Any] = {}
_pinned: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Reads the YAML file and the .env file once per process.

    Nested YAML mappings become dotted keys: `cache: {ttl_days: 3}` is
    read back as `cache.ttl_days`. A missing or malformed YAML file leaves
    the file layer empty.

    Args:
        config_file: YAML settings file.
        env_file: .env file; when None the nearest one above cwd is used.
    """
    global _file_settings, _loaded
    if _loaded:
        return

    _file_settings = _read_yaml(Path(config_file))

    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path and load_dotenv(dotenv_path=dotenv_path, override=False):
        logger.info(f"Merged environment from {dotenv_path}")

    _loaded = True
    logger.debug(f"Configuration loaded: {len(_file_settings)} keys from {config_file}")


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.is_file():
        logger.debug(f"No settings file at {config_file}")
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Ignoring unreadable settings file {config_file}: {e}")
        return {}
    if document is None:
        return {}
    if not isinstance(document, dict):
        logger.warning(f"Settings file {config_file} must hold a mapping, got {type(document).__name__}")
        return {}
    return _flatten(document)


def _flatten(mapping: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def env_var_name(key: str) -> str:
    """cache.ttl_days -> TMPLCACHE_CACHE_TTL_DAYS"""
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def _coerce(raw: str) -> Any:
    """Environment values are strings; recover booleans and numbers."""
    lowered = raw.strip().lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    for kind in (int, float):
        try:
            return kind(raw)
        except ValueError:
            continue
    return raw


def get_config(key: str, default: Any = None) -> Any:
    """Looks up a dotted key through the pinned, environment and file layers.

    Args:
        key: Dotted key, e.g. 'cache.dir'.
        default: Returned when no layer defines the key.
    """
    if key in _pinned:
        return _pinned[key]

    raw = os.environ.get(env_var_name(key))
    if raw is not None:
        return _coerce(raw)

    return _file_settings.get(key, default)


def find_dotenv_path() -> Optional[Path]:
    """Nearest .env file in cwd or one of its parents."""
    try:
        cwd = Path.cwd()
    except OSError as e:
        logger.warning(f"Cannot resolve working directory while looking for {ENV_FILE_NAME}: {e}")
        return None
    for directory in (cwd, *cwd.parents):
        candidate = directory / ENV_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def set_config(key: str, value: Any) -> None:
    """Overrides a key for this process and any child process it starts."""
    _file_settings[key] = value
    os.environ[env_var_name(key)] = str(value)
    logger.debug(f"Config override: {key}={value!r}")


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Pins values above every other layer until clear_test_config()."""
    _pinned.update(config_dict)


def clear_test_config() -> None:
    _pinned.clear()


def reset_configuration() -> None:
    """Forgets the file layer so the next load_configuration() re-reads it."""
    global _file_settings, _loaded
    _file_settings = {}
    _loaded = False


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        logger.warning(f"Cannot read '{value}' as a boolean, using {default}")
        return default
    return bool(value)


def get_cache_options(**overrides: Any) -> CacheOptions:
    """Builds CacheOptions from the `cache.*` settings.

    Keyword overrides (any CacheOptions field) win over configuration.

    Raises:
        ConfigurationError: If a numeric setting cannot be parsed.
    """
    try:
        settings: Dict[str, Any] = {
            "enabled": _as_bool(get_config('cache.enabled'), True),
            "cache_dir": Path(str(get_config('cache.dir', default_cache_dir()))),
            "ttl_days": float(get_config('cache.ttl_days', DEFAULT_TTL_DAYS)),
            "max_files": int(get_config('cache.max_files', DEFAULT_MAX_FILES)),
            "auto_cleanup": _as_bool(get_config('cache.auto_cleanup'), True),
        }
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid cache configuration: {e}") from e
    settings.update(overrides)
    return CacheOptions(**settings)
