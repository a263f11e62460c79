"""Composition root for tmplcache.

Loads configuration, optionally configures logging, and wires the local
file system adapter into a ready-to-use Cache.
"""

import logging
from pathlib import Path
from typing import Any, Optional

# --- Domain Layer ---
from tmplcache.domain.interfaces.filesystem import FileSystem

# --- Infrastructure Layer ---
from tmplcache.infrastructure.cache.caching_service import Cache
from tmplcache.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    get_cache_options,
    get_config,
    load_configuration,
)
from tmplcache.infrastructure.filesystem.local_fs import LocalFileSystem
from tmplcache.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, level_from_name, setup_logging

logger = logging.getLogger(__name__)


def create_cache(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    configure_logging: bool = False,
    fs: Optional[FileSystem] = None,
    **overrides: Any,
) -> Cache:
    """Creates a Cache from configuration.

    Args:
        config_file: YAML configuration file (defaults to ~/.tmplcache/config.yaml).
        env_file: .env file (searched upwards from cwd if None).
        configure_logging: Also configure the root logger from `logging.*` settings.
        fs: File system adapter; defaults to the local disk.
        **overrides: CacheOptions fields that win over configuration.
    """
    load_configuration(config_file or DEFAULT_CONFIG_FILE, env_file)

    if configure_logging:
        setup_logging(
            log_level=level_from_name(get_config('logging.level', 'INFO')),
            log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
            log_file=get_config('logging.file'),
        )
        logger.info("Configuration and logging initialized.")

    options = get_cache_options(**overrides)
    return Cache(options, fs=fs or LocalFileSystem())
