"""
Engine configuration.

Settings come from a TOML file; a missing file means defaults, and a broken
one is reported as a warning and otherwise ignored so that a bad config never
prevents a file from being opened.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PARQUET_SCOPE_CONFIG"
CONFIG_DIR_NAME = "parquet-scope"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class EngineConfig:
    # Decoded data pages kept in memory, across all column chunks.
    page_cache_size: int = 64
    # Decoded dictionary pages, one per column chunk.
    dictionary_cache_size: int = 32
    # Column chunks whose page header positions are remembered.
    chunk_index_cache_size: int = 256
    # Bytes read when probing for a page header; grown for larger headers.
    header_read_size: int = 1024
    prefetch_enabled: bool = True
    # Viewports decoded ahead of the current one.
    prefetch_depth: int = 1
    viewport_height: int = 20
    viewport_width: int = 8

    def validate(self):
        for name in ("page_cache_size", "dictionary_cache_size", "chunk_index_cache_size",
                     "header_read_size", "viewport_height", "viewport_width"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.prefetch_depth, int) or isinstance(self.prefetch_depth, bool) \
                or self.prefetch_depth < 0:
            raise ValueError(f"prefetch_depth must be a non-negative integer, got {self.prefetch_depth!r}")
        if not isinstance(self.prefetch_enabled, bool):
            raise ValueError(f"prefetch_enabled must be true or false, got {self.prefetch_enabled!r}")
        return self


def default_config_path():
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    base = os.environ.get("XDG_CONFIG_HOME")
    base = Path(base) if base else Path.home() / ".config"
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def config_from_mapping(values):
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning(f"Ignoring unknown config key(s): {', '.join(unknown)}")
    return replace(EngineConfig(), **{k: v for k, v in values.items() if k in known}).validate()


def load_config(path=None):
    """Load the engine configuration, falling back to defaults on any problem."""
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return EngineConfig()
    try:
        with open(path, "rb") as f:
            values = tomllib.load(f)
        config = config_from_mapping(values)
    except (OSError, tomllib.TOMLDecodeError, ValueError) as e:
        logger.warning(f"Failed to load config from {path}, using defaults: {e}")
        return EngineConfig()
    logger.debug(f"Loaded config from {path}: {config}")
    return config
