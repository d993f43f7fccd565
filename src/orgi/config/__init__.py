"""Configuration loading and validation."""

from .loader import DEFAULT_CONFIG_PATH, load_config
from .schema import (
    DiscoveryConfig,
    DocumentConfig,
    FileLoggingConfig,
    GatherConfig,
    LoggingConfig,
    OrgiConfig,
    RewriterConfig,
)

__all__ = [
    # Loader
    "load_config",
    "DEFAULT_CONFIG_PATH",
    # Root config
    "OrgiConfig",
    # Section configs
    "DocumentConfig",
    "DiscoveryConfig",
    "RewriterConfig",
    "GatherConfig",
    "LoggingConfig",
    "FileLoggingConfig",
]
