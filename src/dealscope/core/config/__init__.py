"""Configuration loading and validation."""

from .models import (
    # Enums
    EntityKind,
    ClassificationSource,
    SectorImportance,
    # Config models
    AppConfig,
    UpstreamConfig,
    ClassifierConfig,
    SectorConfig,
    LoggingConfig,
)
from .loader import ConfigError, load_app_config, validate_config_file

__all__ = [
    # Enums
    "EntityKind",
    "ClassificationSource",
    "SectorImportance",
    # Config models
    "AppConfig",
    "UpstreamConfig",
    "ClassifierConfig",
    "SectorConfig",
    "LoggingConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_config_file",
]
