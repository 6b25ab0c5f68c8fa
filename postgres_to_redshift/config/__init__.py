from .model import ExportSettings, MigrationConfig, StorageSettings
from .loader import load_config, ConfigError

__all__ = [
    "MigrationConfig",
    "StorageSettings",
    "ExportSettings",
    "load_config",
    "ConfigError",
]
