# Shared utilities package
from .config import Config, Settings, get_config, get_settings, init_config
from .exceptions import (
    BackendError,
    ConfigurationError,
    GraphIndexError,
    IndexingErrors,
    SerializationError,
)

__all__ = [
    "Config",
    "Settings",
    "get_config",
    "get_settings",
    "init_config",
    "GraphIndexError",
    "ConfigurationError",
    "BackendError",
    "SerializationError",
    "IndexingErrors",
]
