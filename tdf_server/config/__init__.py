"""Configuration management for the TDF server."""

from .loader import load_config
from .models import CodecConfig, LoggingConfig, ServerConfig, Settings


__all__ = [
    "CodecConfig",
    "LoggingConfig",
    "ServerConfig",
    "Settings",
    "load_config",
]
