"""
Configuration module for the rmlpub pipeline.
"""

from .settings import (
    Config,
    ConfigurationError,
    FeedConfig,
    HttpConfig,
    MapperConfig,
    TempConfig,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'FeedConfig',
    'HttpConfig',
    'MapperConfig',
    'TempConfig'
]
