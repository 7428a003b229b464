"""Configuration loading and validation for the translation cache.

This package provides utilities for loading, parsing, and validating configuration
settings from the transcache.ini file.
"""

from config.loader import (
    DEFAULT_CONFIG_FILENAME,
    ConfigFileNotFoundError,
    ConfigFormatError,
    ConfigLoader,
    ConfigTypeError,
    ConfigValueError,
)

__all__: list[str] = [
    "DEFAULT_CONFIG_FILENAME",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigTypeError",
    "ConfigValueError",
]
