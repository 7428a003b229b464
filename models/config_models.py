"""Configuration data models for the translation cache.

Each data class maps to one section of the INI configuration file. Field names match the INI keys,
and the default value of each field decides how the loader coerces the raw string.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Cache",
    "Config",
    "General",
    "Translation",
]


@dataclass
class General:
    DEBUG: bool = False
    LOG_FILE: str = ""


@dataclass
class Translation:
    ENGINE: str = "deepl"
    DEFAULT_TARGET: str = "en"
    DEFAULT_KEY: str = ""
    APP_NAME: str = "TranslationSuite"


@dataclass
class Cache:
    DIRECTORY: str = ""
    MAX_BATCH_CHARS: int = 2500
    MAX_CONCURRENT_DISPATCHES: int = 4


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    TRANSLATION: Translation = field(default_factory=Translation)
    CACHE: Cache = field(default_factory=Cache)
