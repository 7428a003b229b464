"""Configuration file loader and validator.

Reads the INI configuration file into the `Config` dataclasses. Every value is coerced to the type
of the matching dataclass default, then the translation and cache settings are validated.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from core.trans.manager import TransManager
from models.config_models import Config
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

__all__: list[str] = [
    "DEFAULT_CONFIG_FILENAME",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_CONFIG_FILENAME: Final[str] = "transcache.ini"


class ConfigLoaderError(Exception):
    """Base class of the configuration errors."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file could not be parsed."""


class ConfigValueError(ConfigFormatError):
    """A setting has a value outside its allowed range."""


class ConfigTypeError(ConfigFormatError):
    """A setting has a value of the wrong type."""


class ConfigLoader:
    """Load `Config` from an INI file.

    Sections and keys mirror the dataclass field names, e.g. `[CACHE] MAX_BATCH_CHARS = 2500`.
    Missing sections and keys keep their defaults.

    Example:
        config = ConfigLoader(config_filename="transcache.ini").config

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or holds an invalid value.
    """

    def __init__(
        self,
        *,
        config_filename: str | Path = DEFAULT_CONFIG_FILENAME,
        script_name: str = "transcache",
        debug: bool = False,
        directory: str | None = None,
    ) -> None:
        """Read, coerce and validate the configuration.

        Args:
            config_filename (str | Path): INI file to load.
            script_name (str): Name of the calling program, shown in the missing-file message.
            debug (bool): Force GENERAL.DEBUG on.
            directory (str | None): Override for CACHE.DIRECTORY.
        """
        self.path: Path = Path(config_filename)
        if not self.path.is_file():
            msg: str = (
                f"Configuration file '{config_filename}' not found. "
                f"Create '{self.path.name}' next to '{script_name}' or pass its path."
            )
            raise ConfigFileNotFoundError(msg)

        self.config: Config = Config()
        self._apply(self._read(self.path))
        if debug:
            self.config.GENERAL.DEBUG = True
        if directory is not None:
            self.config.CACHE.DIRECTORY = directory
        self._validate()
        logger.debug("Configuration loaded from %s", self.path)

    @staticmethod
    def _read(path: Path) -> ConfigParser:
        parser = ConfigParser()
        try:
            with path.open(encoding="utf-8") as f:
                parser.read_file(f)
        except (configparser.Error, UnicodeDecodeError) as err:
            msg: str = f"Failed to parse configuration file '{path}': {err}"
            raise ConfigFormatError(msg) from err
        return parser

    def _apply(self, parser: ConfigParser) -> None:
        """Copy every known key of every known section into the Config object."""
        coercer = _ValueCoercer(parser)
        known_sections: set[str] = set()
        for section in fields(self.config):
            known_sections.add(section.name)
            if not parser.has_section(section.name):
                logger.debug("Section [%s] not present; using defaults", section.name)
                continue

            target: Any = getattr(self.config, section.name)
            known_keys: set[str] = set()
            for key in fields(target):
                known_keys.add(key.name.lower())
                if not parser.has_option(section.name, key.name):
                    continue
                value: Any = coercer.coerce(section.name, key.name, getattr(target, key.name))
                setattr(target, key.name, value)

            for option in parser.options(section.name):
                if option not in known_keys:
                    logger.warning("Unknown setting ignored: '%s.%s'", section.name, option.upper())

        for section_name in parser.sections():
            if section_name not in known_sections:
                logger.warning("Unknown section ignored: [%s]", section_name)

    def _validate(self) -> None:
        """Check the translation and cache settings.

        Raises:
            ConfigValueError: If a number is not positive or a required string is empty.
            ConfigTypeError: If a string setting holds another type.
        """
        engines: list[str] = TransManager.fetch_engine_names()
        if self.config.TRANSLATION.ENGINE not in engines:
            logger.warning(
                "Unknown value '%s' is set for 'TRANSLATION.ENGINE' (registered: %s)",
                self.config.TRANSLATION.ENGINE,
                ", ".join(engines),
            )

        for key_name in ("ENGINE", "DEFAULT_TARGET", "APP_NAME"):
            self._require_text("TRANSLATION", key_name)
        for key_name in ("MAX_BATCH_CHARS", "MAX_CONCURRENT_DISPATCHES"):
            self._require_positive("CACHE", key_name)

        if self.config.CACHE.DIRECTORY:
            self.config.CACHE.DIRECTORY = str(FileUtils.resolve_path(self.config.CACHE.DIRECTORY))

    def _require_text(self, section_name: str, key_name: str) -> None:
        value: Any = getattr(getattr(self.config, section_name), key_name)
        if not isinstance(value, str):
            msg: str = f"'{section_name}.{key_name}' must be a string, got {type(value).__name__}"
            raise ConfigTypeError(msg)
        if not value.strip():
            msg = f"'{section_name}.{key_name}' must not be empty"
            raise ConfigValueError(msg)

    def _require_positive(self, section_name: str, key_name: str) -> None:
        value: int = getattr(getattr(self.config, section_name), key_name)
        if value <= 0:
            msg: str = f"'{section_name}.{key_name}' must be a positive integer, got {value}"
            raise ConfigValueError(msg)


class _ValueCoercer:
    """Turns raw INI strings into the type of the dataclass default they replace."""

    def __init__(self, parser: ConfigParser) -> None:
        self.parser: ConfigParser = parser
        self._by_type: dict[type, Callable[[str, str], Any]] = {
            bool: self.parser.getboolean,
            int: self._as_int,
            float: self._as_float,
        }

    @staticmethod
    def _unquote(raw: str) -> str:
        for char in ("'", '"'):
            raw = raw.removeprefix(char).removesuffix(char)
        return raw.strip()

    def _as_int(self, section_name: str, key_name: str) -> int:
        return int(float(self._unquote(self.parser.get(section_name, key_name))))

    def _as_float(self, section_name: str, key_name: str) -> float:
        return float(self._unquote(self.parser.get(section_name, key_name)))

    def _as_literal(self, section_name: str, key_name: str) -> Any:
        return ast.literal_eval(self.parser.get(section_name, key_name))

    def coerce(self, section_name: str, key_name: str, default: Any) -> Any:
        """Read one setting as the type of `default`.

        Strings and containers are written as Python literals, e.g. `ENGINE = "deepl"`.

        Raises:
            ConfigValueError: If a number or boolean cannot be parsed.
            ConfigFormatError: If a literal has invalid syntax.
            ConfigTypeError: If a literal evaluates to another type than the default.
        """
        field_name: str = f"{section_name}.{key_name}"
        reader: Callable[[str, str], Any] = self._by_type.get(type(default), self._as_literal)
        try:
            value: Any = reader(section_name, key_name)
        except SyntaxError as err:
            msg: str = f"Invalid literal for {field_name}: {self.parser.get(section_name, key_name)}"
            raise ConfigFormatError(msg) from err
        except ValueError as err:
            msg = f"Invalid value for {field_name}: {err}"
            raise ConfigValueError(msg) from err

        if not isinstance(value, type(default)):
            msg = f"'{field_name}' expects {type(default).__name__}, got {type(value).__name__}"
            raise ConfigTypeError(msg)
        return value


if __name__ == "__main__":
    import pprint

    pprint.pprint(ConfigLoader().config, indent=1, width=100)
