"""Provider contract shared by every translation engine.

An engine turns an ordered list of texts into the same number of translations, in the same order.
Credentials, transport and request limits stay inside the concrete engine.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Final

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable

    from models.config_models import Config

__all__: list[str] = [
    "DEFAULT_MAX_BATCH_CHARS",
    "EngineAttributes",
    "NotSupportedLanguagesError",
    "TransInterface",
    "TranslateExceptionError",
    "TranslationMismatchError",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_MAX_BATCH_CHARS: Final[int] = 2500
AUTH_ENV_SUFFIX: Final[str] = "_API_OAUTH"


@dataclass(frozen=True)
class EngineAttributes:
    """Request limits of one engine.

    Attributes:
        name (str): Engine name, used in log records.
        max_batch_chars (int): Largest combined text length accepted in one batch.
        max_texts_per_request (int | None): Largest number of texts per API request. None means unlimited.
    """

    name: str
    max_batch_chars: int = DEFAULT_MAX_BATCH_CHARS
    max_texts_per_request: int | None = None


class TranslateExceptionError(Exception):
    """An error occurred during the translation process."""


class NotSupportedLanguagesError(TranslateExceptionError):
    """An unsupported language code was specified."""


class TranslationQuotaExceededError(TranslateExceptionError):
    """The translatable character quota has been exceeded."""


class TranslationRateLimitError(TranslateExceptionError):
    """The translation request was rate-limited by the API."""


class TranslationMismatchError(TranslateExceptionError):
    """The provider returned a different number of translations than texts submitted."""


class TransInterface(ABC):
    """Base class of the translation engines.

    Defining a subclass registers it in `registered` under `fetch_engine_name()`, which is how the
    configured engine name is turned into a class. A blank name leaves the subclass unregistered,
    which is what test doubles use.
    """

    registered: ClassVar[dict[str, type[TransInterface]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        fetch = getattr(cls, "fetch_engine_name", None)
        if not callable(fetch):
            msg = f"{cls.__name__} must provide a static fetch_engine_name()"
            raise TypeError(msg)
        cls._register(fetch())

    @classmethod
    def _register(cls, name: object) -> None:
        if not isinstance(name, str) or not name:
            return
        owner: type[TransInterface] | None = TransInterface.registered.get(name)
        if owner is not None:
            msg: str = f"Engine name '{name}' is already taken by {owner.__name__}"
            raise ValueError(msg)
        TransInterface.registered[name] = cls

    def __init__(self) -> None:
        self._attributes: EngineAttributes | None = None

    @property
    def engine_attributes(self) -> EngineAttributes:
        """Limits declared by `initialize()`.

        Raises:
            RuntimeError: If read before `initialize()` or assigned twice.
        """
        if self._attributes is None:
            msg = f"{type(self).__name__} has not been initialized"
            raise RuntimeError(msg)
        return self._attributes

    @engine_attributes.setter
    def engine_attributes(self, attributes: EngineAttributes) -> None:
        if self._attributes is not None:
            msg = f"{type(self).__name__} attributes are already set"
            raise RuntimeError(msg)
        self._attributes = attributes

    @property
    def engine_name(self) -> str:
        return self.engine_attributes.name

    @property
    def max_batch_chars(self) -> int:
        return self.engine_attributes.max_batch_chars

    def resolve_auth_key(self, auth_key: str | None) -> str:
        """Return `auth_key`, or `<ENGINE>_API_OAUTH` from the environment when it is empty."""
        if auth_key:
            return auth_key
        return os.getenv(f"{self.fetch_engine_name().upper()}{AUTH_ENV_SUFFIX}", "")

    async def _translate_in_chunks(
        self, contents: list[str], request: Callable[[list[str]], Awaitable[list[str]]]
    ) -> list[str]:
        """Call `request` once per slice of at most `max_texts_per_request` texts and join the results."""
        size: int = self.engine_attributes.max_texts_per_request or max(len(contents), 1)
        translations: list[str] = []
        requests: int = 0
        for start in range(0, len(contents), size):
            translations.extend(await request(contents[start : start + size]))
            requests += 1
        logger.debug("'%s' translated %d texts in %d request(s)", self.engine_name, len(contents), requests)
        return translations

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can currently accept requests."""
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def fetch_engine_name() -> str:
        """Registry name of the engine.

        Called from `__init_subclass__`, so it must work on the class before any instance exists.
        """
        raise NotImplementedError

    @abstractmethod
    def initialize(self, config: Config, auth_key: str | None = None) -> None:
        """Create the SDK client and declare `engine_attributes`.

        Args:
            config (Config): Application configuration.
            auth_key (str | None): Credential. Empty means `resolve_auth_key` falls back to the environment.

        Raises:
            RuntimeError: If the client cannot be created.
            TranslateExceptionError: If the credential is rejected.
        """
        raise NotImplementedError

    @abstractmethod
    async def translate_batch(self, contents: list[str], tgt_lang: str, src_lang: str | None = None) -> list[str]:
        """Translate `contents` in order.

        Args:
            contents (list[str]): Texts to translate.
            tgt_lang (str): Target language code.
            src_lang (str | None): Source language code. None lets the provider detect it.

        Returns:
            list[str]: One translation per text, in the order of `contents`.

        Raises:
            NotSupportedLanguagesError: If a language code is rejected.
            TranslationQuotaExceededError: If the character quota is used up.
            TranslationRateLimitError: If the provider throttles the request.
            TranslateExceptionError: For any other provider failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Drop the SDK client."""
        raise NotImplementedError
