from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar, Final

from deepl import DeepLClient, Language, TextResult
from deepl.exceptions import (
    AuthorizationException,
    ConnectionException,
    DeepLException,
    QuotaExceededException,
    TooManyRequestsException,
)

from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config


__all__: list[str] = ["DeeplTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEEPL_MAX_BATCH_CHARS: Final[int] = 30000
DEEPL_MAX_TEXTS_PER_REQUEST: Final[int] = 50

_AUTH_FAILED: Final[str] = "DeepL rejected the authentication key"
_UNIFIED_CHINESE: Final[tuple[str, ...]] = ("zh-CN", "zh-TW")
_PREFERRED_TARGETS: Final[dict[str, str]] = {"zh": "ZH-HANS"}


class DeeplTranslation(TransInterface):
    """DeepL engine.

    Language codes are accepted in their short lower-case form ('en', 'ja') and mapped to the codes the
    SDK expects. Target English and Portuguese map to the regional variant the SDK lists last, and
    target Chinese maps to Simplified Chinese when the SDK offers it.
    """

    _source_codes: ClassVar[dict[str, str]] = {}
    _target_codes: ClassVar[dict[str, str]] = {}

    def __init__(self) -> None:
        super().__init__()
        self._client: DeepLClient | None = None
        self._quota_exhausted: bool = False
        self._load_language_codes()

    @classmethod
    def _load_language_codes(cls) -> None:
        if cls._source_codes and cls._target_codes:
            return
        sdk_codes: list[str] = [
            value for name, value in vars(Language).items() if name.isupper() and isinstance(value, str)
        ]
        for code in sdk_codes:
            short: str = code.partition("-")[0].lower()
            cls._source_codes[short] = short.upper()
            cls._target_codes[short] = code.upper()
        offered: set[str] = {code.upper() for code in sdk_codes}
        for short, preferred in _PREFERRED_TARGETS.items():
            if preferred in offered:
                cls._target_codes[short] = preferred
        for variant in _UNIFIED_CHINESE:
            cls._source_codes[variant] = cls._target_codes[variant] = "ZH"
        logger.debug("DeepL language codes loaded: %d targets", len(cls._target_codes))

    @property
    def _inst(self) -> DeepLClient:
        if self._client is None:
            msg = "DeepL client is not initialized"
            raise TranslateExceptionError(msg)
        return self._client

    @property
    def is_available(self) -> bool:
        return self._client is not None and not self._quota_exhausted

    @staticmethod
    def fetch_engine_name() -> str:
        return "deepl"

    def initialize(self, config: Config, auth_key: str | None = None) -> None:
        """Create the DeepL client. The key is first checked on the first request."""
        _ = config
        self.engine_attributes = EngineAttributes(
            name=self.fetch_engine_name(),
            max_batch_chars=DEEPL_MAX_BATCH_CHARS,
            max_texts_per_request=DEEPL_MAX_TEXTS_PER_REQUEST,
        )
        try:
            self._client = DeepLClient(self.resolve_auth_key(auth_key))
        except AuthorizationException:
            self._client = None
            raise TranslateExceptionError(_AUTH_FAILED) from None
        except (AttributeError, ValueError) as err:
            logger.critical("DeepL client creation failed: %s", err)
            msg = "DeepL client could not be created"
            raise RuntimeError(msg) from err
        self._quota_exhausted = False
        logger.debug("DeepL client created")

    def _resolve_codes(self, tgt_lang: str, src_lang: str | None) -> tuple[str, str | None]:
        """Map short language codes to DeepL codes, returned as (target, source)."""
        target: str | None = self._target_codes.get(tgt_lang.lower())
        source: str | None = self._source_codes.get(src_lang.lower()) if src_lang else None
        if target is None or (src_lang and source is None):
            msg: str = f"DeepL does not support '{src_lang}' -> '{tgt_lang}'"
            raise NotSupportedLanguagesError(msg)
        return target, source

    async def translate_batch(self, contents: list[str], tgt_lang: str, src_lang: str | None = None) -> list[str]:
        """Translate with DeepL in requests of at most 50 texts.

        Raises:
            NotSupportedLanguagesError: If either language is unknown to DeepL.
            TranslationQuotaExceededError: If the account quota is used up.
            TranslationRateLimitError: If DeepL throttles the request.
            TranslateExceptionError: For any other DeepL or transport failure.
        """
        target, source = self._resolve_codes(tgt_lang, src_lang)

        async def request(chunk: list[str]) -> list[str]:
            result: TextResult | list[TextResult] = await self._send(chunk, target, source)
            if isinstance(result, TextResult):
                return [result.text]
            if isinstance(result, list):
                return [item.text for item in result]
            msg = f"DeepL returned {type(result).__name__} instead of text results"
            raise TranslateExceptionError(msg)

        translations: list[str] = await self._translate_in_chunks(contents, request)
        logger.info("DeepL translated %d texts (%s > %s)", len(contents), source, target)
        return translations

    async def _send(self, chunk: list[str], target: str, source: str | None) -> TextResult | list[TextResult]:
        try:
            return await asyncio.to_thread(self._inst.translate_text, chunk, source_lang=source, target_lang=target)
        except QuotaExceededException as err:
            self._quota_exhausted = True
            logger.error("DeepL quota exhausted")
            raise TranslationQuotaExceededError(str(err)) from None
        except TooManyRequestsException as err:
            msg = "DeepL rate limit reached"
            raise TranslationRateLimitError(msg) from err
        except AuthorizationException:
            raise TranslateExceptionError(_AUTH_FAILED) from None
        except ConnectionException as err:
            msg = f"Could not reach the DeepL server: {err}"
            raise TranslateExceptionError(msg) from None
        except (DeepLException, ValueError, TypeError) as err:
            msg = f"DeepL translation failed: {err}"
            raise TranslateExceptionError(msg) from None

    async def close(self) -> None:
        self._client = None
        logger.debug("DeepL client released")
