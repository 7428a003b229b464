"""Google Cloud Translation, Basic edition (v2).

The client authenticates with an API key when one is given, otherwise with the application default
credentials (GOOGLE_APPLICATION_CREDENTIALS).
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Final

from google.api_core.exceptions import BadRequest, GoogleAPIError, TooManyRequests, Unauthorized
from google.auth.credentials import AnonymousCredentials
from google.auth.transport.requests import AuthorizedSession
from google.cloud import translate_v2 as translate

from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    TransInterface,
    TranslateExceptionError,
    TranslationRateLimitError,
)
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config

__all__: list[str] = ["GoogleCloudTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

GOOGLE_CLOUD_MAX_BATCH_CHARS: Final[int] = 2500
GOOGLE_CLOUD_MAX_SEGMENTS: Final[int] = 128


class APIKeySession(AuthorizedSession):
    """Anonymous session that adds `key=<api key>` to the query string of every request."""

    def __init__(self, api_key: str) -> None:
        super().__init__(AnonymousCredentials())
        self.api_key: str = api_key

    def request(self, method: str, url: str, *args, **kwargs) -> Any:
        params: dict[str, Any] = dict(kwargs.pop("params", None) or {})
        params["key"] = self.api_key
        return super().request(method, url, *args, params=params, **kwargs)


class GoogleCloudTranslation(TransInterface):
    def __init__(self) -> None:
        super().__init__()
        self._client: translate.Client | None = None

    @property
    def _inst(self) -> translate.Client:
        if self._client is None:
            msg = "Google Cloud Translation client is not initialized"
            raise TranslateExceptionError(msg)
        return self._client

    @property
    def is_available(self) -> bool:
        return self._client is not None

    @staticmethod
    def fetch_engine_name() -> str:
        return "google_cloud"

    def initialize(self, config: Config, auth_key: str | None = None) -> None:
        """Create the client and check it with a language listing.

        Raises:
            TranslateExceptionError: If Google rejects the credentials.
            RuntimeError: If the client cannot be created or that check fails otherwise.
        """
        _ = config
        self.engine_attributes = EngineAttributes(
            name=self.fetch_engine_name(),
            max_batch_chars=GOOGLE_CLOUD_MAX_BATCH_CHARS,
            max_texts_per_request=GOOGLE_CLOUD_MAX_SEGMENTS,
        )
        api_key: str = self.resolve_auth_key(auth_key)
        try:
            if api_key:
                client = translate.Client(credentials=AnonymousCredentials(), _http=APIKeySession(api_key))
            else:
                client = translate.Client()
            client.get_languages()
        except Unauthorized as err:
            logger.critical("Google Cloud rejected the credentials: %s", err)
            msg = "Google Cloud authentication failed; set GOOGLE_CLOUD_API_OAUTH or GOOGLE_APPLICATION_CREDENTIALS"
            raise TranslateExceptionError(msg) from err
        except Exception as err:
            logger.critical("Google Cloud client setup failed: %s", err)
            msg: str = f"Google Cloud Translation client could not be created: {err}"
            raise RuntimeError(msg) from err

        self._client = client
        logger.info("Google Cloud Translation ready (%s)", "API key" if api_key else "default credentials")

    async def translate_batch(self, contents: list[str], tgt_lang: str, src_lang: str | None = None) -> list[str]:
        """Translate in requests of at most 128 segments.

        Raises:
            NotSupportedLanguagesError: If Google rejects the language pair.
            TranslationRateLimitError: If the request is throttled.
            TranslateExceptionError: For any other failure.
        """

        async def request(chunk: list[str]) -> list[str]:
            return [item["translatedText"] for item in await self._send(chunk, tgt_lang, src_lang)]

        translations: list[str] = await self._translate_in_chunks(contents, request)
        logger.info("Google Cloud translated %d texts (%s > %s)", len(contents), src_lang or "auto", tgt_lang)
        return translations

    async def _send(self, chunk: list[str], tgt_lang: str, src_lang: str | None) -> list[dict[str, Any]]:
        try:
            response: Any = await asyncio.to_thread(
                self._inst.translate, chunk, target_language=tgt_lang, source_language=src_lang, format_="text"
            )
        except BadRequest as err:
            msg: str = f"Google Cloud rejected '{src_lang}' -> '{tgt_lang}': {err}"
            raise NotSupportedLanguagesError(msg) from err
        except TooManyRequests as err:
            msg = f"Google Cloud rate limit reached: {err}"
            raise TranslationRateLimitError(msg) from err
        except (GoogleAPIError, OSError, ValueError) as err:
            logger.error("Google Cloud request failed: %s", err)
            msg = f"Google Cloud translation failed: {err}"
            raise TranslateExceptionError(msg) from err

        if isinstance(response, dict):
            return [response]
        if isinstance(response, list):
            return response
        msg = f"Google Cloud returned {type(response).__name__} instead of a list"
        raise TranslateExceptionError(msg)

    async def close(self) -> None:
        self._client = None
        logger.debug("Google Cloud client released")
