from __future__ import annotations

import threading
from typing import TYPE_CHECKING, TypeAlias

# imported for registration side effects
import core.trans.engines  # noqa: F401
from core.trans.interface import TransInterface, TranslateExceptionError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import Config


__all__: list[str] = ["TransManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

EngineKey: TypeAlias = "tuple[str, str]"


class TransManager:
    """Owns the engine objects, one per (engine name, client identity).

    An engine is built the first time an identity asks for it, so each credential stays with the
    clients that supplied it.
    """

    def __init__(self, config: Config) -> None:
        self.config: Config = config
        self._engines: dict[EngineKey, TransInterface] = {}
        self._lock: threading.Lock = threading.Lock()

    @staticmethod
    def fetch_engine_names() -> list[str]:
        """Names of every registered engine class."""
        return sorted(TransInterface.registered)

    def __len__(self) -> int:
        return len(self._engines)

    def get_engine(self, identity: str, auth_key: str | None = None, name: str | None = None) -> TransInterface:
        """Return the engine bound to `identity`, building it on first use.

        Args:
            identity (str): Client identity.
            auth_key (str | None): Credential used when the engine is built. Ignored afterwards.
            name (str | None): Engine name. Defaults to TRANSLATION.ENGINE.

        Raises:
            TranslateExceptionError: If the name is unknown or the engine cannot be initialized.
        """
        engine_name: str = name or self.config.TRANSLATION.ENGINE
        key: EngineKey = (engine_name, identity)
        with self._lock:
            if key in self._engines:
                return self._engines[key]

            engine_cls: type[TransInterface] | None = TransInterface.registered.get(engine_name)
            if engine_cls is None:
                known: str = ", ".join(self.fetch_engine_names())
                msg: str = f"Unknown translation engine: '{engine_name}' (known: {known})"
                raise TranslateExceptionError(msg)

            engine: TransInterface = engine_cls()
            try:
                engine.initialize(self.config, auth_key)
            except RuntimeError as err:
                logger.critical("'%s' setup failed: %s", engine_name, err)
                msg = f"Translation engine '{engine_name}' could not be initialized"
                raise TranslateExceptionError(msg) from err

            self._engines[key] = engine
        logger.info("Engine '%s' ready for identity %s", engine_name, identity[:12])
        return engine

    async def close(self) -> None:
        """Close and forget every engine. A failing engine does not stop the others."""
        with self._lock:
            engines: list[TransInterface] = list(self._engines.values())
            self._engines.clear()

        for engine in engines:
            try:
                await engine.close()
            except TranslateExceptionError as err:
                logger.error("Closing '%s' failed: %s", type(engine).__name__, err)
        logger.debug("Closed %d engine(s)", len(engines))
