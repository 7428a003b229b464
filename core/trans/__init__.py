"""Translation providers and interfaces.

This package provides the batch translation capability used by the dispatcher, through pluggable
engine implementations (DeepL, Google Cloud Translation).
"""

from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    TransInterface,
    TranslateExceptionError,
    TranslationMismatchError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from core.trans.manager import TransManager

__all__: list[str] = [
    "EngineAttributes",
    "NotSupportedLanguagesError",
    "TransInterface",
    "TransManager",
    "TranslateExceptionError",
    "TranslationMismatchError",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
]
