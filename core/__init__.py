"""Core components of the translation cache.

This package contains the Translator client handle, the shared cache instances with their batching
and dispatch machinery, and the pluggable translation providers.
"""

from core.translator import Translator, TranslatorSetupError
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "Translator",
    "TranslatorSetupError",
]
