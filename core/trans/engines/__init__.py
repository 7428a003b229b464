"""Translation engine implementations.

This package contains concrete implementations of the TransInterface for the supported
translation services. Importing the package registers every engine under its name.

Modules:
- DeeplTranslation: Implementation for DeepL translation service.
- GoogleCloudTranslation: Implementation for Google Cloud Translation service.
"""

from core.trans.engines.trans_deepl import DeeplTranslation
from core.trans.engines.trans_google_cloud import GoogleCloudTranslation

__all__: list[str] = [
    "DeeplTranslation",
    "GoogleCloudTranslation",
]
