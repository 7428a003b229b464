from __future__ import annotations

import hashlib
from typing import Final

__all__: list[str] = ["NEWLINE_SENTINEL", "StringUtils"]

# Stands in for a literal newline inside one line of a cache file.
NEWLINE_SENTINEL: Final[str] = "/@_/nl/_@/"


class StringUtils:
    """Utility class for the string handling shared by the cache and the translator handle."""

    @staticmethod
    def ensure_str(value: str | None) -> str:
        """Ensure that the value is a string, returning an empty string if None.

        Note: Does not use strip(); surrounding whitespace is part of the cached text.

        Args:
            value (str | None): The value to ensure as a string.

        Returns:
            str: The value as a string, or empty string if None.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def is_blank(value: str | None) -> bool:
        """Check whether the value is None, empty, or whitespace only."""
        return not StringUtils.ensure_str(value).strip()

    @staticmethod
    def normalize_key(value: str) -> str:
        """Build the case-insensitive lookup key of a cached original."""
        return StringUtils.ensure_str(value).lower()

    @staticmethod
    def escape_newlines(value: str) -> str:
        """Replace literal newlines with the cache-file sentinel."""
        return StringUtils.ensure_str(value).replace("\n", NEWLINE_SENTINEL)

    @staticmethod
    def restore_newlines(value: str) -> str:
        """Replace cache-file sentinels with literal newlines."""
        return StringUtils.ensure_str(value).replace(NEWLINE_SENTINEL, "\n")

    @staticmethod
    def hash_identity(*parts: str) -> str:
        """Hash the given parts into a stable identity string.

        Args:
            *parts (str): Values joined with '|' before hashing (e.g., credential and application name).

        Returns:
            str: SHA256 hex digest.
        """
        key_data: str = "|".join(StringUtils.ensure_str(part) for part in parts)
        return hashlib.sha256(key_data.encode("utf-8")).hexdigest()
