"""Unit tests for the translation cache.

This package contains test modules for all components of the translation cache.
Tests use pytest with asyncio support and replace provider SDK clients via monkeypatch.
"""
