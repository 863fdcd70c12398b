"""Shared pytest configuration for pgcall tests."""

import pytest

from pgcall.config import Settings
from pgcall.proto.registry import DedupRegistry


@pytest.fixture
def settings():
    """Default settings: numbers as numbers, skip broken functions, no gogo."""
    return Settings()


@pytest.fixture
def registry():
    """
    A fresh registry per test.

    Example:
        def test_dedup(registry, settings):
            write_message(buf, "A", args, registry, settings)
            assert "EmpRec" in registry
    """
    return DedupRegistry()
