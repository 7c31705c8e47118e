"""Pytest configuration for script tests."""

from src.multiquery.tests.conftest import clock, provider, stablecoins  # noqa: F401
