"""Pytest configuration and fixtures."""

import asyncio
import os

import pytest


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def clean_oi_env(monkeypatch):
    """Drop OI_* variables from the host so Settings.from_env sees defaults."""
    for name in list(os.environ):
        if name.startswith("OI_"):
            monkeypatch.delenv(name)
