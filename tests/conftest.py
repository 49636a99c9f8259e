"""Pytest configuration and fixtures for wakeclip tests."""

import os
from collections.abc import Generator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch) -> None:
    """Keep host configuration and API keys out of every test."""
    for name in list(os.environ):
        if name.startswith("WAKECLIP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("XAI_API_KEY", raising=False)
    monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)


@pytest.fixture
def cache_dir() -> Generator[Path]:
    """Temporary cache directory removed after the test."""
    with TemporaryDirectory() as temp_dir:
        yield Path(temp_dir) / "cache"
