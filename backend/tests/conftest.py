"""Pytest configuration for the matching engine tests.

Puts backend/src on sys.path and pins settings to an offline setup
(SQLite, no OpenAI key) before any application module is imported.
"""

import sys
import os
from pathlib import Path

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("OPENAI_API_KEY", None)

import pytest

from fixtures.stores import (
    InMemoryMatchHistoryStore,
    InMemoryPreferenceStore,
    InMemoryProfileStore,
    StubOracle,
)


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def match_history_store():
    return InMemoryMatchHistoryStore()


@pytest.fixture
def preference_store():
    return InMemoryPreferenceStore()


@pytest.fixture
def oracle():
    """Oracle that answers 80 for every aspect."""
    return StubOracle(80)
