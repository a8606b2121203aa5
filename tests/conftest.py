"""Pytest configuration: ensure env vars and import path are set early.

This runs before any tests, so modules can import without local path hacks.
Also load .env before setting defaults so local overrides are honored.
"""
from __future__ import annotations

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

load_dotenv(override=False)

# Ensure required env vars exist for config import (fallbacks only)
os.environ.setdefault("LOG_PSEUDONYM_SECRET", "test-pseudonym-secret")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="keygate-tests-"))
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("HEALTHCHECK_API_TOKEN", "test-health-token")

# pylint: disable=wrong-import-position
from keygate.adapters.key_store import TinyDBKeyStore  # noqa: E402

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for deterministic expiry and cooldown tests."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> TinyDBKeyStore:
    """Create a key store backed by a temporary JSON file."""
    return TinyDBKeyStore(db_path=tmp_path / "keys.json", lock_timeout=10.0)
