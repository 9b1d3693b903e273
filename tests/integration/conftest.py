"""Integration-test conftest — real-infra fixtures.

Integration tests require:
    CLARITY_TEST_INTEGRATION=1   (set in shell before running)
    Redis on localhost:6379 (or CLARITY_TEST_REDIS_URL)

Run with:
    CLARITY_TEST_INTEGRATION=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import uuid

import pytest


@pytest.fixture
def redis_url() -> str:
    return os.getenv("CLARITY_TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def project_id() -> str:
    """Unique per test so runs never see each other's history."""
    return f"it-{uuid.uuid4().hex[:8]}"
