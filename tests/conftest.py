"""
Pytest fixtures for the gym billing tax test suite.

Provides:
- Structured logging configured for every test session
- In-memory SQLite database sessions
- A shared tax catalog for engine and controller tests
"""

import json
import logging
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from gym_config import CONFIG_ENV_VAR, reset_active_config
from gym_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from gym_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.factories import make_catalog


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture(autouse=True)
def _fresh_active_config(monkeypatch):
    """Services read gym_config; start every test from the packaged defaults."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    reset_active_config()
    yield
    reset_active_config()


@pytest.fixture
def captured_logs():
    """
    Capture gym_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            controller.set_selection({...})
            logs = captured_logs()
            assert any(r["message"] == "tax_selection_rejected" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("gym_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory SQLite database with all tables, one per test."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Tax catalog fixtures
# =============================================================================


@pytest.fixture
def catalog():
    return make_catalog()
