"""
Test Configuration and Fixtures

This module provides:
- Early environment setup (log directory, fast busy-retry delays, in-memory store)
- Store cleanup between integration tests
- Session-scoped TestClient over the test app
- Bearer-token fixtures for each role

Architecture:
- Unit tests (marked ``unit``): build their collaborators in-process, no app
- Integration tests: drive the FastAPI app through TestClient and share the DI container
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read at import time by src.platform.config.core_setting
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('SECRET_KEY', 'test_secret_key')
    os.environ.setdefault('LEDGER_LOCK_TIMEOUT_SECONDS', '1.0')
    os.environ.setdefault('LEDGER_BUSY_RETRY_BASE_DELAY_SECONDS', '0.01')
    os.environ.setdefault('DOCUMENT_STORE_BACKEND', 'memory')


_early_setup_test_environment()

from collections.abc import Generator  # noqa: E402
from typing import Any  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from test.shared.utils import auth_headers, make_user_token  # noqa: E402
from test.util_constant import (  # noqa: E402
    ANOTHER_EXHIBITOR_ID,
    ATTENDEE_ID,
    EXHIBITOR_ID,
    ORGANIZER_ID,
)


# =============================================================================
# Pytest Hooks
# =============================================================================
def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' not in markers:
            item.fixturenames.append('clean_store')


# =============================================================================
# Integration Test Fixtures
# =============================================================================
@pytest.fixture(scope='session')
def client() -> Generator[TestClient, None, None]:
    from test.test_main import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture(scope='function')
def clean_store() -> Generator[None, None, None]:
    from src.platform.config.di import container

    container.document_store().clear()
    yield
    container.document_store().clear()


# =============================================================================
# Callers (tokens are verified statelessly, so no user table is needed)
# =============================================================================
def _caller(user_id: str, role: str) -> dict[str, Any]:
    token = make_user_token(user_id=user_id, role=role)
    return {'id': user_id, 'role': role, 'token': token, 'headers': auth_headers(token)}


@pytest.fixture(scope='session')
def organizer_user() -> dict[str, Any]:
    return _caller(ORGANIZER_ID, 'organizer')


@pytest.fixture(scope='session')
def exhibitor_user() -> dict[str, Any]:
    return _caller(EXHIBITOR_ID, 'exhibitor')


@pytest.fixture(scope='session')
def another_exhibitor_user() -> dict[str, Any]:
    return _caller(ANOTHER_EXHIBITOR_ID, 'exhibitor')


@pytest.fixture(scope='session')
def attendee_user() -> dict[str, Any]:
    return _caller(ATTENDEE_ID, 'attendee')
