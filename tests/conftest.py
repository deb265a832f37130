"""
tests/conftest.py

Pytest configuration and shared fixtures.

Nothing here talks to Postgres or Google Sheets: stores are replaced by
tests.helpers.FakeRecordStore and the app is built with explicit Settings.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from harvest_intake.config import Settings, reset_settings
from harvest_intake.models import RegistrationRecord, RegistrationSubmission
from harvest_intake.services.cache import DuplicateCache
from harvest_intake.services.registration import RegistrationService
from tests.helpers import FakeRecordStore

ALLOWED_IP = "190.60.35.50"
ADMIN_TOKEN = "test-admin-token"
TODAY = "2026-10-18"


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def submission() -> RegistrationSubmission:
    return RegistrationSubmission(
        id="1", variedad="Freedom", bloque="6", tallos="20", tamano="Largo"
    )


@pytest.fixture
def record() -> RegistrationRecord:
    return RegistrationRecord(
        id="1",
        variedad="Freedom",
        bloque="6",
        tallos=20,
        tamano="Largo",
        fecha=TODAY,
    )


@pytest.fixture
def sheet_store() -> FakeRecordStore:
    return FakeRecordStore(name="google_sheets")


@pytest.fixture
def db_store() -> FakeRecordStore:
    return FakeRecordStore(name="postgres")


@pytest.fixture
def service(sheet_store: FakeRecordStore, db_store: FakeRecordStore) -> RegistrationService:
    """Relational first, spreadsheet mirror second; cache mirrors the sheet."""
    return RegistrationService(
        DuplicateCache(sheet_store),
        [db_store, sheet_store],
        today=lambda: TODAY,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="dev",
        AUTHORIZED_IPS=f"{ALLOWED_IP}, 192.168.10.1",
        ADMIN_TOKEN=ADMIN_TOKEN,
        DATABASE_URL="",
        GOOGLE_SHEETS_CREDENTIALS="",
    )


@pytest.fixture
def client(settings: Settings, service: RegistrationService) -> TestClient:
    from harvest_intake.main import create_app

    app = create_app(settings, service=service)
    return TestClient(
        app,
        raise_server_exceptions=False,
        headers={"X-Forwarded-For": ALLOWED_IP},
    )
