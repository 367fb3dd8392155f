"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Sample member records and request bodies
- In-memory store and recording mailer
- Test client wired to in-memory adapters
"""

from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.repository.memory import InMemoryMemberStore
from src.api.error_handlers import register_error_handlers
from src.api.routes import router
from src.config.settings import Settings, get_settings
from src.domain.models import MemberRecord


class RecordingMailer:
    """Mailer that keeps sent messages in memory and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.failures: dict[str, Exception] = {}

    def fail_for(self, address: str, error: Exception) -> None:
        self.failures[address] = error

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        if to in self.failures:
            raise self.failures[to]
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})


@pytest.fixture
def jane_record() -> MemberRecord:
    """Valid registration input for Jane Doe."""
    return MemberRecord(
        full_name="Jane Doe",
        email="jane@example.com",
        phone="555-1234",
        address="1 Main St",
        date_of_birth=date(1990, 1, 1),
        membership_type="standard",
    )


@pytest.fixture
def jane_body() -> dict:
    """Valid JSON body for POST /api/register."""
    return {
        "fullName": "Jane Doe",
        "email": "jane@example.com",
        "phone": "555-1234",
        "address": "1 Main St",
        "dob": "1990-01-01",
        "membershipType": "standard",
    }


@pytest.fixture
def store() -> InMemoryMemberStore:
    return InMemoryMemberStore()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def app(store: InMemoryMemberStore, mailer: RecordingMailer) -> FastAPI:
    """Create test FastAPI application backed by in-memory adapters."""
    test_app = FastAPI()
    register_error_handlers(test_app)
    test_app.include_router(router, prefix="/api")
    test_app.state.store = store
    test_app.state.mailer = mailer
    test_app.dependency_overrides[get_settings] = lambda: Settings(
        admin_email="admin@example.com", notification_mode="inline", store_backend="memory"
    )
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client for the application."""
    return TestClient(app)
