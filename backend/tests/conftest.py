"""
Pytest configuration and fixtures for the backend tests.
"""
import os
import tempfile

# Settings are read once at import time, so the environment is prepared first
os.environ.setdefault("SECRET_KEY", "test-token-secret")
os.environ.setdefault("HMAC_VERIFICATION_CODE_SECRET", "test-hmac-secret")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="quillpost-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("MONGO_URI", None)

import pytest
from faker import Faker
from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_clock, get_credential_store, get_mailer
from core.config import settings
from core.security import hash_password
from doubles import FakeClock, InMemoryCredentialStore, RecordingMailer

fake = Faker()

STRONG_PASSWORD = "Abcdefg1"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryCredentialStore:
    return InMemoryCredentialStore(clock)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def client(store, mailer, clock):
    """Test client with the store, mailer and clock swapped for doubles."""
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_signup():
    """Sample signup payload"""
    return {
        "username": "".join(ch for ch in fake.first_name() if ch.isalpha()) + "writer",
        "email": f"{fake.user_name()}@quillmail.com".lower(),
        "password": STRONG_PASSWORD,
    }


@pytest.fixture
def make_account(store):
    """Insert an account straight into the store"""
    async def _make(handle="alice", email="alice@x.com", password=STRONG_PASSWORD, verified=False):
        account = await store.create(handle, email, hash_password(password, settings.PASSWORD_HASH_ROUNDS))
        if verified:
            await store.mark_verified(account.id)
        return await store.find_by_id_with_secrets(account.id)
    return _make
