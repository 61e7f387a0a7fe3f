"""
Pytest configuration and fixtures for testing.

Provides:
- Environment defaults applied before any application import
- In-memory collaborators (identity provider, datastore, push provider)
- An RSA key pair, self-signed certificate and minted Firebase ID tokens
- SQLite (aiosqlite) sessions for repository tests
- An httpx AsyncClient bound to the app with dependency overrides

Usage:
    pytest src/backend/tests -v
"""

import os

# Settings are read at import time
os.environ.setdefault("FIREBASE_PROJECT_ID", "lawbot-test")
os.environ.setdefault("LOG_ENABLE_FILE_LOGGING", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("API_RATE_LIMIT_ENABLED", "false")

import time
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from api.services.broadcast_queue import BroadcastQueue
from api.services.notification_service import get_session_scoped_store
from core.config import settings
from core.database import get_session
from core.dependencies import get_datastore, get_identity_provider, get_push_provider
from core.security import firebase_issuer
from tests.factories import (
    FakeDatastore,
    FakeGoogleRequest,
    FakeGoogleResponse,
    FakeIdentityProvider,
    FakePushProvider,
)

TEST_KID = "test-key-1"


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def fake_identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def fake_datastore() -> FakeDatastore:
    return FakeDatastore()


@pytest.fixture
def fake_push() -> FakePushProvider:
    return FakePushProvider()


# ============================================================================
# Token Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def certificate_pem(rsa_private_key) -> str:
    """Self-signed certificate standing in for Google's securetoken certs."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(rsa_private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("utf-8")


@pytest.fixture(scope="session")
def certificates(certificate_pem) -> dict:
    return {TEST_KID: certificate_pem}


@pytest.fixture
def certificate_request(certificates) -> FakeGoogleRequest:
    """google-auth transport serving the test signing certificates."""
    return FakeGoogleRequest(FakeGoogleResponse(200, certificates))


@pytest.fixture
def make_id_token(private_key_pem):
    """Build a Firebase-style ID token; keyword arguments override claims."""

    def _make(kid: str = TEST_KID, **overrides) -> str:
        now = int(time.time())
        claims = {
            "iss": firebase_issuer(settings.firebase.project_id),
            "aud": settings.firebase.project_id,
            "sub": "admin-uid-001",
            "email": "admin@lawbot.ph",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        claims = {key: value for key, value in claims.items() if value is not None}
        return jwt.encode(claims, private_key_pem, algorithm="RS256", headers={"kid": kid})

    return _make


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def app():
    from app import create_app

    return create_app()


class _NullSession:
    """Stands in for AsyncSession where no endpoint should touch the database."""

    async def execute(self, *args, **kwargs):
        return None


@pytest.fixture
def override_dependencies(app, fake_identity, fake_datastore, fake_push):
    async def _null_session():
        yield _NullSession()

    app.dependency_overrides[get_identity_provider] = lambda: fake_identity
    app.dependency_overrides[get_push_provider] = lambda: fake_push
    app.dependency_overrides[get_datastore] = lambda: fake_datastore
    app.dependency_overrides[get_session_scoped_store] = lambda: fake_datastore
    app.dependency_overrides[get_session] = _null_session
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def broadcast_queue(app):
    queue = BroadcastQueue(expiry_seconds=settings.notifications.toast_expiry_seconds)
    app.state.broadcast_queue = queue
    yield queue
    queue.shutdown()
    app.state.broadcast_queue = None


@pytest_asyncio.fixture
async def client(override_dependencies, broadcast_queue) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=override_dependencies)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
