"""
PlaceShare Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Services run against a real schema in an in-memory SQLite database
       (aiosqlite). The geocoder is replaced by FakeGeocoder and file
       storage points at a per-test temporary directory.

Fixture Hierarchy:
    db_engine → session_factory → db_session → alice, bob
    fake_geocoder    patches the geocoder used by PlaceService
    storage          FileService on tmp_path, patched into services and routes
    test_client      HTTPX AsyncClient bound to the app, sessions overridden
"""

import os
import tempfile

# Must run before any placeshare import: settings, engine and the service
# singletons read the environment at import time.
_TEST_ROOT = tempfile.mkdtemp(prefix="placeshare_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/unused.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["GOOGLE_API_KEY"] = "test-key-not-real"
os.environ["JWT_SECRET"] = "test-secret-for-the-suite-only-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"

from typing import List, Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from placeshare.database import Base, get_db_session
from placeshare.exceptions import GeocodeError
from placeshare.models import User
from placeshare.security import create_access_token, hash_password
from placeshare.services.file_service import FileService
from placeshare.services.geocoder_base import Coordinates, Geocoder

TEST_PASSWORD = "secret123"
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

# Minimal PNG: signature + IHDR chunk header
SAMPLE_PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 64

EMPIRE_STATE = Coordinates(lat=40.7484405, lng=-73.9856644)


class FakeGeocoder(Geocoder):
    """
    In-memory geocoder.

    Returns `coordinates` for every address unless `error` is set, in which
    case that error is raised. Every call is recorded in `calls`.
    """

    def __init__(self, coordinates: Coordinates = EMPIRE_STATE):
        self.coordinates = coordinates
        self.error: Optional[GeocodeError] = None
        self.calls: List[str] = []

    async def resolve(self, address: str) -> Coordinates:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.coordinates

    async def health_check(self) -> bool:
        return True


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database with the full schema for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def _create_user(session: AsyncSession, name: str, email: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=_TEST_PASSWORD_HASH,
        image="images/avatar.png",
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def alice(db_session) -> User:
    return await _create_user(db_session, "Alice", "alice@example.com")


@pytest_asyncio.fixture
async def bob(db_session) -> User:
    return await _create_user(db_session, "Bob", "bob@example.com")


# ══════════════════════════════════════════════════════════════════════════
# Collaborators
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_geocoder():
    geocoder = FakeGeocoder()
    with patch("placeshare.services.place_service.geocoder", geocoder):
        yield geocoder


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def storage(temp_storage):
    """
    FileService rooted in a temporary directory, used everywhere the app
    touches files. MIME sniffing is stubbed to PNG so tests do not depend
    on libmagic being installed.
    """
    service = FileService(storage_root=temp_storage)
    with patch.object(service, "validate_mime_type", return_value="image/png"), \
         patch("placeshare.services.place_service.file_service", service), \
         patch("placeshare.routes.places.file_service", service), \
         patch("placeshare.routes.users.file_service", service), \
         patch("placeshare.routes.files.file_service", service):
        yield service


@pytest.fixture
def user_password():
    """Plain password of the seeded users."""
    return TEST_PASSWORD


@pytest.fixture
def sample_png():
    return SAMPLE_PNG


@pytest.fixture
def auth_header():
    """Builds the Authorization header of a logged-in user."""
    def _header(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}
    return _header


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, fake_geocoder, storage):
    """
    HTTPX AsyncClient talking to the app in-process.

    Request sessions come from the test database with the same
    commit/rollback behaviour as the production dependency.
    """
    from placeshare.main import app

    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
