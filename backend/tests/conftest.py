"""
Guide2Umrah Backend: Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── sample_image_bytes: Minimal JPEG for upload tests
    ├── database: Real tables in a throwaway SQLite file (aiosqlite)
    ├── s3_client: Stub S3 client installed on the shared image_service
    ├── admin_user / auth_headers: Dashboard account and its bearer header
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock, patch

# Settings are read at import time, so the environment must be in place
# before anything from guide2umrah is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="guide2umrah_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["S3_BUCKET"] = "test-bucket"
os.environ["S3_PUBLIC_BASE_URL"] = "https://cdn.test/test-bucket"
os.environ["SMTP_USER"] = "noreply@guide2umrah.test"
os.environ["SMTP_PASSWORD"] = "not-a-real-password"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["FRONTEND_BUILD_DIR"] = ""

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from guide2umrah.database import Base, dispose_engine, engine, session_scope  # noqa: E402
from guide2umrah.models import offering, subscription, user  # noqa: E402,F401
from guide2umrah.services.auth_service import auth_service, create_access_token  # noqa: E402
from guide2umrah.services.image_service import ImageService, image_service  # noqa: E402


# Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9)
JPEG_BYTES = (
    b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
    b'\xff\xd9'
)


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for service unit tests.

    Usage:
        mock_db_session.get.return_value = row
        await package_service.get(mock_db_session, row.id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG; not a photograph, but its header sniffs as image/jpeg."""
    return JPEG_BYTES


@pytest_asyncio.fixture
async def database():
    """Creates every table before the test and drops them afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections must not outlive this test's event loop
    await dispose_engine()


@pytest.fixture
def s3_client():
    """
    Stub S3 client on the shared image_service, with MIME sniffing bypassed
    so the suite does not need libmagic.
    """
    client = MagicMock()
    previous = image_service._client
    image_service._client = client
    with patch.object(ImageService, "validate_mime_type", return_value="image/jpeg"):
        yield client
    image_service._client = previous


@pytest_asyncio.fixture
async def admin_user(database):
    async with session_scope() as db:
        account, _ = await auth_service.create_user(db, "admin@guide2umrah.test", "correct horse")
    return account


@pytest.fixture
def auth_headers(admin_user):
    token, _ = create_access_token(admin_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient wired straight to the FastAPI app (no server).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from guide2umrah.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
