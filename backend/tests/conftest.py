"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["CORS_ORIGINS"] = '["http://localhost:5173"]'
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_EMAIL"] = "admin@test.com"
os.environ["ADMIN_PASSWORD"] = "TestAdmin123"
os.environ["GEOCODING_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="streetlight-uploads-")

from authentication.auth import create_access_token, get_password_hash  # noqa: E402
from models.exceptions import UpstreamServiceException  # noqa: E402
from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402
from services.geocoding_service import GeocodeResult, ReverseGeocoder  # noqa: E402
from services.image_quality import ImageQuality, ImageQualityAssessor  # noqa: E402
from services.media_storage import MediaStorageProvider, StoredImage  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Central Mumbai, inside the Mumbai service area
MUMBAI_LAT = 19.0760
MUMBAI_LNG = 72.8777

DEFAULT_PASSWORD = "Password123"


def make_image_bytes(
    width: int = 800,
    height: int = 600,
    color: tuple[int, int, int] = (200, 200, 200),
    fmt: str = "JPEG",
) -> bytes:
    """Encode a solid-color test image."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeMediaStorage(MediaStorageProvider):
    """In-memory storage that records uploads and deletions."""

    def __init__(self) -> None:
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_filenames: set[str] = set()

    def upload(self, content: bytes, filename: str) -> StoredImage:
        if filename in self.fail_filenames:
            raise UpstreamServiceException("Media storage", "upload rejected")
        public_id = f"{len(self.uploaded) + 1:032x}"
        self.uploaded.append(public_id)
        return StoredImage(
            public_id=public_id,
            url=f"/media/{public_id}.jpg",
            thumbnail_url=f"/media/{public_id}_thumb.jpg",
            width=800,
            height=600,
            format="jpeg",
        )

    def delete(self, public_id: str) -> bool:
        self.deleted.append(public_id)
        return public_id in self.uploaded


class FakeQualityAssessor(ImageQualityAssessor):
    """Assessor returning fixed measurements and configurable warnings."""

    def __init__(self) -> None:
        self.warnings: list[str] = []

    def assess(self, content: bytes) -> ImageQuality:
        return ImageQuality(
            brightness=128,
            width=800,
            height=600,
            resolution="800x600",
            orientation="landscape",
            warnings=list(self.warnings),
        )


class FakeGeocoder(ReverseGeocoder):
    """Geocoder returning a fixed result, or failing on demand."""

    def __init__(self) -> None:
        self.result: Optional[GeocodeResult] = None
        self.fail = False
        self.calls: list[tuple[float, float]] = []

    def lookup(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        self.calls.append((lat, lng))
        if self.fail:
            raise UpstreamServiceException("Geocoder", "timed out")
        return self.result


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_storage() -> FakeMediaStorage:
    return FakeMediaStorage()


@pytest.fixture
def fake_assessor() -> FakeQualityAssessor:
    return FakeQualityAssessor()


@pytest.fixture
def fake_geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture(scope="function")
def client(db_session, fake_storage, fake_assessor, fake_geocoder):
    """Create a test client with database and collaborators overridden."""
    from helpers.rate_limiter import limiter
    from main import app
    from services.geocoding_service import get_geocoder
    from services.image_quality import get_image_quality_assessor
    from services.media_storage import get_media_storage

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: fake_storage
    app.dependency_overrides[get_image_quality_assessor] = lambda: fake_assessor
    app.dependency_overrides[get_geocoder] = lambda: fake_geocoder
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(
    db_session,
    email: str,
    name: str,
    role: db_models.UserRole,
    password: str = DEFAULT_PASSWORD,
) -> db_models.User:
    user = db_models.User(
        name=name,
        email=email,
        phone="9876543210",
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session) -> db_models.User:
    """Create a citizen."""
    return _create_user(
        db_session, "citizen@example.com", "Test Citizen", db_models.UserRole.CITIZEN
    )


@pytest.fixture
def other_user(db_session) -> db_models.User:
    """Create another citizen (for permission tests)."""
    return _create_user(
        db_session, "other@example.com", "Other Citizen", db_models.UserRole.CITIZEN
    )


@pytest.fixture
def worker_user(db_session) -> db_models.User:
    """Create a field worker."""
    return _create_user(
        db_session, "worker@example.com", "Field Worker", db_models.UserRole.WORKER
    )


@pytest.fixture
def admin_user(db_session) -> db_models.User:
    """Create an admin."""
    return _create_user(
        db_session, "admin@example.com", "Admin User", db_models.UserRole.ADMIN
    )


def headers_for(user: db_models.User) -> dict:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user) -> dict:
    """Get authentication headers for the citizen."""
    return headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    return headers_for(other_user)


@pytest.fixture
def worker_auth_headers(worker_user) -> dict:
    return headers_for(worker_user)


@pytest.fixture
def admin_auth_headers(admin_user) -> dict:
    """Get authentication headers for the admin."""
    return headers_for(admin_user)


@pytest.fixture
def create_report(db_session, test_user):
    """Factory fixture to insert reports directly."""

    def _create_report(
        reporter: Optional[db_models.User] = None,
        lat: float = MUMBAI_LAT,
        lng: float = MUMBAI_LNG,
        **fields,
    ) -> db_models.Report:
        values = {
            "title": "Streetlight not working",
            "description": "The light outside building 4 has been off for days.",
            "light_condition": db_models.LightCondition.NOT_WORKING,
            "severity": db_models.Severity.MEDIUM,
            "status": db_models.ReportStatus.PENDING,
            "city": "Mumbai",
        }
        values.update(fields)
        report = db_models.Report(
            latitude=lat,
            longitude=lng,
            reported_by_id=(reporter or test_user).id,
            **values,
        )
        db_session.add(report)
        db_session.commit()
        db_session.refresh(report)
        return report

    return _create_report


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def image_factory():
    """Factory fixture returning encoded test images."""
    return make_image_bytes


@pytest.fixture
def headers_factory():
    """Factory fixture returning bearer headers for any user."""
    return headers_for
