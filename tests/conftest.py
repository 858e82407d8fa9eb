"""
Test configuration and fixtures for the Maskan Listings API.
Every test gets its own application over a fresh in-memory SQLite database,
a local blob store under tmp_path and recording notification senders.
"""

import pytest
import re
import uuid
from io import BytesIO
from typing import AsyncGenerator, List, Optional, Tuple

from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from maskan.config import Settings
from maskan.database import create_tables
from maskan.main import create_app
from maskan.models.user import User
from maskan.services.auth import AuthService
from maskan.services.listing import ListingService
from maskan.services.notifications import EmailSender, WhatsAppSender
from maskan.services.profile import ProfileService
from maskan.services.uploads import IncomingFile, UploadPipeline
from maskan.storage import BlobStore, StoredBlob
from maskan.utils.exceptions import NotificationError, StorageError


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "environment": "testing",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "jwt_secret_key": "test-secret-key-with-at-least-32-characters",
        "upload_dir": str(tmp_path / "uploads"),
        "public_base_url": "http://test/uploads",
        "frontend_url": "https://front.example.com",
        "cors_origins": ["http://test"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def image_bytes(fmt: str = "PNG", size: Tuple[int, int] = (8, 8)) -> bytes:
    """A tiny valid image in the given Pillow format."""
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 120, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def png_file(name: str = "photo.png", field: str = "images") -> IncomingFile:
    return IncomingFile(field=field, filename=name, content_type="image/png", data=image_bytes())


def pdf_file(name: str = "brochure.pdf", field: str = "pdf") -> IncomingFile:
    return IncomingFile(field=field, filename=name, content_type="application/pdf", data=PDF_BYTES)


class RecordingEmailSender(EmailSender):
    """Keeps sent messages in memory; fails every send when ``fail`` is set."""

    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, text: str) -> None:
        if self.fail:
            raise NotificationError(self.channel, "SMTP server unavailable")
        self.sent.append((to, subject, text))

    def last_link_token(self, path: str) -> Optional[str]:
        """Token from the last emailed link of the form ``/<path>/<token>``."""
        if not self.sent:
            return None
        match = re.search(rf"/{path}/([0-9a-f]+)", self.sent[-1][2])
        return match.group(1) if match else None


class RecordingWhatsAppSender(WhatsAppSender):
    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []

    async def send(self, to: str, body: str) -> None:
        if self.fail:
            raise NotificationError(self.channel, "Twilio rejected the message")
        self.sent.append((to, body))


class MemoryBlobStore(BlobStore):
    """
    In-memory blob store.

    ``fail_on`` makes the put of any key containing that text fail, which lets
    tests break one part of a multi-file upload.
    """

    def __init__(self, fail_on: Optional[str] = None, fail_deletes: bool = False):
        self.blobs = {}
        self.deleted: List[str] = []
        self.fail_on = fail_on
        self.fail_deletes = fail_deletes

    async def put(self, key: str, data: bytes, content_type: str) -> StoredBlob:
        if self.fail_on and self.fail_on in key:
            raise StorageError(f"refused {key}")
        self.blobs[key] = data
        return StoredBlob(url=f"https://blobs.test/{key}", key=key)

    async def delete(self, key: str) -> None:
        if self.fail_deletes:
            raise StorageError(f"cannot delete {key}")
        self.blobs.pop(key, None)
        self.deleted.append(key)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def app(settings: Settings):
    """Application with tables created and recording senders installed."""
    application = create_app(settings)
    application.state.email_sender = RecordingEmailSender(settings)
    application.state.whatsapp_sender = RecordingWhatsAppSender(settings)
    await create_tables(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest.fixture
def blob_store(app, settings: Settings) -> MemoryBlobStore:
    """Swap the application's blob store for an in-memory one."""
    store = MemoryBlobStore()
    app.state.blob_store = store
    app.state.upload_pipeline = UploadPipeline(store, settings)
    return store


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(app) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
def email_sender(app) -> RecordingEmailSender:
    return app.state.email_sender


@pytest.fixture
def whatsapp_sender(app) -> RecordingWhatsAppSender:
    return app.state.whatsapp_sender


@pytest.fixture
def auth_service(app, db_session: AsyncSession) -> AuthService:
    state = app.state
    return AuthService(db_session, state.settings, state.token_service, state.email_sender)


@pytest.fixture
def listing_service(app, db_session: AsyncSession, blob_store: MemoryBlobStore) -> ListingService:
    return ListingService(db_session, app.state.settings, app.state.upload_pipeline)


@pytest.fixture
def profile_service(app, db_session: AsyncSession, blob_store: MemoryBlobStore) -> ProfileService:
    return ProfileService(db_session, app.state.upload_pipeline)


# Test data factories
class UserFactory:
    """Factory for creating test users through the auth service."""

    @staticmethod
    async def create_user(
        auth_service: AuthService,
        name: str = "Test User",
        email: Optional[str] = None,
        password: str = "secret1"
    ) -> Tuple[User, str]:
        email = email or f"user{uuid.uuid4().hex[:8]}@example.com"
        return await auth_service.signup(name=name, email=email, password=password)


class ListingFactory:
    """Form data for listing requests."""

    @staticmethod
    def create_listing_data(**overrides) -> dict:
        data = {
            "title": "Sea view apartment",
            "price": "1250000",
            "city": "Dubai",
            "location": "Dubai Marina",
            "propertyType": "Apartment",
            "beds": "2",
            "baths": "2",
            "purpose": "sale",
            "amenities": ["Pool", "Gym"],
        }
        data.update(overrides)
        return data

    @staticmethod
    def image_parts(count: int = 1, field: str = "images") -> list:
        return [
            (field, (f"photo{index}.png", image_bytes(), "image/png"))
            for index in range(count)
        ]


async def signup_via_api(
    client: AsyncClient,
    name: str = "Ann",
    email: Optional[str] = None,
    password: str = "secret1"
) -> Tuple[str, str]:
    """Sign up through the API and return (token, userId)."""
    email = email or f"user{uuid.uuid4().hex[:8]}@example.com"
    response = await client.post("/api/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    body = response.json()
    return body["token"], body["userId"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
