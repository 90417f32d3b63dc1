"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _write_test_keys(directory: Path) -> tuple[str, str]:
    """Generate an RSA key pair for signing test tokens."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = directory / "jwt_private.pem"
    public_path = directory / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return str(private_path), str(public_path)


# Environment must be in place before anything reads settings
_TEST_DIR = Path(tempfile.mkdtemp(prefix="homelearn_test_"))
_PRIVATE_KEY, _PUBLIC_KEY = _write_test_keys(_TEST_DIR)
os.environ["HL_JWT_PRIVATE_KEY_PATH"] = _PRIVATE_KEY
os.environ["HL_JWT_PUBLIC_KEY_PATH"] = _PUBLIC_KEY
os.environ["HL_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'default.db'}"
os.environ["HL_NOTIFIER_BACKEND"] = "local"
os.environ["HL_UPLOAD_DIR"] = str(_TEST_DIR / "uploads")
(_TEST_DIR / "uploads").mkdir()
os.environ["HL_LOG_FORMAT"] = "console"
os.environ.pop("HL_BOOTSTRAP_ADMIN_EMAIL", None)
os.environ.pop("HL_BOOTSTRAP_ADMIN_PASSWORD", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import update  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from homelearn.auth.jwt import reset_keys  # noqa: E402
from homelearn.config import get_settings  # noqa: E402
from homelearn.database import close_db, get_engine, get_session, init_db  # noqa: E402
from homelearn.db.base import Base  # noqa: E402
from homelearn.db.models import User  # noqa: E402
from homelearn.dependencies import get_notifier  # noqa: E402
from homelearn.main import create_app  # noqa: E402
from homelearn.middleware.logging import setup_logging  # noqa: E402

get_settings.cache_clear()
reset_keys()
setup_logging(get_settings())


class RecordingNotifier:
    """Notifier that remembers what was published."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        self.events.append((channel, event, data))


@dataclass
class AuthedUser:
    id: int
    username: str
    email: str
    password: str
    user_code: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[str, None]:
    """Fresh SQLite database per test, schema created from the models."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield url
    await close_db()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def app(database: str, notifier: RecordingNotifier) -> FastAPI:
    application = create_app()
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app. Lifespan does not run: Redis stays off."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for test setup and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest.fixture
def make_user(
    client: AsyncClient, db_session: AsyncSession
) -> Callable[..., Awaitable[AuthedUser]]:
    """Register and log in a user through the API."""

    async def _make(username: str, *, password: str = "secret123", admin: bool = False) -> AuthedUser:
        email = f"{username}@example.com"
        resp = await client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        user = resp.json()["user"]

        if admin:
            await db_session.execute(update(User).where(User.id == user["id"]).values(is_admin=True))
            await db_session.commit()

        resp = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return AuthedUser(
            id=user["id"],
            username=username,
            email=email,
            password=password,
            user_code=user["user_code"],
            token=resp.json()["access_token"],
        )

    return _make


@pytest_asyncio.fixture
async def alice(make_user: Callable[..., Awaitable[AuthedUser]]) -> AuthedUser:
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user: Callable[..., Awaitable[AuthedUser]]) -> AuthedUser:
    return await make_user("bob")


@pytest_asyncio.fixture
async def admin(make_user: Callable[..., Awaitable[AuthedUser]]) -> AuthedUser:
    return await make_user("root", admin=True)


SAMPLE_COURSE: dict[str, Any] = {
    "title": "Python Basics",
    "description": "Learn Python",
    "levels": [
        {"title": "Syntax", "topics": ["variables", "loops"]},
        {"title": "Functions", "objectives": ["write functions"]},
        {"title": "Modules", "tools": ["pip"], "resources": ["docs.python.org"]},
    ],
}


@pytest.fixture
def create_course(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Create a course via the API; returns the detail payload."""

    async def _create(owner: AuthedUser, doc: dict[str, Any] | None = None) -> dict[str, Any]:
        resp = await client.post("/api/courses", json=doc or SAMPLE_COURSE, headers=owner.headers)
        assert resp.status_code == 201, resp.text
        course_id = resp.json()["course_id"]
        detail = await client.get(f"/api/course/{course_id}", headers=owner.headers)
        assert detail.status_code == 200, detail.text
        return detail.json()

    return _create
