import os
import re
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("ADMIN_PASSWORD", None)

from murshid.core import db as db_module  # noqa: E402
from murshid.core.security import hash_password  # noqa: E402
from murshid.main import app  # noqa: E402
from murshid.models.user import User  # noqa: E402
from murshid.services import email_service  # noqa: E402

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

OTP_RE = re.compile(r"Your OTP is: (\d{6})")


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database for tests that call services directly."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


class Outbox(list):
    """Messages captured instead of being sent over SMTP."""

    def last_otp(self, to: str | None = None) -> str:
        for sent in reversed(self):
            if to is None or sent["to"] == to:
                match = OTP_RE.search(sent["message"])
                if match:
                    return match.group(1)
        raise AssertionError(f"no OTP email sent to {to}")


@pytest.fixture
def outbox(monkeypatch):
    box = Outbox()

    async def _fake_send_email(to, subject, message, config=None):
        box.append({"to": to, "subject": subject, "message": message})

    monkeypatch.setattr(email_service, "send_email", _fake_send_email)
    return box


@pytest.fixture
def failing_email(monkeypatch):
    """Make every email dispatch fail the way an SMTP outage does."""

    async def _fail(to, subject, message, config=None):
        raise email_service.EmailDispatchFailure()

    monkeypatch.setattr(email_service, "send_email", _fail)


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create verified local users directly via ORM.
    """

    async def _create_user(
        password: str = "UserPass!23",
        email: str | None = None,
        role: str = "user",
        **fields,
    ) -> tuple[User, str]:
        values = dict(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            first_name="Test",
            last_name="User",
            password_hash=hash_password(password),
            auth_provider="local",
            is_email_verified=True,
            role=role,
        )
        values.update(fields)
        user = await User.create(**values)
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def create_admin(create_user):
    async def _create_admin(password: str = "AdminPass!23") -> tuple[User, str]:
        return await create_user(password=password, email=f"admin_{uuid.uuid4().hex[:6]}@example.com", role="admin")

    return _create_admin


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    The login cookie is dropped so each request authenticates by header only.
    """

    async def _get_headers(email: str, password: str) -> dict[str, str]:
        resp = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _get_headers
