"""Test fixtures: a fresh in-memory database per test.

Each test gets its own aiosqlite engine (StaticPool, so every checkout is
the same in-memory connection) with the schema created from the ORM
metadata. Services commit for real; the database simply disappears with
the engine afterwards.

The HTTP client overrides get_db with that session and get_mailer with a
mailer that records what would have been sent, so tests can pull the
confirmation token out of the "mail".
"""

import os
import re

# Must be set before simplequiz.config is imported anywhere.
os.environ.setdefault("SIMPLEQUIZ_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SIMPLEQUIZ_BCRYPT_ROUNDS", "4")
os.environ.setdefault("SIMPLEQUIZ_ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from simplequiz.db.engine import get_db
from simplequiz.db.models import Base
from simplequiz.main import app
from simplequiz.notify import MailDeliveryFailed, Mailer, MailMessage, get_mailer

TEST_DB_URL = "sqlite+aiosqlite://"

TOKEN_IN_MAIL_RE = re.compile(r"token=([0-9a-f]{32})")


class CapturingMailer(Mailer):
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[MailMessage] = []

    @property
    def name(self) -> str:
        return "capture"

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)

    def last_token(self) -> str:
        match = TOKEN_IN_MAIL_RE.search(self.sent[-1].body)
        assert match, "no confirmation link in the last mail"
        return match.group(1)


class FailingMailer(Mailer):
    @property
    def name(self) -> str:
        return "failing"

    async def send(self, message: MailMessage) -> None:
        raise MailDeliveryFailed("relay refused the connection")


@pytest_asyncio.fixture()
async def db_session():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def mailer():
    return CapturingMailer()


@pytest_asyncio.fixture()
async def client(db_session, mailer):
    """HTTP client bound to the per-test database and the capturing mailer."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════
# Helpers shared by the API tests
# ═══════════════════════════════════════════════════════════


async def new_session(client) -> str:
    r = await client.get("/auth/session_id")
    assert r.status_code == 200
    return r.json()["token"]


async def register(client, mailer, user_id="alice", mail=None, password="correct-horse",
                   token=None) -> str:
    """Pre-signup + signup. Returns the session token now bound to user_id."""
    token = token or await new_session(client)
    r = await client.post("/auth/pre_signup", json={
        "user_id": user_id,
        "mail": mail or f"{user_id}@example.com",
        "password": password,
        "user_name": user_id.title(),
    })
    assert r.status_code == 200, r.text
    r = await client.post(
        "/auth/signup",
        json={"token": mailer.last_token()},
        headers={"Authorization": token},
    )
    assert r.status_code == 200, r.text
    return token


async def create_room(client, token, name="Friday quiz", is_public=True, **fields) -> str:
    r = await client.post(
        "/room",
        json={"room_name": name, "is_public": is_public, **fields},
        headers={"Authorization": token},
    )
    assert r.status_code == 201, r.text
    return r.json()["room_id"]
