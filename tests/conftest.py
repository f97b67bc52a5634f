"""
Shared fixtures: an in-memory SQLite database per test, recording mail
senders, account/workspace factories and an HTTP client bound to the app.
"""

import os

# Configure the application before any fluxo module reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["PLATFORM_OWNER_EMAIL"] = "owner@fluxo.io"
os.environ["MAIL_ADMIN_EMAIL"] = "admin@fluxo.io"
os.environ["FRONTEND_URL"] = "https://app.fluxo.io"
os.environ.pop("MAIL_WEBHOOK_URL", None)
os.environ.pop("FIREBASE_PROJECT_ID", None)

from typing import Any
from uuid import UUID

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fluxo.core import database
from fluxo.core.security import create_access_token, hash_password
from fluxo.main import app
from fluxo.models import Base, PlatformRole, User, Workspace
from fluxo.services.mailer import MailResult, MailSender, get_mail_sender
from fluxo.services.workspaces import WorkspaceService


PASSWORD = "correct-horse"


# =============================================================================
# MAIL
# =============================================================================


class RecordingMailSender(MailSender):
    """Renders and records every message instead of sending it."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    async def send(self, template, recipient_email, variables) -> MailResult:
        subject, html_body = self.render(template, variables)
        self.sent.append({
            "template": template,
            "to": recipient_email,
            "subject": subject,
            "html": html_body,
            "variables": dict(variables),
        })
        return MailResult(success=True)

    def to(self, email: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["to"] == email]


class FailingMailSender(MailSender):
    """A relay that is always down."""

    async def send(self, template, recipient_email, variables) -> MailResult:
        self.render(template, variables)
        return MailResult(success=False, error="relay unavailable")


@pytest.fixture
def mail_sender() -> RecordingMailSender:
    return RecordingMailSender()


@pytest.fixture
def failing_mail_sender() -> FailingMailSender:
    return FailingMailSender()


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# FACTORIES
# =============================================================================


async def create_user(
    session: AsyncSession,
    email: str,
    name: str | None = None,
    approved: bool = True,
    platform_role: PlatformRole = PlatformRole.MEMBER,
) -> User:
    """Insert an account with its private workspace."""
    user = User(
        email=email,
        name=name or email.split("@")[0].title(),
        password_hash=hash_password(PASSWORD),
        platform_role=platform_role,
        is_approved=approved,
    )
    session.add(user)
    await session.flush()
    await WorkspaceService(session).ensure_private_workspace(user)
    return user


async def create_workspace(session: AsyncSession, owner: User, name: str = "Acme") -> Workspace:
    return await WorkspaceService(session).create_workspace(owner=owner, name=name)


@pytest.fixture
async def owner(session) -> User:
    """The platform Owner."""
    return await create_user(
        session, "owner@fluxo.io", name="Olivia", platform_role=PlatformRole.OWNER
    )


@pytest.fixture
async def alice(session) -> User:
    return await create_user(session, "alice@acme.com", name="Alice")


@pytest.fixture
async def bob(session) -> User:
    return await create_user(session, "bob@acme.com", name="Bob")


@pytest.fixture
async def workspace(session, alice) -> Workspace:
    """A shared workspace owned by alice."""
    return await create_workspace(session, alice)


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
async def client(session_factory, mail_sender, monkeypatch):
    """HTTP client whose requests run against the per-test database."""
    monkeypatch.setattr(database, "async_session_factory", session_factory)
    app.dependency_overrides[get_mail_sender] = lambda: mail_sender

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://fluxo.io") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def seed(session_factory):
    """Run an async callable in its own committed session."""

    async def _seed(fn):
        async with session_factory() as session:
            result = await fn(session)
            await session.commit()
            return result

    return _seed


def auth_headers(user: User | UUID) -> dict[str, str]:
    user_id = user.id if isinstance(user, User) else user
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
