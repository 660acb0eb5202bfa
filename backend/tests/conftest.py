"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable, Optional
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from infrastructure.database.models import (
    Base,
    Project,
    ProjectAccess,
    ProjectStatus,
    User,
    UserRole,
)
from infrastructure.database.connection import get_db
from core.security import PasswordHasher, TokenService
from infrastructure.config import get_settings

# Low bcrypt cost keeps fixture setup fast; verification reads the cost from the hash
password_hasher = PasswordHasher(rounds=4)
settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key)

TEST_PASSWORD = "TestPassword123"

# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Users
# ============================================================================


async def create_user(
    db: AsyncSession,
    email: str,
    first_name: str,
    last_name: Optional[str] = None,
    role: UserRole = UserRole.PARTNER,
) -> User:
    user = User(
        id=str(uuid4()),
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=password_hasher.hash(TEST_PASSWORD),
        role=role.value,
        status="active",
        email_verified=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    """Authorization headers carrying a fresh access token for *user*."""
    access_token = token_service.create_access_token(
        user_id=user.id, email=user.email, role=user.role
    )
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def owner(db_session: AsyncSession) -> User:
    """Project owner."""
    return await create_user(db_session, "owner@example.com", "Olivia", "Owner")


@pytest.fixture
async def partner(db_session: AsyncSession) -> User:
    """User who is invited to the owner's project in partner tests."""
    return await create_user(db_session, "partner@example.com", "Paul", "Partner")


@pytest.fixture
async def outsider(db_session: AsyncSession) -> User:
    """User with no relationship to any project."""
    return await create_user(db_session, "outsider@example.com", "Oscar")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@example.com", "Ada", role=UserRole.ADMIN)


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for users beyond the standard fixtures."""

    async def _make(email: str, first_name: str = "Test", **kwargs) -> User:
        return await create_user(db_session, email, first_name, **kwargs)

    return _make


@pytest.fixture
def make_headers() -> Callable[[User], dict]:
    return headers_for


@pytest.fixture
def owner_headers(owner: User) -> dict:
    return headers_for(owner)


@pytest.fixture
def partner_headers(partner: User) -> dict:
    return headers_for(partner)


@pytest.fixture
def outsider_headers(outsider: User) -> dict:
    return headers_for(outsider)


# ============================================================================
# Projects and partner access
# ============================================================================


@pytest.fixture
async def project(db_session: AsyncSession, owner: User) -> Project:
    """A live project owned by ``owner``."""
    project = Project(
        id=str(uuid4()),
        name="Harbour Street Renovation",
        description="Two-storey terrace renovation",
        status=ProjectStatus.ACTIVE.value,
        owner_id=owner.id,
        total_budget=50_000_000,
        size_sqm=180,
    )
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


GrantFactory = Callable[..., Awaitable[ProjectAccess]]


@pytest.fixture
def grant_access(db_session: AsyncSession, owner: User) -> GrantFactory:
    """
    Factory creating a ProjectAccess row directly.

    By default the row is an accepted grant bound to ``user``. Pass
    ``accepted=False`` for a pending invitation and ``expired=True`` to backdate
    its expiry.
    """

    async def _grant(
        project: Project,
        user: Optional[User] = None,
        permission: str = "read",
        accepted: bool = True,
        expired: bool = False,
        email: Optional[str] = None,
    ) -> ProjectAccess:
        now = datetime.now(timezone.utc)
        access = ProjectAccess(
            id=str(uuid4()),
            project_id=project.id,
            user_id=user.id if user is not None and accepted else None,
            invited_by=owner.id,
            invited_email=email or user.email,
            permission=permission,
            invited_at=now - timedelta(days=10 if expired else 1),
            expires_at=now - timedelta(days=1) if expired else now + timedelta(days=6),
            accepted_at=now if accepted else None,
            invitation_token=None if accepted else f"tok-{uuid4().hex}",
        )
        db_session.add(access)
        await db_session.commit()
        await db_session.refresh(access)
        return access

    return _grant


@pytest.fixture
async def read_partner(project: Project, partner: User, grant_access: GrantFactory) -> User:
    """``partner`` holding accepted read access to ``project``."""
    await grant_access(project, partner, permission="read")
    return partner


@pytest.fixture
async def write_partner(project: Project, partner: User, grant_access: GrantFactory) -> User:
    """``partner`` holding accepted write access to ``project``."""
    await grant_access(project, partner, permission="write")
    return partner
