"""
Shared pytest fixtures for the access engine tests.

Provides:
- Database fixtures (in-memory SQLite per test, schema created from the models)
- Factories for users, org nodes, teams, staff records and delegations
- A small org chart covering every role
- An HTTP client with get_db overridden and a helper to act as a given user
"""
from types import SimpleNamespace
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from access_engine.core.database.base import Base, generate_ulid
from access_engine.core.database.engine import get_db, import_models
from access_engine.features.org.models import OrgNode, Team
from access_engine.features.staff.models import Delegation, StaffIdentity
from access_engine.features.users.dependencies import get_current_user
from access_engine.features.users.models import AppRole, User
from access_engine.features.users.schemas import Principal
from access_engine.main import app


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables created."""
    import_models()
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield test_engine
    
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Factories
# ============================================================================

async def make_user(db: AsyncSession, role: AppRole = AppRole.ADVISOR, name: str = "Test User") -> User:
    suffix = generate_ulid().lower()
    user = User(
        appwrite_id=f"aw-{suffix}",
        email=f"user-{suffix}@backoffice.io",
        name=name,
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def make_node(
    db: AsyncSession,
    code: str,
    manager_code: Optional[str] = None,
    principal_id: Optional[str] = None,
    team_id: Optional[str] = None,
    name: Optional[str] = None
) -> OrgNode:
    node = OrgNode(
        code=code,
        name=name or f"Advisor {code}",
        manager_code=manager_code,
        principal_id=principal_id,
        team_id=team_id,
    )
    db.add(node)
    await db.flush()
    await db.refresh(node)
    return node


async def make_team(db: AsyncSession, head_code: Optional[str], unit_code: str = "U1") -> Team:
    team = Team(unit_code=unit_code, unit_name=f"Unit {unit_code}", head_code=head_code)
    db.add(team)
    await db.flush()
    await db.refresh(team)
    return team


async def make_staff(db: AsyncSession, principal_id: Optional[str] = None, name: str = "Support") -> StaffIdentity:
    staff = StaffIdentity(name=name, principal_id=principal_id)
    db.add(staff)
    await db.flush()
    await db.refresh(staff)
    return staff


async def make_delegation(db: AsyncSession, staff_id: str, org_code: str, active: bool = True) -> Delegation:
    delegation = Delegation(staff_id=staff_id, org_code=org_code, active=active)
    db.add(delegation)
    await db.flush()
    await db.refresh(delegation)
    return delegation


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, role=user.role)


# ============================================================================
# Org Chart Fixture
# ============================================================================

@pytest_asyncio.fixture
async def chart(db: AsyncSession) -> SimpleNamespace:
    """
    A -> B -> C (C reports to B, B reports to A), plus an unrelated root D.
    
    mgr_a and mgr_b are managers linked to A and B, advisor_c and advisor_d
    are advisors linked to C and D, staff_user is linked to staff record
    `staff` (no delegations yet), candidate and admin are unlinked.
    """
    admin = await make_user(db, AppRole.ADMIN, "Admin")
    mgr_a = await make_user(db, AppRole.MANAGER, "Manager A")
    mgr_b = await make_user(db, AppRole.MANAGER, "Manager B")
    advisor_c = await make_user(db, AppRole.ADVISOR, "Advisor C")
    advisor_d = await make_user(db, AppRole.ADVISOR, "Advisor D")
    staff_user = await make_user(db, AppRole.STAFF, "Staff")
    candidate = await make_user(db, AppRole.CANDIDATE, "Candidate")
    
    await make_node(db, "A", principal_id=mgr_a.id)
    await make_node(db, "B", manager_code="A", principal_id=mgr_b.id)
    await make_node(db, "C", manager_code="B", principal_id=advisor_c.id)
    await make_node(db, "D", principal_id=advisor_d.id)
    staff = await make_staff(db, principal_id=staff_user.id)
    
    return SimpleNamespace(
        admin=admin,
        mgr_a=mgr_a,
        mgr_b=mgr_b,
        advisor_c=advisor_c,
        advisor_d=advisor_d,
        staff_user=staff_user,
        candidate=candidate,
        staff=staff,
    )


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with get_db bound to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    """Authenticate subsequent requests as the given user."""
    def _act_as(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user
    return _act_as
