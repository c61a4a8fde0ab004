"""
Shared fixtures.

Provides:
- engine / session_factory / db: a fresh in-memory SQLite database per test
- catalog: the static permission catalog
- build: helpers creating branches, roles, users and assignments
- client: httpx client driving the FastAPI app against the test database
- make_token: signed bearer tokens for a user (and optional branch claim)
"""
import os

os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SEED_PERMISSIONS_ON_STARTUP", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Iterable, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import campus_rbac.api.v1.models  # noqa: E402,F401
from campus_rbac.api.v1.models import Branch, LegacyRole, RBACRole, User, UserRole  # noqa: E402
from campus_rbac.api.v1.repositories import get_permission_repository  # noqa: E402
from campus_rbac.api.v1.services.catalog import get_permission_catalog  # noqa: E402
from campus_rbac.api.v1.services.seeding import seed_permissions  # noqa: E402
from campus_rbac.core.config import settings  # noqa: E402
from campus_rbac.core.models import Base  # noqa: E402


@pytest_asyncio.fixture
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
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog():
    return get_permission_catalog()


class Builder:
    """Creates committed rows; every helper returns the ORM object."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, item):
        self.db.add(item)
        await self.db.commit()
        return item

    async def branch(self, code: str, is_active: bool = True, created_at: Optional[datetime] = None) -> Branch:
        values = {"name": f"Campus {code}", "code": code, "is_active": is_active}
        if created_at is not None:
            values["created_at"] = created_at
        return await self._save(Branch(**values))

    async def legacy_role(
            self, name: str, permissions, branch: Optional[Branch] = None, is_system: bool = False
    ) -> LegacyRole:
        return await self._save(LegacyRole(
            name=name,
            permissions=permissions,
            branch_id=branch.id if branch else None,
            is_system=is_system,
        ))

    async def role(
            self, name: str, permissions: Iterable[str] = (), branch: Optional[Branch] = None, is_system: bool = False
    ) -> RBACRole:
        rows = await get_permission_repository().get_by_names(self.db, permissions)
        assert len(rows) == len(set(permissions)), "permissions must be seeded first"
        return await self._save(RBACRole(
            role_name=name,
            branch_id=branch.id if branch else None,
            is_system=is_system,
            permissions=rows,
        ))

    async def user(
            self,
            username: str,
            legacy_role: Optional[LegacyRole] = None,
            branch: Optional[Branch] = None,
            is_active: bool = True,
    ) -> User:
        return await self._save(User(
            username=username,
            email=f"{username}@school.test",
            legacy_role_id=legacy_role.id if legacy_role else None,
            branch_id=branch.id if branch else None,
            is_active=is_active,
        ))

    async def assignment(
            self, user: User, role: RBACRole, branch: Branch, expires_at: Optional[datetime] = None
    ) -> UserRole:
        return await self._save(UserRole(
            user_id=user.id,
            rbac_role_id=role.id,
            branch_id=branch.id,
            expires_at=expires_at,
        ))


@pytest_asyncio.fixture
async def build(db):
    await seed_permissions(db)
    await db.commit()
    return Builder(db)


@pytest.fixture
def make_token():
    def _make(user_id, branch_id=None, expires_in: timedelta = timedelta(minutes=15)) -> str:
        claims = {"sub": str(user_id), "exp": datetime.now(timezone.utc) + expires_in}
        if branch_id is not None:
            claims["branch_id"] = str(branch_id)
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    from campus_rbac.db.session import get_session, get_session_factory
    from campus_rbac.main import app

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
