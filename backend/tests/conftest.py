"""
Shared fixtures: in-memory SQLite database, authenticated API client and
user/property factories.

Authentication is replaced by a dependency override that trusts
``Authorization: Bearer <firebase_uid>``, so tests act as any user by uid.
"""

import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("FIREBASE_PROJECT_ID", "test")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ["REDIS_URL"] = ""

import fnmatch
import uuid
from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi import HTTPException, Request, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.cache import CacheService, get_cache
from app.core.database import Base, get_db
from app.core.security import AuthenticatedUser, verify_firebase_token, verify_optional_firebase_token
from app.main import app
from app.models.enums import SubscriptionPlan, SubscriptionStatus, UnitStatus, UserRole
from app.models.property import Property, PropertyOwner, Unit, UnitTenant
from app.models.user import User


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================================
# API client
# ============================================================================

def _principal_from(request: Request) -> Optional[AuthenticatedUser]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    uid = header[len("Bearer "):]
    return AuthenticatedUser(uid=uid, email=f"{uid}@example.com", email_verified=True)


async def fake_verify_token(request: Request) -> AuthenticatedUser:
    principal = _principal_from(request)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return principal


async def fake_verify_optional_token(request: Request) -> Optional[AuthenticatedUser]:
    return _principal_from(request)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[verify_firebase_token] = fake_verify_token
    app.dependency_overrides[verify_optional_firebase_token] = fake_verify_optional_token

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {user.firebase_uid}"}


# ============================================================================
# Factories
# ============================================================================

async def create_user(
    db,
    role: UserRole = UserRole.PROPERTY_MANAGER,
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL,
    trial_days: int = 14,
    **fields,
) -> User:
    uid = fields.pop("firebase_uid", f"uid-{uuid.uuid4().hex[:12]}")
    user = User(
        firebase_uid=uid,
        email=fields.pop("email", f"{uid}@example.com"),
        first_name=fields.pop("first_name", role.value.title()),
        last_name=fields.pop("last_name", "Tester"),
        role=role,
        subscription_status=subscription_status,
        subscription_plan=SubscriptionPlan.FREE_TRIAL,
        trial_end_date=datetime.utcnow() + timedelta(days=trial_days),
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_property(db, manager: User, owners: tuple = (), **fields) -> Property:
    prop = Property(
        manager_id=manager.id,
        org_id=manager.org_id,
        name=fields.pop("name", "Harbour View Apartments"),
        address=fields.pop("address", "1 Harbour St"),
        city=fields.pop("city", "Sydney"),
        **fields,
    )
    db.add(prop)
    await db.flush()
    for owner in owners:
        db.add(PropertyOwner(property_id=prop.id, owner_id=owner.id))
    await db.commit()
    await db.refresh(prop)
    return prop


async def create_unit(db, prop: Property, unit_number: str = "101", tenant: Optional[User] = None) -> Unit:
    unit = Unit(
        property_id=prop.id,
        unit_number=unit_number,
        status=UnitStatus.OCCUPIED if tenant else UnitStatus.VACANT,
    )
    db.add(unit)
    await db.flush()
    if tenant:
        db.add(UnitTenant(unit_id=unit.id, tenant_id=tenant.id, lease_start=datetime.utcnow()))
    await db.commit()
    await db.refresh(unit)
    return unit


@pytest.fixture
async def manager(db):
    return await create_user(db, UserRole.PROPERTY_MANAGER)


@pytest.fixture
async def owner(db):
    return await create_user(db, UserRole.OWNER)


@pytest.fixture
async def technician(db):
    return await create_user(db, UserRole.TECHNICIAN)


@pytest.fixture
async def tenant(db):
    return await create_user(db, UserRole.TENANT)


@pytest.fixture
async def admin(db):
    return await create_user(db, UserRole.ADMIN)


@pytest.fixture
async def prop(db, manager, owner):
    return await create_property(db, manager, owners=(owner,))


# ============================================================================
# Cache
# ============================================================================

class FakeRedis:
    """Implements the handful of redis.asyncio calls CacheService makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def scan_iter(self, match=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key


@pytest.fixture
def redis_cache(client):
    """Route the API's response cache into an inspectable FakeRedis."""
    fake = FakeRedis()
    app.dependency_overrides[get_cache] = lambda: CacheService(fake)
    return fake
