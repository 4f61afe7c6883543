import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ledger-core")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import FixedClock
from app.core.security import create_access_token, hash_password
from app.database import get_db
from app.dependencies import get_blob_store, get_clock
from app.models.base import Base
# Import all model classes to ensure they're registered with SQLAlchemy
from app.models.tenant import Tenant
from app.models.user import User
from app.models.role import Role
from app.models.ledger_entry import EntryKind, LedgerEntry, LineItem
from app.models.attachment import Attachment
from app.storage.blob_store import InMemoryBlobStore
# Import FastAPI app AFTER model imports
from app.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday
NOW = datetime(2026, 3, 18, 10, 0, 0)
DEFAULT_PASSWORD = "password123"


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture(scope="function")
def client(db_session, clock, blob_store):
    """FastAPI test client with test database, pinned clock and in-memory blobs"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_tenant(db, name: str, slug: str, is_center: bool = False) -> Tenant:
    tenant = Tenant(name=name, slug=slug, is_center=is_center)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


def create_user(db, tenant: Tenant, email: str, role: Role = Role.STAFF, name: str | None = None) -> User:
    user = User(
        tenant_id=tenant.id,
        name=name or email.split("@")[0].title(),
        email=email,
        password_hash=hash_password(DEFAULT_PASSWORD),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_entry(
    db,
    author: User,
    kind: EntryKind = EntryKind.EXPENSE,
    amount: str = "100.00",
    description: str = "Office supplies",
    created_at: datetime = NOW,
    transaction_at: datetime | None = None,
    deleted_at: datetime | None = None,
    items: list[tuple[str, str, str]] | None = None,
) -> LedgerEntry:
    """Insert an entry directly; items are (name, quantity, unit_price) tuples"""
    line_items = [
        LineItem(
            name=name,
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price),
            subtotal=Decimal(quantity) * Decimal(unit_price),
        )
        for name, quantity, unit_price in (items or [])
    ]
    entry = LedgerEntry(
        tenant_id=author.tenant_id,
        user_id=author.id,
        kind=kind,
        description=description,
        total_amount=Decimal(amount),
        created_at=created_at,
        transaction_at=transaction_at or created_at,
        deleted_at=deleted_at,
        items=line_items,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def create_test_token(user: User, expires_delta: timedelta | None = None) -> str:
    return create_access_token(user.id, user.tenant_id, user.role, user.email, expires_delta)


def headers_for(user: User) -> dict:
    """Authorization headers for user"""
    return {"Authorization": f"Bearer {create_test_token(user)}"}


@pytest.fixture
def hq(db_session):
    return create_tenant(db_session, "Headquarters", "headquarters", is_center=True)


@pytest.fixture
def branch_a(db_session):
    return create_tenant(db_session, "Branch A", "branch-a")


@pytest.fixture
def branch_b(db_session):
    return create_tenant(db_session, "Branch B", "branch-b")


@pytest.fixture
def super_admin(db_session, hq):
    return create_user(db_session, hq, "root@hq.test", Role.SUPER_ADMIN, name="Root")


@pytest.fixture
def admin_a(db_session, branch_a):
    return create_user(db_session, branch_a, "admin@a.test", Role.ADMIN_LINI, name="Admin A")


@pytest.fixture
def staff_a(db_session, branch_a):
    return create_user(db_session, branch_a, "staff@a.test", Role.STAFF, name="Staff A")


@pytest.fixture
def other_staff_a(db_session, branch_a):
    return create_user(db_session, branch_a, "staff2@a.test", Role.STAFF, name="Staff A2")


@pytest.fixture
def staff_b(db_session, branch_b):
    return create_user(db_session, branch_b, "staff@b.test", Role.STAFF, name="Staff B")


@pytest.fixture
def super_headers(super_admin):
    return headers_for(super_admin)


@pytest.fixture
def admin_a_headers(admin_a):
    return headers_for(admin_a)


@pytest.fixture
def staff_a_headers(staff_a):
    return headers_for(staff_a)


@pytest.fixture
def staff_b_headers(staff_b):
    return headers_for(staff_b)
