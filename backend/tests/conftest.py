"""
Pytest configuration and shared fixtures for SwiftLink.
"""
import os
import sys
from pathlib import Path

# Ensure backend package is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Test environment, set BEFORE settings are loaded
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_PRICE_PRO", "price_pro_test")
os.environ.setdefault("STRIPE_PRICE_ULTIMATE", "price_ultimate_test")
os.environ.setdefault("FRONTEND_URL", "http://localhost:5173")

# Patch PostgreSQL UUID type BEFORE any imports
from sqlalchemy.dialects import postgresql
from sqlalchemy import TypeDecorator, CHAR
import uuid as uuid_module


class GUID(TypeDecorator):
    """Platform-independent GUID type. Uses PostgreSQL's UUID type, otherwise uses CHAR(36)."""
    impl = CHAR
    cache_ok = True

    def __init__(self, as_uuid=True):
        """Accept as_uuid parameter for compatibility with PostgreSQL UUID."""
        self.as_uuid = as_uuid
        super().__init__()

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(_original_uuid(as_uuid=self.as_uuid))
        else:
            return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        elif isinstance(value, uuid_module.UUID):
            return value
        else:
            return uuid_module.UUID(value)


# Monkey patch BEFORE models are imported
_original_uuid = postgresql.UUID
postgresql.UUID = GUID

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.

    Uses an in-memory SQLite database for fast, isolated testing.
    UUID type has been patched at module level to work with SQLite.
    """
    from swiftlink.db.base import Base
    import swiftlink.models  # noqa: F401  registers tables

    # Create in-memory SQLite database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db, email, role):
    from swiftlink.models import User

    user = User(email=email, full_name=f"{(role or 'no-role').title()} User", role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def restaurant_user(db):
    """Restaurant account (can subscribe)."""
    return _make_user(db, "restaurant@test.com", "restaurant")


@pytest.fixture
def driver_user(db):
    """Driver account (can subscribe)."""
    return _make_user(db, "driver@test.com", "driver")


@pytest.fixture
def admin_user(db):
    """Admin account (cannot subscribe, manages subscriptions)."""
    return _make_user(db, "admin@test.com", "admin")


@pytest.fixture
def roleless_user(db):
    """Profile whose role has not been set yet."""
    return _make_user(db, "pending@test.com", None)
