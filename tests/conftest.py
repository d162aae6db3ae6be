import os
from datetime import timedelta
from decimal import Decimal

import pytest


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Lucky Draw Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "SCHEDULER_ENABLED": "false",
        "AUTO_ANNOUNCE_ENABLED": "false",
        "DUMMY_UNIT_POLICY": "uncapped",
        "SLOT_WINDOW_LEAD_MINUTES": "15",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base, build_engine  # noqa: E402
from app.models import SlotType, User, UserRole, Wallet  # noqa: E402
from app.services.slots import create_slot  # noqa: E402
from app.utils.dates import utcnow  # noqa: E402


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, phone, *, role=UserRole.AGENT, approved=True, commission_pct=None, with_wallet=True, balance="0"):
    user = User(
        phone=phone,
        full_name=f"User {phone}",
        role=role,
        is_active=True,
        is_approved=approved,
        commission_pct=commission_pct,
    )
    db.add(user)
    db.flush()
    if with_wallet:
        db.add(Wallet(user_id=user.id, total_balance=Decimal(balance), reserved_winning=Decimal("0")))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db):
    def _factory(phone, **kwargs):
        return _make_user(db, phone, **kwargs)

    return _factory


@pytest.fixture
def admin(make_user):
    return make_user("0800000000", role=UserRole.ADMIN, with_wallet=False)


@pytest.fixture
def agent(make_user):
    return make_user("0700000001")


@pytest.fixture
def ld_slot(db):
    return create_slot(db, SlotType.LD, utcnow() + timedelta(hours=1))


@pytest.fixture
def jp_slot(db):
    return create_slot(db, SlotType.JP, utcnow() + timedelta(hours=1))
