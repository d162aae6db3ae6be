import importlib.util
import logging
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


logger = logging.getLogger(__name__)

# Announcements lock one wallet row per winner while holding the slot lock,
# so a starved pool shows up as 503s during a draw.
POOL_SIZE_FLOOR = 5
MAX_OVERFLOW_FLOOR = 5
POOL_TIMEOUT_FLOOR = 8

REMOTE_EXEMPT_HOSTS = {"localhost", "127.0.0.1", "db"}


def resolve_database_url(database_url: str) -> str:
    """Pick the installed postgres driver for a bare ``postgresql://`` URL."""
    if not database_url.startswith("postgresql://"):
        return database_url
    if importlib.util.find_spec("psycopg2") is None and importlib.util.find_spec("psycopg") is not None:
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def connect_args_for(database_url: str) -> dict:
    parsed = urlparse(database_url)
    if parsed.scheme.startswith("sqlite"):
        # The scheduler thread and request threads share one engine.
        return {"check_same_thread": False}
    if not parsed.scheme.startswith("postgresql"):
        return {}

    args = {
        "keepalives": 1,
        "keepalives_idle": 30,
        "keepalives_interval": 10,
        "keepalives_count": 5,
    }
    if parsed.hostname not in REMOTE_EXEMPT_HOSTS:
        args["sslmode"] = "require"
    return args


def pool_options_for(database_url: str, settings: Settings) -> dict:
    if not database_url.startswith("postgresql"):
        return {}

    configured = (int(settings.db_pool_size), int(settings.db_max_overflow), int(settings.db_pool_timeout))
    effective = (
        max(POOL_SIZE_FLOOR, configured[0]),
        max(MAX_OVERFLOW_FLOOR, configured[1]),
        max(POOL_TIMEOUT_FLOOR, configured[2]),
    )
    if effective != configured:
        logger.warning("Raised DB pool settings (size, overflow, timeout) from %s to %s", configured, effective)

    return {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
        "pool_size": effective[0],
        "max_overflow": effective[1],
        "pool_timeout": effective[2],
        "pool_use_lifo": True,
    }


def build_engine(database_url: str, settings: Optional[Settings] = None, **overrides) -> Engine:
    """Engine for ``database_url`` with driver, connect and pool options applied.

    ``overrides`` win over the computed options, e.g. ``poolclass=StaticPool``
    for an in-memory SQLite database shared across sessions.
    """
    url = resolve_database_url(database_url)
    options = {"connect_args": connect_args_for(url), **pool_options_for(url, settings or get_settings())}
    options.update(overrides)
    return create_engine(url, **options)


database_url = resolve_database_url(str(get_settings().database_url))
engine = build_engine(database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
