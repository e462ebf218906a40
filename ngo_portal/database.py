"""
NGO Portal - Database Setup

One engine per process, built from DATABASE_URL:
- sqlite:// URLs share a single connection (StaticPool) so in-memory
  databases survive across sessions
- anything else (PostgreSQL) gets a pre-pinged connection pool

Usage:
    engine = get_engine()
    init_db(engine)
    app.state.db_session_factory = get_session_factory(engine)
"""

from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from ngo_portal.config import get_settings


POOL_SIZE = 5
MAX_OVERFLOW = 10


def get_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Engine for database_url, defaulting to the configured DATABASE_URL."""
    url = database_url or get_settings().DATABASE_URL

    if url.startswith("sqlite"):
        options = {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    else:
        options = {
            "pool_size": POOL_SIZE,
            "max_overflow": MAX_OVERFLOW,
            "pool_pre_ping": True,
        }
    return create_engine(url, echo=echo, **options)


def init_db(engine: Engine) -> None:
    """Create any missing portal tables."""
    # Table classes register themselves on import
    from ngo_portal.auth import models as auth_models  # noqa: F401
    from ngo_portal.hubs import models as hub_models  # noqa: F401
    from ngo_portal.membership import models as membership_models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session_factory(engine: Engine) -> Callable[[], Session]:
    """Zero-argument callable opening a new Session on engine."""
    def session_factory() -> Session:
        return Session(engine)

    return session_factory
