"""
NGO Portal - Database Setup Tests

Run with: pytest tests/test_database.py -v
"""

from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool
from sqlmodel import select

from ngo_portal.auth.models import User
from ngo_portal.database import get_engine, get_session_factory, init_db


class TestDatabaseSetup:

    def test_sqlite_shares_one_connection(self):
        engine = get_engine("sqlite://")

        assert isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_init_db_creates_every_table(self):
        engine = get_engine("sqlite://")

        init_db(engine)
        tables = set(inspect(engine).get_table_names())

        assert {
            "users",
            "auth_sessions",
            "password_reset_tokens",
            "hubs",
            "hub_memberships",
            "membership_form_config",
            "membership_applications",
        } <= tables
        engine.dispose()

    def test_session_factory_opens_fresh_sessions(self):
        engine = get_engine("sqlite://")
        init_db(engine)
        factory = get_session_factory(engine)

        with factory() as first, factory() as second:
            assert first is not second
            assert first.exec(select(User)).all() == []
        engine.dispose()
