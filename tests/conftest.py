"""
tests/conftest.py — Shared pytest configuration and fixtures.

Sets dummy environment variables BEFORE any crm module is imported,
so that pydantic-settings doesn't fail on missing required fields.
"""

import os
import pytest

# ── Set dummy env vars before any crm module is imported ─────────────────────
# This runs at collection time, before tests execute.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm.db.models import Base
from crm.db.repository import RecordStore
from crm.db.session import configure_sqlite

SALES_TEAM = [
    {"name": "John Smith", "territory": "West Coast"},
    {"name": "Emma Wilson", "territory": "East Coast"},
    {"name": "David Kim", "territory": "Central"},
    {"name": "Sarah Davis", "territory": "West Coast"},
]


# ── In-memory DB Fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def engine():
    """A fresh in-memory SQLite database shared by every connection of one test."""
    engine = configure_sqlite(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def team(store):
    """Seed the four-person sales team; member IDs are 1–4 in list order."""
    return [
        store.create_record("team_members", member).unwrap("team_members", "create")
        for member in SALES_TEAM
    ]
