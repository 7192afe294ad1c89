"""
scripts/setup_db.py — Initialize the database schema and seed the sales team.

Run once before starting the application for the first time:
    python scripts/setup_db.py

Creates all tables defined in crm/db/models.py directly via SQLAlchemy
metadata, then inserts the default sales team if the team table is empty.
"""

import sys
import os

# Ensure the project root is on the path so we can import `crm`
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import inspect, text

from crm.config import settings
from crm.db.models import Base
from crm.db.repository import RecordStore
from crm.db.session import engine, get_session

DEFAULT_TEAM = [
    {"name": "John Smith", "territory": "West Coast"},
    {"name": "Emma Wilson", "territory": "East Coast"},
    {"name": "David Kim", "territory": "Central"},
    {"name": "Sarah Davis", "territory": "West Coast"},
]


def seed_team(store: RecordStore) -> int:
    """Insert DEFAULT_TEAM if no team members exist yet. Returns rows inserted."""
    existing = store.fetch_records("team_members", limit=1).unwrap("team_members", "fetch")
    if existing:
        return 0
    for member in DEFAULT_TEAM:
        store.create_record("team_members", member).unwrap("team_members", "create")
    return len(DEFAULT_TEAM)


def setup_db() -> None:
    print("🔌 Connecting to database...")
    print(f"   URL: {settings.database_url[:40]}...")

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    print("✅ Connection successful.")

    print("\n📦 Creating tables if they don't exist...")
    Base.metadata.create_all(bind=engine)

    # Report which tables were found
    inspector = inspect(engine)
    tables = inspector.get_table_names()
    print(f"✅ Tables in database: {tables}")

    print("\n👥 Seeding sales team...")
    with get_session() as db:
        inserted = seed_team(RecordStore(db))
    print(f"✅ {inserted} team member(s) added." if inserted else "✅ Sales team already present.")

    print("\n🎉 Database setup complete!")


if __name__ == "__main__":
    setup_db()
