"""
tests/test_db.py — Unit tests for the record store and database layer.

Uses an in-memory SQLite database (via SQLAlchemy) so no real database
server is required. Tests run fast and fully in isolation.

NOTE: conftest.py injects dummy env vars before any crm module is imported,
preventing pydantic-settings from failing on missing required fields.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from crm.db.models import Deal, DealStage, LeadStatus
from crm.db.repository import RecordStore, StoreResult
from crm.errors import ExternalCallError


# ── StoreResult ───────────────────────────────────────────────────────────────

class TestStoreResult:
    def test_unwrap_returns_data(self):
        assert StoreResult(True, data=[1, 2]).unwrap("leads", "fetch") == [1, 2]

    def test_unwrap_raises_external_call_error(self):
        with pytest.raises(ExternalCallError) as exc:
            StoreResult(False, message="timeout").unwrap("deals", "update")
        assert exc.value.table == "deals"
        assert exc.value.operation == "update"
        assert str(exc.value) == "Record store update on 'deals' failed: timeout"


# ── create / get ──────────────────────────────────────────────────────────────

class TestCreateAndGet:
    def test_create_assigns_id(self, store):
        result = store.create_record("deals", {"title": "First"})
        assert result.success is True
        assert result.data.id is not None
        assert result.data.stage == DealStage.LEAD

    def test_get_by_id(self, store):
        deal = store.create_record("deals", {"title": "Lookup"}).data
        fetched = store.get_record_by_id("deals", deal.id)
        assert fetched.success is True
        assert isinstance(fetched.data, Deal)
        assert fetched.data.title == "Lookup"

    def test_get_missing_returns_none(self, store):
        result = store.get_record_by_id("deals", 42)
        assert result.success is True
        assert result.data is None

    def test_unknown_table(self, store):
        result = store.create_record("invoices", {"total": 1})
        assert result.success is False
        assert "invoices" in result.message

    def test_unknown_field(self, store):
        result = store.create_record("deals", {"title": "x", "colour": "red"})
        assert result.success is False
        assert "colour" in result.message

    def test_constraint_violation_is_reported_not_raised(self, store):
        # title is NOT NULL
        result = store.create_record("deals", {"value": 10.0})
        assert result.success is False
        # The session is still usable afterwards.
        assert store.create_record("deals", {"title": "After failure"}).success is True


# ── fetch ─────────────────────────────────────────────────────────────────────

class TestFetchRecords:
    @pytest.fixture
    def deals(self, store):
        return [
            store.create_record("deals", {"title": "A", "value": 10.0, "stage": DealStage.DEMO}).data,
            store.create_record("deals", {"title": "B", "value": 30.0, "stage": DealStage.TRIAL}).data,
            store.create_record("deals", {"title": "C", "value": 20.0, "stage": DealStage.DEMO, "lead_id": 1}).data,
        ]

    def test_default_order_is_primary_key(self, store, deals):
        assert [d.title for d in store.fetch_records("deals").data] == ["A", "B", "C"]

    def test_equality_filter(self, store, deals):
        rows = store.fetch_records("deals", where={"stage": DealStage.DEMO}).data
        assert [d.title for d in rows] == ["A", "C"]

    def test_in_filter(self, store, deals):
        rows = store.fetch_records("deals", where={"title": ["B", "C"]}).data
        assert [d.title for d in rows] == ["B", "C"]

    def test_null_filter(self, store, deals):
        rows = store.fetch_records("deals", where={"lead_id": None}).data
        assert [d.title for d in rows] == ["A", "B"]

    def test_order_limit_offset(self, store, deals):
        rows = store.fetch_records("deals", order_by="value", descending=True, limit=2, offset=1).data
        assert [d.title for d in rows] == ["C", "A"]

    def test_unknown_order_field(self, store, deals):
        assert store.fetch_records("deals", order_by="colour").success is False


# ── update / delete ───────────────────────────────────────────────────────────

class TestUpdateAndDelete:
    def test_partial_update(self, store):
        lead = store.create_record("leads", {"first_name": "Ann"}).data
        updated = store.update_record("leads", lead.id, {"status": LeadStatus.QUALIFIED}).data
        assert updated.status == LeadStatus.QUALIFIED
        assert updated.first_name == "Ann"

    def test_update_missing_returns_none(self, store):
        result = store.update_record("leads", 99, {"notes": "x"})
        assert result.success is True
        assert result.data is None

    def test_delete(self, store):
        deal = store.create_record("deals", {"title": "Doomed"}).data
        assert store.delete_record("deals", deal.id).data.id == deal.id
        assert store.get_record_by_id("deals", deal.id).data is None

    def test_delete_missing_returns_none(self, store):
        assert store.delete_record("deals", 5).data is None


class TestDriverFailures:
    def test_database_error_becomes_failed_result(self, db):
        store = RecordStore(db)
        error = OperationalError("SELECT", {}, Exception("database is locked"))

        with patch.object(db, "scalars", side_effect=error):
            result = store.fetch_records("leads")
        assert result.success is False
        assert "database is locked" in result.message
