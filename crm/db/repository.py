"""
crm/db/repository.py — The record store every service reads and writes through.

Business logic should never write ORM queries directly; everything goes
through RecordStore. Services receive a store instance, so a different
backing store can be substituted without touching them.

Every operation takes a table name and returns a StoreResult
{success, data | message} instead of raising. Writes run inside a SAVEPOINT
so a failed write never poisons the caller's surrounding transaction.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm.db.models import (
    Activity,
    Base,
    Comment,
    Company,
    Contact,
    Deal,
    Lead,
    Notification,
    TeamMember,
)
from crm.errors import ExternalCallError

logger = logging.getLogger(__name__)


TABLES: dict[str, type[Base]] = {
    "team_members": TeamMember,
    "companies": Company,
    "contacts": Contact,
    "leads": Lead,
    "deals": Deal,
    "activities": Activity,
    "comments": Comment,
    "notifications": Notification,
}


@dataclass
class StoreResult:
    success: bool
    data: Any = None
    message: str = ""

    def unwrap(self, table: str, operation: str) -> Any:
        """Return data, or raise ExternalCallError if the call failed."""
        if not self.success:
            raise ExternalCallError(table, operation, self.message)
        return self.data


class RecordStore:
    """CRUD over the CRM tables, backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ── Reads ─────────────────────────────────────────────────────────────────

    def fetch_records(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> StoreResult:
        """
        Fetch rows from a table.

        Args:
            table:      Table name, e.g. "leads".
            where:      field → value. A scalar matches by equality, None
                        matches IS NULL, a list/tuple/set matches IN.
            order_by:   Column to sort by (default: primary key).
            descending: Sort direction.
            limit:      Max rows to return.
            offset:     Rows to skip.
        """
        model = TABLES.get(table)
        if model is None:
            return self._unknown_table(table)

        columns = model.__table__.columns
        fields = dict(where or {})
        unknown = [name for name in fields if name not in columns]
        if order_by and order_by not in columns:
            unknown.append(order_by)
        if unknown:
            return StoreResult(False, message=f"Unknown field(s) on '{table}': {', '.join(unknown)}")

        query = select(model)
        for name, value in fields.items():
            column = columns[name]
            if value is None:
                query = query.where(column.is_(None))
            elif isinstance(value, (list, tuple, set)):
                query = query.where(column.in_(list(value)))
            else:
                query = query.where(column == value)

        sort_column = columns[order_by] if order_by else model.__table__.primary_key.columns.values()[0]
        query = query.order_by(sort_column.desc() if descending else sort_column.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        try:
            rows = list(self.db.scalars(query).all())
        except SQLAlchemyError as exc:
            return self._failed(table, "fetch", exc)
        logger.debug("Fetched %d row(s) from %s where=%s", len(rows), table, fields)
        return StoreResult(True, data=rows)

    def get_record_by_id(self, table: str, record_id: int) -> StoreResult:
        """Return the row with this primary key; data is None when it doesn't exist."""
        model = TABLES.get(table)
        if model is None:
            return self._unknown_table(table)
        try:
            record = self.db.get(model, record_id)
        except SQLAlchemyError as exc:
            return self._failed(table, "get", exc)
        return StoreResult(True, data=record)

    # ── Writes ────────────────────────────────────────────────────────────────

    def create_record(self, table: str, fields: Mapping[str, Any]) -> StoreResult:
        """Insert a row and return it with its generated ID."""
        model = TABLES.get(table)
        if model is None:
            return self._unknown_table(table)
        bad = self._unknown_fields(model, fields)
        if bad:
            return bad

        try:
            with self.db.begin_nested():
                record = model(**fields)
                self.db.add(record)
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            return self._failed(table, "create", exc)
        logger.debug("Created %r", record)
        return StoreResult(True, data=record)

    def update_record(self, table: str, record_id: int, fields: Mapping[str, Any]) -> StoreResult:
        """Apply a partial update; data is None when the row doesn't exist."""
        model = TABLES.get(table)
        if model is None:
            return self._unknown_table(table)
        bad = self._unknown_fields(model, fields)
        if bad:
            return bad

        try:
            with self.db.begin_nested():
                record = self.db.get(model, record_id)
                if record is None:
                    return StoreResult(True, data=None)
                for name, value in fields.items():
                    setattr(record, name, value)
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            return self._failed(table, "update", exc)
        logger.debug("Updated %s %d: %s", table, record_id, sorted(fields))
        return StoreResult(True, data=record)

    def delete_record(self, table: str, record_id: int) -> StoreResult:
        """Hard-delete a row; data is the deleted row, or None when it didn't exist."""
        model = TABLES.get(table)
        if model is None:
            return self._unknown_table(table)

        try:
            with self.db.begin_nested():
                record = self.db.get(model, record_id)
                if record is None:
                    return StoreResult(True, data=None)
                self.db.delete(record)
        except SQLAlchemyError as exc:
            return self._failed(table, "delete", exc)
        logger.debug("Deleted %s %d", table, record_id)
        return StoreResult(True, data=record)

    # ── Private helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _unknown_table(table: str) -> StoreResult:
        return StoreResult(False, message=f"Unknown table '{table}'")

    @staticmethod
    def _unknown_fields(model: type[Base], fields: Mapping[str, Any]) -> Optional[StoreResult]:
        columns = model.__table__.columns
        unknown = sorted(name for name in fields if name not in columns)
        if unknown:
            return StoreResult(
                False,
                message=f"Unknown field(s) on '{model.__tablename__}': {', '.join(unknown)}",
            )
        return None

    @staticmethod
    def _failed(table: str, operation: str, exc: SQLAlchemyError) -> StoreResult:
        logger.error("Record store %s on %s failed: %s", operation, table, exc)
        return StoreResult(False, message=str(exc))
