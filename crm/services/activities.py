"""
crm/services/activities.py — Activity log, tasks and comments.

An Activity is a call / email / meeting / demo / task entry; tasks carry a
due date, priority and completion flag. Comments are free text attached to
exactly one Lead or Deal. Notes and comments on a lead notify its owner.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from crm.config import settings
from crm.db.models import Activity, ActivityType, Comment, Priority, as_naive_utc, utcnow
from crm.db.repository import RecordStore
from crm.errors import NotFoundError, ValidationError
from crm.services.notifications import NotificationEmitter

logger = logging.getLogger(__name__)

ACTIVITY_TABLE = "activities"
COMMENT_TABLE = "comments"

ACTIVITY_FIELDS = frozenset({
    "type", "title", "description", "is_task", "due_date", "completed", "priority",
    "contact_id", "company_id", "lead_id", "deal_id",
})


def _parse_enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}; expected one of: {allowed}", [field])


class ActivityService:
    def __init__(self, store: RecordStore, notifier: Optional[NotificationEmitter] = None):
        self.store = store
        self.notifier = notifier or NotificationEmitter(store)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get(self, activity_id: int) -> Activity:
        activity = self.store.get_record_by_id(ACTIVITY_TABLE, activity_id).unwrap(ACTIVITY_TABLE, "get")
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        return activity

    def list_activities(
        self,
        contact_id: Optional[int] = None,
        company_id: Optional[int] = None,
        lead_id: Optional[int] = None,
    ) -> list[Activity]:
        where = {
            name: value
            for name, value in (("contact_id", contact_id), ("company_id", company_id), ("lead_id", lead_id))
            if value is not None
        }
        return self.store.fetch_records(
            ACTIVITY_TABLE, where=where, order_by="id", descending=True,
        ).unwrap(ACTIVITY_TABLE, "fetch")

    def tasks(self, include_completed: bool = True) -> list[Activity]:
        where: dict[str, Any] = {"is_task": True}
        if not include_completed:
            where["completed"] = False
        return self.store.fetch_records(
            ACTIVITY_TABLE, where=where, order_by="due_date",
        ).unwrap(ACTIVITY_TABLE, "fetch")

    def overdue_tasks(self, now: Optional[datetime] = None) -> list[Activity]:
        """Open tasks whose due date has passed."""
        cutoff = as_naive_utc(now) if now else utcnow()
        return [
            task for task in self.tasks(include_completed=False)
            if task.due_date is not None and task.due_date < cutoff
        ]

    # ── Mutations ─────────────────────────────────────────────────────────────

    def create(self, data: Mapping[str, Any]) -> Activity:
        fields = self._clean(data, creating=True)
        fields.setdefault("is_task", fields["type"] == ActivityType.TASK)
        fields.setdefault("completed", False)
        fields.setdefault("priority", Priority.MEDIUM)
        if fields["completed"]:
            fields["completed_at"] = utcnow()
        activity = self.store.create_record(ACTIVITY_TABLE, fields).unwrap(ACTIVITY_TABLE, "create")
        logger.info("Activity logged: %s %r", activity.type.value, activity.title)
        return activity

    def update(self, activity_id: int, patch: Mapping[str, Any]) -> Activity:
        """Partial edit; completed_at follows transitions of the completed flag."""
        fields = self._clean(patch)
        current = self.get(activity_id)
        if "completed" in fields:
            if fields["completed"] and not current.completed:
                fields["completed_at"] = utcnow()
            elif not fields["completed"] and current.completed:
                fields["completed_at"] = None

        activity = self.store.update_record(ACTIVITY_TABLE, activity_id, fields).unwrap(ACTIVITY_TABLE, "update")
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        logger.info("Activity %d updated: %s", activity_id, sorted(fields))
        return activity

    def mark_complete(self, activity_id: int) -> Activity:
        return self.update(activity_id, {"completed": True})

    def mark_incomplete(self, activity_id: int) -> Activity:
        return self.update(activity_id, {"completed": False})

    def delete(self, activity_id: int) -> Activity:
        activity = self.store.delete_record(ACTIVITY_TABLE, activity_id).unwrap(ACTIVITY_TABLE, "delete")
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        logger.info("Activity %d deleted.", activity_id)
        return activity

    def log_lead_activity(
        self, lead_id: int, data: Mapping[str, Any], user_id: Optional[int] = None,
    ) -> Activity:
        """Record an activity against a lead and tell its owner a note was added."""
        fields = dict(data)
        fields.setdefault("type", ActivityType.LEAD_ACTIVITY)
        fields.setdefault("title", "Lead Activity")
        fields.setdefault("description", f"Activity for lead ID {lead_id}")
        fields["lead_id"] = lead_id
        activity = self.create(fields)
        self.notifier.note_added(lead_id, activity.title, user_id=user_id)
        return activity

    def log_conversion(self, lead_id: int, deal_id: int) -> Activity:
        return self.create({
            "type": ActivityType.CONVERSION,
            "title": "Lead Converted to Deal",
            "description": f"Lead ID {lead_id} was successfully converted to Deal ID {deal_id}",
            "lead_id": lead_id,
            "deal_id": deal_id,
            "is_task": False,
            "completed": True,
        })

    @staticmethod
    def _clean(data: Mapping[str, Any], creating: bool = False) -> dict[str, Any]:
        fields = dict(data)
        unknown = sorted(k for k in fields if k not in ACTIVITY_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown activity field(s): {', '.join(unknown)}", unknown)

        if creating or "type" in fields:
            if fields.get("type") is None:
                raise ValidationError("Activity type is required.", ["type"])
            fields["type"] = _parse_enum(ActivityType, fields["type"], "type")
        if creating or "title" in fields:
            title = fields.get("title")
            if not isinstance(title, str) or not title.strip():
                raise ValidationError("Activity title is required.", ["title"])
            fields["title"] = title.strip()
        if fields.get("priority") is not None:
            fields["priority"] = _parse_enum(Priority, fields["priority"], "priority")
        elif "priority" in fields:
            fields.pop("priority")

        due_date = fields.get("due_date")
        if due_date is not None:
            if not isinstance(due_date, datetime):
                raise ValidationError("due_date must be a datetime.", ["due_date"])
            fields["due_date"] = as_naive_utc(due_date)

        for flag in ("is_task", "completed"):
            if flag in fields:
                fields[flag] = bool(fields[flag])
        return fields


class CommentService:
    def __init__(self, store: RecordStore, notifier: Optional[NotificationEmitter] = None):
        self.store = store
        self.notifier = notifier or NotificationEmitter(store)

    def get(self, comment_id: int) -> Comment:
        comment = self.store.get_record_by_id(COMMENT_TABLE, comment_id).unwrap(COMMENT_TABLE, "get")
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment

    def for_lead(self, lead_id: int) -> list[Comment]:
        """Newest first."""
        return self.store.fetch_records(
            COMMENT_TABLE, where={"lead_id": lead_id}, order_by="id", descending=True,
        ).unwrap(COMMENT_TABLE, "fetch")

    def for_deal(self, deal_id: int) -> list[Comment]:
        return self.store.fetch_records(
            COMMENT_TABLE, where={"deal_id": deal_id}, order_by="id", descending=True,
        ).unwrap(COMMENT_TABLE, "fetch")

    def create(
        self,
        body: str,
        lead_id: Optional[int] = None,
        deal_id: Optional[int] = None,
        user_id: Optional[int] = None,
        author: Optional[str] = None,
    ) -> Comment:
        """Attach a comment to exactly one lead or deal."""
        text = self._require_body(body)
        if (lead_id is None) == (deal_id is None):
            raise ValidationError("A comment belongs to exactly one lead or deal.", ["lead_id", "deal_id"])

        comment = self.store.create_record(COMMENT_TABLE, {
            "body": text,
            "lead_id": lead_id,
            "deal_id": deal_id,
            "user_id": user_id if user_id is not None else settings.default_notification_user_id,
            "author": author,
        }).unwrap(COMMENT_TABLE, "create")
        logger.info("Comment %d added to %s", comment.id, f"lead {lead_id}" if lead_id else f"deal {deal_id}")

        if lead_id is not None:
            self.notifier.note_added(lead_id, text[:60], user_id=user_id)
        return comment

    def update(self, comment_id: int, body: str) -> Comment:
        text = self._require_body(body)
        comment = self.store.update_record(COMMENT_TABLE, comment_id, {"body": text}).unwrap(COMMENT_TABLE, "update")
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment

    def delete(self, comment_id: int) -> Comment:
        comment = self.store.delete_record(COMMENT_TABLE, comment_id).unwrap(COMMENT_TABLE, "delete")
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        logger.info("Comment %d deleted.", comment_id)
        return comment

    @staticmethod
    def _require_body(body: Any) -> str:
        if not isinstance(body, str) or not body.strip():
            raise ValidationError("Comment text is required.", ["body"])
        return body.strip()
