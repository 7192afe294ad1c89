"""
crm/services/notifications.py — Best-effort notification emitter and inbox reads.

Services call the helper methods (lead_assigned, status_changed, ...) after a
successful mutation. Emitting is fire-and-forget: any failure is logged and
swallowed so it can never fail the operation that triggered it.
"""

import logging
from datetime import datetime
from typing import Optional

from crm.config import settings
from crm.db.models import Notification, NotificationType
from crm.db.repository import RecordStore
from crm.errors import NotFoundError

logger = logging.getLogger(__name__)

TABLE = "notifications"


class NotificationEmitter:
    def __init__(self, store: RecordStore):
        self.store = store

    # ── Publishing ────────────────────────────────────────────────────────────

    def emit(
        self,
        type: NotificationType,
        message: str,
        user_id: Optional[int] = None,
        lead_id: Optional[int] = None,
        deal_id: Optional[int] = None,
    ) -> Optional[Notification]:
        """
        Record a notification for later display.

        Returns:
            The stored Notification, or None if it could not be recorded.
        """
        recipient = user_id if user_id is not None else settings.default_notification_user_id
        try:
            result = self.store.create_record(TABLE, {
                "type": type,
                "message": message,
                "user_id": recipient,
                "lead_id": lead_id,
                "deal_id": deal_id,
                "read": False,
            })
        except Exception as exc:
            logger.error("Notification '%s' could not be recorded: %s", type.value, exc)
            return None

        if not result.success:
            logger.warning("Notification '%s' not recorded: %s", type.value, result.message)
            return None

        logger.info("Notification %s for user %s: %s", type.value, recipient, message)
        return result.data

    def lead_assigned(self, lead_id: int, assignee_name: str, assignee_id: int) -> Optional[Notification]:
        return self.emit(
            NotificationType.LEAD_ASSIGNED,
            f"A new lead has been assigned to {assignee_name}",
            user_id=assignee_id,
            lead_id=lead_id,
        )

    def status_changed(
        self, lead_id: int, old_status: str, new_status: str, user_id: Optional[int] = None,
    ) -> Optional[Notification]:
        return self.emit(
            NotificationType.STATUS_CHANGED,
            f"Lead status changed from {old_status} to {new_status}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def follow_up_reminder(
        self, lead_id: int, follow_up_at: datetime, user_id: Optional[int] = None,
    ) -> Optional[Notification]:
        return self.emit(
            NotificationType.FOLLOW_UP_REMINDER,
            f"Follow-up reminder: Lead requires follow-up on {follow_up_at:%Y-%m-%d}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def note_added(self, lead_id: int, note_title: str, user_id: Optional[int] = None) -> Optional[Notification]:
        return self.emit(
            NotificationType.NOTE_ADDED,
            f"New note added to lead: {note_title}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def lead_marked_lost(
        self, lead_id: int, reason: Optional[str] = None, user_id: Optional[int] = None,
    ) -> Optional[Notification]:
        suffix = f": {reason}" if reason else ""
        return self.emit(
            NotificationType.LEAD_MARKED_LOST,
            f"Lead marked as lost{suffix}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def lead_tagged(self, lead_id: int, tags: list[str], user_id: Optional[int] = None) -> Optional[Notification]:
        return self.emit(
            NotificationType.LEAD_TAGGED,
            f"Lead has been tagged: {', '.join(tags)}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def lead_removed(self, lead_id: int, lead_name: str, user_id: Optional[int] = None) -> Optional[Notification]:
        return self.emit(
            NotificationType.LEAD_REMOVED,
            f"Lead removed: {lead_name or lead_id}",
            user_id=user_id,
            lead_id=lead_id,
        )

    def deal_stage_changed(
        self, deal_id: int, deal_title: str, old_stage: str, new_stage: str, user_id: Optional[int] = None,
    ) -> Optional[Notification]:
        return self.emit(
            NotificationType.DEAL_STAGE_CHANGED,
            f"Deal '{deal_title}' moved from {old_stage} to {new_stage}",
            user_id=user_id,
            deal_id=deal_id,
        )

    # ── Inbox ─────────────────────────────────────────────────────────────────

    def list_all(self, limit: int = 100) -> list[Notification]:
        return self.store.fetch_records(
            TABLE, order_by="id", descending=True, limit=limit,
        ).unwrap(TABLE, "fetch")

    def list_for_user(self, user_id: int, limit: int = 50) -> list[Notification]:
        """Newest first."""
        return self.store.fetch_records(
            TABLE, where={"user_id": user_id}, order_by="id", descending=True, limit=limit,
        ).unwrap(TABLE, "fetch")

    def unread_count(self, user_id: Optional[int] = None) -> int:
        where: dict = {"read": False}
        if user_id is not None:
            where["user_id"] = user_id
        return len(self.store.fetch_records(TABLE, where=where).unwrap(TABLE, "fetch"))

    def mark_as_read(self, notification_id: int) -> Notification:
        notification = self.store.update_record(
            TABLE, notification_id, {"read": True},
        ).unwrap(TABLE, "update")
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification
