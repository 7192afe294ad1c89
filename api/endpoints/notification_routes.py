"""
api/endpoints/notification_routes.py — Notification inbox and dashboard.

GET    /notifications               — Newest first (optionally for one user)
GET    /notifications/unread-count  — Unread badge count
POST   /notifications/{id}/read     — Mark one as read
GET    /dashboard                   — Reporting dashboard metrics
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.db.repository import RecordStore
from crm.db.session import get_db
from crm.services.metrics import dashboard_metrics
from crm.services.notifications import NotificationEmitter
from api.schemas import NotificationOut, UnreadCount

notification_router = APIRouter()
dashboard_router = APIRouter()


def get_notifier(db: Session = Depends(get_db)) -> NotificationEmitter:
    return NotificationEmitter(RecordStore(db))


@notification_router.get("/", response_model=list[NotificationOut], summary="List notifications")
def list_notifications(
    user_id: Optional[int] = Query(default=None, description="Only this user's notifications."),
    limit: int = Query(default=50, ge=1, le=100),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    if user_id is not None:
        return notifier.list_for_user(user_id, limit=limit)
    return notifier.list_all(limit=limit)


@notification_router.get("/unread-count", response_model=UnreadCount, summary="Unread notifications")
def unread_count(
    user_id: Optional[int] = Query(default=None),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    return UnreadCount(unread=notifier.unread_count(user_id))


@notification_router.post("/{notification_id}/read", response_model=NotificationOut, summary="Mark read")
def mark_read(notification_id: int, notifier: NotificationEmitter = Depends(get_notifier)):
    return notifier.mark_as_read(notification_id)


@dashboard_router.get("/", summary="Dashboard metrics")
def dashboard(db: Session = Depends(get_db)):
    """Lead, pipeline, conversion and task aggregates for the reporting dashboard."""
    return dashboard_metrics(RecordStore(db))
