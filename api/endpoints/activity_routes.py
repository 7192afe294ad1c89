"""
api/endpoints/activity_routes.py — Activities, tasks and comments.

GET    /activities               — List (filter by contact/company/lead)
POST   /activities               — Log an activity or create a task
GET    /activities/tasks         — Tasks (optionally open only)
GET    /activities/tasks/overdue — Open tasks past their due date
GET    /activities/{id}          — Get one
PATCH  /activities/{id}          — Partial update
POST   /activities/{id}/complete — Mark a task complete
POST   /activities/{id}/reopen   — Mark a task incomplete
DELETE /activities/{id}          — Delete

GET    /comments?lead_id=|deal_id= — Comments on a lead or deal
POST   /comments                   — Add a comment
PATCH  /comments/{id}              — Edit text
DELETE /comments/{id}              — Delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.db.repository import RecordStore
from crm.db.session import get_db
from crm.errors import ValidationError
from crm.services.activities import ActivityService, CommentService
from api.schemas import ActivityCreate, ActivityOut, ActivityUpdate, CommentCreate, CommentOut, CommentUpdate

activity_router = APIRouter()
comment_router = APIRouter()


def get_activities(db: Session = Depends(get_db)) -> ActivityService:
    return ActivityService(RecordStore(db))


def get_comments(db: Session = Depends(get_db)) -> CommentService:
    return CommentService(RecordStore(db))


# ── Activities ────────────────────────────────────────────────────────────────

@activity_router.get("/", response_model=list[ActivityOut], summary="List activities")
def list_activities(
    contact_id: Optional[int] = Query(default=None),
    company_id: Optional[int] = Query(default=None),
    lead_id: Optional[int] = Query(default=None),
    activities: ActivityService = Depends(get_activities),
):
    return activities.list_activities(contact_id=contact_id, company_id=company_id, lead_id=lead_id)


@activity_router.post("/", response_model=ActivityOut, status_code=201, summary="Log activity")
def create_activity(payload: ActivityCreate, activities: ActivityService = Depends(get_activities)):
    return activities.create(payload.model_dump(exclude_none=True))


@activity_router.get("/tasks", response_model=list[ActivityOut], summary="List tasks")
def list_tasks(
    open_only: bool = Query(default=False, description="Hide completed tasks."),
    activities: ActivityService = Depends(get_activities),
):
    return activities.tasks(include_completed=not open_only)


@activity_router.get("/tasks/overdue", response_model=list[ActivityOut], summary="Overdue tasks")
def overdue_tasks(activities: ActivityService = Depends(get_activities)):
    return activities.overdue_tasks()


@activity_router.get("/{activity_id}", response_model=ActivityOut, summary="Get activity by ID")
def get_activity(activity_id: int, activities: ActivityService = Depends(get_activities)):
    return activities.get(activity_id)


@activity_router.patch("/{activity_id}", response_model=ActivityOut, summary="Update activity")
def update_activity(
    activity_id: int, payload: ActivityUpdate, activities: ActivityService = Depends(get_activities),
):
    return activities.update(activity_id, payload.model_dump(exclude_unset=True))


@activity_router.post("/{activity_id}/complete", response_model=ActivityOut, summary="Complete task")
def complete_activity(activity_id: int, activities: ActivityService = Depends(get_activities)):
    return activities.mark_complete(activity_id)


@activity_router.post("/{activity_id}/reopen", response_model=ActivityOut, summary="Reopen task")
def reopen_activity(activity_id: int, activities: ActivityService = Depends(get_activities)):
    return activities.mark_incomplete(activity_id)


@activity_router.delete("/{activity_id}", response_model=ActivityOut, summary="Delete activity")
def delete_activity(activity_id: int, activities: ActivityService = Depends(get_activities)):
    return activities.delete(activity_id)


# ── Comments ──────────────────────────────────────────────────────────────────

@comment_router.get("/", response_model=list[CommentOut], summary="Comments on a lead or deal")
def list_comments(
    lead_id: Optional[int] = Query(default=None),
    deal_id: Optional[int] = Query(default=None),
    comments: CommentService = Depends(get_comments),
):
    if lead_id is not None:
        return comments.for_lead(lead_id)
    if deal_id is not None:
        return comments.for_deal(deal_id)
    raise ValidationError("Pass lead_id or deal_id.", ["lead_id", "deal_id"])


@comment_router.post("/", response_model=CommentOut, status_code=201, summary="Add comment")
def create_comment(payload: CommentCreate, comments: CommentService = Depends(get_comments)):
    return comments.create(**payload.model_dump())


@comment_router.patch("/{comment_id}", response_model=CommentOut, summary="Edit comment")
def update_comment(comment_id: int, payload: CommentUpdate, comments: CommentService = Depends(get_comments)):
    return comments.update(comment_id, payload.body)


@comment_router.delete("/{comment_id}", response_model=CommentOut, summary="Delete comment")
def delete_comment(comment_id: int, comments: CommentService = Depends(get_comments)):
    return comments.delete(comment_id)
