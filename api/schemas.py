"""
api/schemas.py — Pydantic request/response models for all API endpoints.

These are the API contract — separate from DB ORM models so we can
control exactly what data is exposed over HTTP.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from crm.db.models import ActivityType, ContactStatus, DealStage, LeadStatus, NotificationType, Priority


# ── Team ──────────────────────────────────────────────────────────────────────

class TeamMemberOut(BaseModel):
    id: int
    name: str
    territory: str
    email: Optional[str] = None

    model_config = {"from_attributes": True}


# ── Lead ─────────────────────────────────────────────────────────────────────

class LeadBase(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = Field(default=None, description="Job title, e.g. 'CTO'")
    company_name: Optional[str] = None
    company_size: Optional[str] = Field(default=None, description="Size bucket: 1-10, 11-50, 51-200, 201-500, 500+")
    industry: Optional[str] = None
    website: Optional[str] = None
    source: Optional[str] = Field(default=None, description="Where the lead came from, e.g. 'Website'")
    engagement_level: Optional[str] = Field(default=None, description="High, Medium or Low")
    territory: Optional[str] = None
    next_follow_up: Optional[datetime] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None


class LeadCreate(LeadBase):
    pass


class LeadUpdate(LeadBase):
    status: Optional[str] = Field(
        default=None,
        description="Explicit status change: New, Nurturing, Qualified, Converted, Lost (or Disqualified)",
    )


class LeadOut(LeadBase):
    id: int
    lead_score: int
    qualification_criteria: Optional[dict[str, int]] = None
    status: LeadStatus
    assigned_to: Optional[str] = None
    assigned_to_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ScoreOut(BaseModel):
    total_score: int
    breakdown: dict[str, int]


class AssignRequest(BaseModel):
    assignee_id: int = Field(..., description="Team member to assign the lead to")


class TerritoryAssignRequest(BaseModel):
    territory: str = Field(..., min_length=1, description="Territory to round-robin within")


class MarkLostRequest(BaseModel):
    reason: Optional[str] = None


class TagRequest(BaseModel):
    tags: list[str] = Field(..., min_length=1)


class FollowUpRequest(BaseModel):
    when: datetime


class ConvertRequest(BaseModel):
    title: Optional[str] = None
    value: Optional[float] = Field(default=None, ge=0)
    company_id: Optional[int] = None
    expected_close_date: Optional[datetime] = None
    create_company: bool = Field(default=False, description="Open a Company from the lead's details")


# ── Deal / Pipeline ──────────────────────────────────────────────────────────

class DealBase(BaseModel):
    value: Optional[float] = Field(default=None, ge=0)
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    stage: Optional[DealStage] = None
    expected_close_date: Optional[datetime] = None
    company_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None


class DealCreate(DealBase):
    title: str = Field(..., min_length=1)


class DealUpdate(DealBase):
    title: Optional[str] = Field(default=None, min_length=1)


class DealOut(BaseModel):
    id: int
    title: str
    value: float
    probability: int
    stage: DealStage
    expected_close_date: Optional[datetime] = None
    company_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    assigned_to: Optional[str] = None
    lead_id: Optional[int] = None
    lead_source: Optional[str] = None
    lead_score: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StageMoveRequest(BaseModel):
    stage: DealStage


class StageSummaryOut(BaseModel):
    stage: DealStage
    label: str
    count: int
    value: float

    model_config = {"from_attributes": True}


# ── Company / Contact ────────────────────────────────────────────────────────

class CompanyBase(BaseModel):
    industry: Optional[str] = None
    employees: Optional[int] = Field(default=None, ge=0)
    mrr: Optional[int] = Field(default=None, ge=0)
    plan: Optional[str] = None
    status: Optional[str] = None
    website: Optional[str] = None


class CompanyCreate(CompanyBase):
    name: str = Field(..., min_length=1)


class CompanyUpdate(CompanyBase):
    name: Optional[str] = Field(default=None, min_length=1)


class CompanyOut(CompanyBase):
    id: int
    name: str
    lead_source: Optional[str] = None
    lead_score: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContactBase(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    status: Optional[ContactStatus] = None
    mrr: Optional[int] = Field(default=None, ge=0)


class ContactCreate(ContactBase):
    name: str = Field(..., min_length=1)


class ContactUpdate(ContactBase):
    name: Optional[str] = Field(default=None, min_length=1)


class ContactOut(ContactBase):
    id: int
    name: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Activity / Comment ───────────────────────────────────────────────────────

class ActivityBase(BaseModel):
    description: Optional[str] = None
    is_task: Optional[bool] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    contact_id: Optional[int] = None
    company_id: Optional[int] = None
    lead_id: Optional[int] = None
    deal_id: Optional[int] = None


class ActivityCreate(ActivityBase):
    type: ActivityType
    title: str = Field(..., min_length=1)


class ActivityUpdate(ActivityBase):
    type: Optional[ActivityType] = None
    title: Optional[str] = Field(default=None, min_length=1)


class ActivityOut(ActivityBase):
    id: int
    type: ActivityType
    title: str
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)
    lead_id: Optional[int] = None
    deal_id: Optional[int] = None
    user_id: Optional[int] = None
    author: Optional[str] = None


class CommentUpdate(BaseModel):
    body: str = Field(..., min_length=1)


class CommentOut(BaseModel):
    id: int
    body: str
    lead_id: Optional[int] = None
    deal_id: Optional[int] = None
    user_id: Optional[int] = None
    author: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Notification ─────────────────────────────────────────────────────────────

class NotificationOut(BaseModel):
    id: int
    type: NotificationType
    message: str
    user_id: Optional[int] = None
    lead_id: Optional[int] = None
    deal_id: Optional[int] = None
    read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    unread: int
