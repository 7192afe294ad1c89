"""
crm/db/models.py — SQLAlchemy ORM models for the CRM.

Tables:
  - TeamMember    → a sales rep that leads are routed to
  - Company       → an account (industry, head-count, MRR, plan)
  - Contact       → a person, optionally linked to a Company
  - Lead          → an unqualified prospect with a qualification score
  - Deal          → a sales opportunity sitting in one pipeline stage
  - Activity      → a call/email/meeting/demo/task log entry
  - Comment       → free text attached to a Lead or a Deal
  - Notification  → an ephemeral record of a business event for one user

Cross-entity references (company_id, contact_id, lead_id, deal_id) are soft
keys: plain integers, not enforced by the database.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what DateTime columns hand back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ── Base ─────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    pass


# ── Enums ────────────────────────────────────────────────────────────────────

class LeadStatus(str, enum.Enum):
    NEW = "New"
    NURTURING = "Nurturing"
    QUALIFIED = "Qualified"
    CONVERTED = "Converted"
    LOST = "Lost"


class EngagementLevel(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class DealStage(str, enum.Enum):
    # Declaration order is the pipeline's display order.
    LEAD = "lead"
    DEMO = "demo"
    TRIAL = "trial"
    NEGOTIATION = "negotiation"
    CLOSED = "closed"


class ContactStatus(str, enum.Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    CHURNED = "churned"


class ActivityType(str, enum.Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    DEMO = "demo"
    TASK = "task"
    NOTE = "note"
    LEAD_ACTIVITY = "lead_activity"
    CONVERSION = "conversion"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationType(str, enum.Enum):
    LEAD_ASSIGNED = "New Lead Assigned"
    STATUS_CHANGED = "Status Changed"
    FOLLOW_UP_REMINDER = "Follow-up Reminder"
    NOTE_ADDED = "Note Added"
    LEAD_MARKED_LOST = "Lead Marked Lost"
    LEAD_TAGGED = "Lead Tagged"
    DEAL_STAGE_CHANGED = "Deal Stage Changed"
    LEAD_REMOVED = "Lead Removed"


# ── Models ───────────────────────────────────────────────────────────────────

class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    territory = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    leads = relationship("Lead", back_populates="assignee")

    def __repr__(self) -> str:
        return f"<TeamMember id={self.id} name={self.name!r} territory={self.territory!r}>"


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(100), nullable=True)
    employees = Column(Integer, default=1, nullable=False)
    mrr = Column(Integer, default=0, nullable=False)
    plan = Column(String(50), nullable=True)                # e.g. "Free", "Pro"
    status = Column(String(50), nullable=True)              # e.g. "Prospect", "Active"
    website = Column(String(512), nullable=True)
    lead_source = Column(String(100), nullable=True)
    lead_score = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company_id = Column(Integer, nullable=True)             # soft key → companies.id
    company_name = Column(String(255), nullable=True)       # free-text fallback
    status = Column(Enum(ContactStatus), default=ContactStatus.TRIAL, nullable=False)
    mrr = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Contact id={self.id} name={self.name!r} status={self.status}>"


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    title = Column(String(255), nullable=True)              # job title, feeds budget fit

    company_name = Column(String(255), nullable=True)
    company_size = Column(String(20), nullable=True)        # bucket, e.g. "51-200"
    industry = Column(String(100), nullable=True)
    website = Column(String(512), nullable=True)

    source = Column(String(100), nullable=True)             # e.g. "Website", "Referral"
    engagement_level = Column(String(20), nullable=True)    # High / Medium / Low

    lead_score = Column(Integer, default=0, nullable=False)  # 0 – 100
    qualification_criteria = Column(JSON, nullable=True)     # per-criterion breakdown
    status = Column(Enum(LeadStatus), default=LeadStatus.NEW, nullable=False)

    assigned_to = Column(String(255), nullable=True)
    assigned_to_id = Column(Integer, ForeignKey("team_members.id", ondelete="SET NULL"), nullable=True)
    territory = Column(String(100), nullable=True)

    next_follow_up = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)                      # list of strings

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)            # set when removed from the active set

    assignee = relationship("TeamMember", back_populates="leads")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def __repr__(self) -> str:
        return f"<Lead id={self.id} status={self.status} score={self.lead_score}>"


class Deal(Base):
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(512), nullable=False)
    value = Column(Float, default=0.0, nullable=False)
    probability = Column(Integer, default=0, nullable=False)  # 0 – 100
    stage = Column(Enum(DealStage), default=DealStage.LEAD, nullable=False)
    expected_close_date = Column(DateTime, nullable=True)

    company_id = Column(Integer, nullable=True)             # soft key → companies.id
    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    assigned_to = Column(String(255), nullable=True)

    lead_id = Column(Integer, nullable=True)                # set when converted from a lead
    lead_source = Column(String(100), nullable=True)
    lead_score = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Deal id={self.id} stage={self.stage} value={self.value}>"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(ActivityType), nullable=False)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)

    is_task = Column(Boolean, default=False, nullable=False)
    due_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    priority = Column(Enum(Priority), default=Priority.MEDIUM, nullable=False)

    contact_id = Column(Integer, nullable=True)
    company_id = Column(Integer, nullable=True)
    lead_id = Column(Integer, nullable=True)
    deal_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Activity id={self.id} type={self.type} is_task={self.is_task}>"


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    body = Column(Text, nullable=False)
    lead_id = Column(Integer, nullable=True)
    deal_id = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True)
    author = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Comment id={self.id} lead_id={self.lead_id} deal_id={self.deal_id}>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    lead_id = Column(Integer, nullable=True)
    deal_id = Column(Integer, nullable=True)
    type = Column(Enum(NotificationType), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} type={self.type} user_id={self.user_id} read={self.read}>"
