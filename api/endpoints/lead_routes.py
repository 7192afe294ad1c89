"""
api/endpoints/lead_routes.py — Lead lifecycle routes.

GET    /leads                      — List active leads (filter by status/source/assignee)
POST   /leads                      — Create a lead (scored, status derived)
GET    /leads/team                 — Sales team members
GET    /leads/analytics/sources    — Count / qualified / avg score per source
GET    /leads/follow-ups/due       — Leads whose follow-up time has passed
POST   /leads/score                — Score a lead payload without saving it
GET    /leads/{id}                 — Get a single lead
PATCH  /leads/{id}                 — Partial update (explicit status only)
DELETE /leads/{id}                 — Remove from the active set
POST   /leads/{id}/assign          — Assign to a named team member
POST   /leads/{id}/assign/territory — Least-loaded member of a territory
POST   /leads/{id}/assign/auto     — Least-loaded member of the whole team
POST   /leads/{id}/lost            — Mark lost (optional reason)
POST   /leads/{id}/tags            — Add tags
POST   /leads/{id}/follow-up       — Schedule a follow-up reminder
POST   /leads/{id}/convert         — Convert into a pipeline deal
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.db.models import LeadStatus
from crm.db.repository import RecordStore
from crm.db.session import get_db
from crm.services.conversion import ConversionWorkflow
from crm.services.lead_service import LeadManager
from crm.services.scoring import calculate_score
from api.schemas import (
    AssignRequest,
    ConvertRequest,
    DealOut,
    FollowUpRequest,
    LeadCreate,
    LeadOut,
    LeadUpdate,
    MarkLostRequest,
    ScoreOut,
    TagRequest,
    TeamMemberOut,
    TerritoryAssignRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def get_lead_manager(db: Session = Depends(get_db)) -> LeadManager:
    return LeadManager(RecordStore(db))


@router.get("/", response_model=list[LeadOut], summary="List leads")
def list_leads(
    status: Optional[LeadStatus] = Query(default=None, description="Filter by status."),
    source: Optional[str] = Query(default=None, description="Filter by lead source."),
    assignee_id: Optional[int] = Query(default=None, description="Filter by assigned team member."),
    limit: int = Query(default=50, ge=1, le=200),
    leads: LeadManager = Depends(get_lead_manager),
):
    """Return active leads, newest first."""
    return leads.list_leads(status=status, source=source, assignee_id=assignee_id, limit=limit)


@router.post("/", response_model=LeadOut, status_code=201, summary="Create lead")
def create_lead(payload: LeadCreate, leads: LeadManager = Depends(get_lead_manager)):
    """Create a lead. Its score and starting status are computed, not supplied."""
    return leads.create(payload.model_dump(exclude_unset=True))


@router.get("/team", response_model=list[TeamMemberOut], summary="Sales team")
def sales_team(leads: LeadManager = Depends(get_lead_manager)):
    return leads.team()


@router.get("/analytics/sources", summary="Lead analytics by source")
def source_analytics(leads: LeadManager = Depends(get_lead_manager)):
    return leads.source_analytics()


@router.get("/follow-ups/due", response_model=list[LeadOut], summary="Due follow-ups")
def due_follow_ups(leads: LeadManager = Depends(get_lead_manager)):
    return leads.due_follow_ups()


@router.post("/score", response_model=ScoreOut, summary="Preview a lead score")
def preview_score(payload: LeadCreate):
    """Score a lead payload without persisting anything."""
    result = calculate_score(payload.model_dump())
    return ScoreOut(total_score=result.total_score, breakdown=result.breakdown.as_dict())


@router.get("/{lead_id}", response_model=LeadOut, summary="Get lead by ID")
def get_lead(lead_id: int, leads: LeadManager = Depends(get_lead_manager)):
    return leads.get(lead_id)


@router.patch("/{lead_id}", response_model=LeadOut, summary="Update lead")
def update_lead(lead_id: int, payload: LeadUpdate, leads: LeadManager = Depends(get_lead_manager)):
    """
    Partially update a lead. Editing company size, industry, engagement or
    title rescores it; status only changes when `status` is sent.
    """
    return leads.update(lead_id, payload.model_dump(exclude_unset=True))


@router.delete("/{lead_id}", response_model=LeadOut, summary="Remove lead")
def delete_lead(lead_id: int, leads: LeadManager = Depends(get_lead_manager)):
    return leads.delete(lead_id)


@router.post("/{lead_id}/assign", response_model=LeadOut, summary="Assign lead to a team member")
def assign_lead(lead_id: int, payload: AssignRequest, leads: LeadManager = Depends(get_lead_manager)):
    return leads.assign(lead_id, payload.assignee_id)


@router.post("/{lead_id}/assign/territory", response_model=LeadOut, summary="Round-robin within a territory")
def assign_by_territory(
    lead_id: int, payload: TerritoryAssignRequest, leads: LeadManager = Depends(get_lead_manager),
):
    return leads.assign_by_territory(lead_id, payload.territory)


@router.post("/{lead_id}/assign/auto", response_model=LeadOut, summary="Round-robin across the team")
def auto_assign(lead_id: int, leads: LeadManager = Depends(get_lead_manager)):
    return leads.auto_assign(lead_id)


@router.post("/{lead_id}/lost", response_model=LeadOut, summary="Mark lead lost")
def mark_lost(lead_id: int, payload: MarkLostRequest, leads: LeadManager = Depends(get_lead_manager)):
    return leads.mark_lost(lead_id, payload.reason)


@router.post("/{lead_id}/tags", response_model=LeadOut, summary="Tag lead")
def tag_lead(lead_id: int, payload: TagRequest, leads: LeadManager = Depends(get_lead_manager)):
    return leads.tag(lead_id, payload.tags)


@router.post("/{lead_id}/follow-up", response_model=LeadOut, summary="Schedule follow-up")
def schedule_follow_up(lead_id: int, payload: FollowUpRequest, leads: LeadManager = Depends(get_lead_manager)):
    return leads.schedule_follow_up(lead_id, payload.when)


@router.post(
    "/{lead_id}/convert",
    response_model=DealOut,
    status_code=201,
    summary="Convert lead to deal",
)
def convert_lead(lead_id: int, payload: ConvertRequest, db: Session = Depends(get_db)):
    """Create a deal from the lead and mark the lead Converted."""
    deal = ConversionWorkflow(RecordStore(db)).convert_to_deal(lead_id, payload.model_dump(exclude_none=True))
    logger.info("Lead %d converted to deal %d via API.", lead_id, deal.id)
    return deal
