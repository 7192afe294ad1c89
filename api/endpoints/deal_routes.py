"""
api/endpoints/deal_routes.py — Deals and the pipeline board.

GET    /deals                  — List deals (filter by stage)
POST   /deals                  — Create a deal
GET    /deals/pipeline         — Count and value per stage, in board order
GET    /deals/stats            — Totals and per-stage breakdown
GET    /deals/conversions      — Revenue attributed to converted leads
GET    /deals/{id}             — Get a single deal
PATCH  /deals/{id}             — Partial update
DELETE /deals/{id}             — Delete a deal
POST   /deals/{id}/stage       — Move a deal to any stage (drag-and-drop)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.db.models import DealStage
from crm.db.repository import RecordStore
from crm.db.session import get_db
from crm.services.conversion import ConversionWorkflow
from crm.services.pipeline import PipelineTracker
from api.schemas import DealCreate, DealOut, DealUpdate, StageMoveRequest, StageSummaryOut

logger = logging.getLogger(__name__)
router = APIRouter()


def get_pipeline(db: Session = Depends(get_db)) -> PipelineTracker:
    return PipelineTracker(RecordStore(db))


@router.get("/", response_model=list[DealOut], summary="List deals")
def list_deals(
    stage: Optional[DealStage] = Query(default=None, description="Filter by pipeline stage."),
    pipeline: PipelineTracker = Depends(get_pipeline),
):
    return pipeline.list_deals(stage=stage)


@router.post("/", response_model=DealOut, status_code=201, summary="Create deal")
def create_deal(payload: DealCreate, pipeline: PipelineTracker = Depends(get_pipeline)):
    return pipeline.create_deal(payload.model_dump(exclude_none=True))


@router.get("/pipeline", response_model=list[StageSummaryOut], summary="Pipeline board")
def pipeline_board(pipeline: PipelineTracker = Depends(get_pipeline)):
    """Deal count and total value for each of the five stages."""
    return pipeline.stage_summary()


@router.get("/stats", summary="Pipeline statistics")
def pipeline_stats(pipeline: PipelineTracker = Depends(get_pipeline)):
    return pipeline.stats()


@router.get("/conversions", summary="Lead conversion statistics")
def conversion_stats(db: Session = Depends(get_db)):
    return ConversionWorkflow(RecordStore(db)).conversion_stats()


@router.get("/{deal_id}", response_model=DealOut, summary="Get deal by ID")
def get_deal(deal_id: int, pipeline: PipelineTracker = Depends(get_pipeline)):
    return pipeline.get_deal(deal_id)


@router.patch("/{deal_id}", response_model=DealOut, summary="Update deal")
def update_deal(deal_id: int, payload: DealUpdate, pipeline: PipelineTracker = Depends(get_pipeline)):
    return pipeline.update_deal(deal_id, payload.model_dump(exclude_unset=True))


@router.delete("/{deal_id}", response_model=DealOut, summary="Delete deal")
def delete_deal(deal_id: int, pipeline: PipelineTracker = Depends(get_pipeline)):
    return pipeline.delete_deal(deal_id)


@router.post("/{deal_id}/stage", response_model=DealOut, summary="Move deal to a stage")
def move_deal(deal_id: int, payload: StageMoveRequest, pipeline: PipelineTracker = Depends(get_pipeline)):
    """Any stage is reachable from any other; only the stage field changes."""
    deal = pipeline.move_deal(deal_id, payload.stage)
    logger.info("Deal %d moved to %s via API.", deal_id, payload.stage.value)
    return deal
