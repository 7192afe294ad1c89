"""
crm/services/pipeline.py — Deals and the five-stage sales pipeline.

Stages, in display order: lead → demo → trial → negotiation → closed.
A deal may move from any stage to any other (drag-and-drop), with no
ordering rule. Concurrent moves of the same deal are last-write-wins.

Per-stage counts and values are never stored; stage_summary() recomputes
them from the current deals on every call.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from crm.db.models import Deal, DealStage, as_naive_utc
from crm.db.repository import RecordStore
from crm.errors import NotFoundError, ValidationError
from crm.services.notifications import NotificationEmitter

logger = logging.getLogger(__name__)

TABLE = "deals"

PIPELINE_STAGES: tuple[tuple[DealStage, str], ...] = (
    (DealStage.LEAD, "Lead"),
    (DealStage.DEMO, "Demo"),
    (DealStage.TRIAL, "Trial"),
    (DealStage.NEGOTIATION, "Negotiation"),
    (DealStage.CLOSED, "Closed"),
)
STAGE_LABELS = {stage: label for stage, label in PIPELINE_STAGES}

# First stage a newly created or converted deal lands in.
FIRST_STAGE = PIPELINE_STAGES[0][0]

DEAL_FIELDS = frozenset({
    "title",
    "value",
    "probability",
    "stage",
    "expected_close_date",
    "company_id",
    "contact_name",
    "contact_email",
    "assigned_to",
    "lead_id",
    "lead_source",
    "lead_score",
    "notes",
})


@dataclass(frozen=True)
class StageSummary:
    stage: DealStage
    label: str
    count: int
    value: float


def parse_stage(value: Any) -> DealStage:
    """Coerce a stage name (any case) into a DealStage."""
    if isinstance(value, DealStage):
        return value
    try:
        return DealStage(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(stage.value for stage, _ in PIPELINE_STAGES)
        raise ValidationError(f"Invalid pipeline stage {value!r}; expected one of: {allowed}", ["stage"])


def validate_deal_fields(data: Mapping[str, Any], creating: bool = False) -> dict[str, Any]:
    """Check a deal payload and return a cleaned copy. Raises ValidationError."""
    fields = dict(data)
    unknown = sorted(k for k in fields if k not in DEAL_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown deal field(s): {', '.join(unknown)}", unknown)

    if creating or "title" in fields:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Deal title is required.", ["title"])
        fields["title"] = title.strip()

    if "probability" in fields:
        probability = fields["probability"]
        if isinstance(probability, bool) or not isinstance(probability, int) or not 0 <= probability <= 100:
            raise ValidationError("Probability must be an integer between 0 and 100.", ["probability"])

    if "value" in fields:
        value = fields["value"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValidationError("Deal value must be a non-negative number.", ["value"])
        fields["value"] = float(value)

    if "stage" in fields:
        fields["stage"] = parse_stage(fields["stage"])

    close_date = fields.get("expected_close_date")
    if close_date is not None:
        if not isinstance(close_date, datetime):
            raise ValidationError("expected_close_date must be a datetime.", ["expected_close_date"])
        fields["expected_close_date"] = as_naive_utc(close_date)

    return fields


class PipelineTracker:
    def __init__(self, store: RecordStore, notifier: Optional[NotificationEmitter] = None):
        self.store = store
        self.notifier = notifier or NotificationEmitter(store)

    # ── Deal CRUD ─────────────────────────────────────────────────────────────

    def get_deal(self, deal_id: int) -> Deal:
        deal = self.store.get_record_by_id(TABLE, deal_id).unwrap(TABLE, "get")
        if deal is None:
            raise NotFoundError("Deal", deal_id)
        return deal

    def list_deals(self, stage: Optional[Any] = None) -> list[Deal]:
        where = {"stage": parse_stage(stage)} if stage is not None else None
        return self.store.fetch_records(TABLE, where=where, order_by="id").unwrap(TABLE, "fetch")

    def create_deal(self, data: Mapping[str, Any]) -> Deal:
        fields = validate_deal_fields(data, creating=True)
        fields.setdefault("stage", FIRST_STAGE)
        fields.setdefault("value", 0.0)
        fields.setdefault("probability", 0)
        deal = self.store.create_record(TABLE, fields).unwrap(TABLE, "create")
        logger.info("Deal created: %r (%s, %.2f)", deal.title, deal.stage.value, deal.value)
        return deal

    def update_deal(self, deal_id: int, patch: Mapping[str, Any]) -> Deal:
        fields = validate_deal_fields(patch)
        if "stage" in fields:
            # Stage changes go through move_deal so they are announced.
            self.move_deal(deal_id, fields.pop("stage"))
        self.get_deal(deal_id)
        deal = self.store.update_record(TABLE, deal_id, fields).unwrap(TABLE, "update")
        if deal is None:
            raise NotFoundError("Deal", deal_id)
        logger.info("Deal %d updated: %s", deal_id, sorted(fields))
        return deal

    def delete_deal(self, deal_id: int) -> Deal:
        deal = self.store.delete_record(TABLE, deal_id).unwrap(TABLE, "delete")
        if deal is None:
            raise NotFoundError("Deal", deal_id)
        logger.info("Deal %d deleted.", deal_id)
        return deal

    # ── Stage tracking ────────────────────────────────────────────────────────

    def move_deal(self, deal_id: int, target_stage: Any) -> Deal:
        """
        Move a deal to any pipeline stage. Only the stage field changes.

        Raises:
            ValidationError: target_stage is not one of the five stages.
            NotFoundError:   no such deal.
        """
        stage = parse_stage(target_stage)
        deal = self.get_deal(deal_id)
        old_stage = deal.stage
        if old_stage == stage:
            return deal

        moved = self.store.update_record(TABLE, deal_id, {"stage": stage}).unwrap(TABLE, "update")
        if moved is None:
            raise NotFoundError("Deal", deal_id)
        logger.info("Deal %d moved %s → %s", deal_id, old_stage.value, stage.value)
        self.notifier.deal_stage_changed(
            deal_id, moved.title, STAGE_LABELS[old_stage], STAGE_LABELS[stage],
        )
        return moved

    def stage_summary(self) -> list[StageSummary]:
        """Deal count and summed value for every stage, in display order."""
        deals = self.list_deals()
        summary = []
        for stage, label in PIPELINE_STAGES:
            in_stage = [deal for deal in deals if deal.stage == stage]
            summary.append(StageSummary(
                stage=stage,
                label=label,
                count=len(in_stage),
                value=sum(deal.value for deal in in_stage),
            ))
        return summary

    def stage_value(self, stage: Any) -> float:
        return sum(deal.value for deal in self.list_deals(stage=stage))

    def stats(self) -> dict[str, Any]:
        summary = self.stage_summary()
        return {
            "total": sum(s.count for s in summary),
            "total_value": sum(s.value for s in summary),
            "by_stage": {s.stage.value: {"count": s.count, "value": s.value} for s in summary},
        }
