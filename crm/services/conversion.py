"""
crm/services/conversion.py — Turn a qualified lead into a pipeline deal.

Steps:
  1. Read the lead (NotFoundError propagates; nothing is created).
  2. Build and validate the deal fields before anything is written.
  3. Optionally open a Company for it.
  4. Create the deal in the first pipeline stage at a low fixed probability,
     carrying the lead's contact, source and score for traceability.
  5. Mark the lead Converted (emits a Status Changed notification).
  6. Log a conversion activity.

Steps 4 and 5 form one unit: if marking the lead fails, the new deal is
deleted again before the error propagates, and the caller's session scope
rolls back whatever was flushed.
"""

import logging
from collections import defaultdict
from typing import Any, Mapping, Optional

from crm.config import settings
from crm.db.models import Deal, LeadStatus
from crm.db.repository import RecordStore
from crm.errors import ValidationError
from crm.services.accounts import CompanyService
from crm.services.activities import ActivityService
from crm.services.lead_service import LeadManager
from crm.services.notifications import NotificationEmitter
from crm.services.pipeline import FIRST_STAGE, PipelineTracker, validate_deal_fields

logger = logging.getLogger(__name__)

OVERRIDE_FIELDS = frozenset({"title", "value", "company_id", "expected_close_date", "create_company"})


class ConversionWorkflow:
    def __init__(self, store: RecordStore, notifier: Optional[NotificationEmitter] = None):
        self.store = store
        notifier = notifier or NotificationEmitter(store)
        self.leads = LeadManager(store, notifier)
        self.pipeline = PipelineTracker(store, notifier)
        self.companies = CompanyService(store)
        self.activities = ActivityService(store, notifier)

    def convert_to_deal(self, lead_id: int, overrides: Optional[Mapping[str, Any]] = None) -> Deal:
        """
        Convert a lead into a deal.

        Args:
            lead_id:   The lead to convert.
            overrides: Optional deal fields — title, value, company_id,
                       expected_close_date — plus create_company=True to open
                       a Company from the lead when no company_id is given.

        Returns:
            The newly created Deal.

        Raises:
            NotFoundError:     the lead does not exist (no deal is created).
            ValidationError:   the lead was already converted, or bad overrides.
            ExternalCallError: the deal or the lead update could not be stored.
        """
        options = dict(overrides or {})
        unknown = sorted(k for k in options if k not in OVERRIDE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown conversion field(s): {', '.join(unknown)}", unknown)

        lead = self.leads.get(lead_id)
        if lead.status == LeadStatus.CONVERTED:
            raise ValidationError(f"Lead {lead_id} has already been converted.", ["status"])

        contact_name = lead.full_name
        default_title = " - ".join(part for part in (lead.company_name or "Unknown", contact_name) if part)
        deal_fields = validate_deal_fields({
            "title": options.get("title") or default_title,
            "value": options.get("value") or 0.0,
            "stage": FIRST_STAGE,
            "probability": settings.conversion_probability,
            "expected_close_date": options.get("expected_close_date"),
            "company_id": options.get("company_id"),
            "contact_name": contact_name,
            "contact_email": lead.email,
            "assigned_to": lead.assigned_to,
            "lead_id": lead.id,
            "lead_source": lead.source,
            "lead_score": lead.lead_score,
            "notes": f"Converted from lead ID {lead.id}. Original lead score: {lead.lead_score}",
        }, creating=True)

        if deal_fields["company_id"] is None and options.get("create_company"):
            deal_fields["company_id"] = self.companies.create_from_lead(lead).id

        deal = self.pipeline.create_deal(deal_fields)

        try:
            self.leads.update(lead_id, {"status": LeadStatus.CONVERTED})
        except Exception:
            logger.error("Marking lead %d converted failed; removing deal %d.", lead_id, deal.id)
            self.store.delete_record("deals", deal.id)
            raise

        self.activities.log_conversion(lead_id, deal.id)
        logger.info("Lead %d converted to deal %d (%r).", lead_id, deal.id, deal.title)
        return deal

    def conversion_stats(self) -> dict[str, Any]:
        """Revenue attributed to converted leads, overall and per lead source."""
        converted = [deal for deal in self.pipeline.list_deals() if deal.lead_id is not None]
        revenue = sum(deal.value for deal in converted)

        by_source: dict[str, dict[str, Any]] = defaultdict(lambda: {"count": 0, "revenue": 0.0})
        for deal in converted:
            bucket = by_source[deal.lead_source or "Unknown"]
            bucket["count"] += 1
            bucket["revenue"] += deal.value

        return {
            "total_converted": len(converted),
            "total_revenue": revenue,
            "avg_deal_size": round(revenue / len(converted)) if converted else 0,
            "conversions_by_source": dict(by_source),
        }
