"""
crm/services/metrics.py — Reporting dashboard aggregates.

Everything is computed from the record store at call time; nothing here is
cached or persisted.
"""

import logging
from typing import Any

from crm.db.models import LeadStatus
from crm.db.repository import RecordStore
from crm.services.activities import ActivityService
from crm.services.conversion import ConversionWorkflow
from crm.services.lead_service import LeadManager
from crm.services.notifications import NotificationEmitter
from crm.services.pipeline import PipelineTracker

logger = logging.getLogger(__name__)


def lead_conversion_rate(statuses: list[LeadStatus]) -> int:
    """Share of leads that reached Converted, as a rounded percentage."""
    if not statuses:
        return 0
    converted = sum(1 for status in statuses if status == LeadStatus.CONVERTED)
    return round(converted / len(statuses) * 100)


def dashboard_metrics(store: RecordStore) -> dict[str, Any]:
    notifier = NotificationEmitter(store)
    leads = LeadManager(store, notifier).list_leads()
    activities = ActivityService(store, notifier)

    by_status = {status.value: 0 for status in LeadStatus}
    for lead in leads:
        by_status[lead.status.value] += 1

    metrics = {
        "leads": {
            "total": len(leads),
            "by_status": by_status,
            "conversion_rate": lead_conversion_rate([lead.status for lead in leads]),
        },
        "pipeline": PipelineTracker(store, notifier).stats(),
        "conversions": ConversionWorkflow(store, notifier).conversion_stats(),
        "tasks": {
            "open": len(activities.tasks(include_completed=False)),
            "overdue": len(activities.overdue_tasks()),
        },
        "unread_notifications": notifier.unread_count(),
    }
    logger.debug("Dashboard metrics computed: %d leads", len(leads))
    return metrics
