"""
tests/test_conversion.py — Unit tests for lead → deal conversion.
"""

from datetime import datetime

import pytest

from crm.config import settings
from crm.db.models import ActivityType, DealStage, LeadStatus, NotificationType
from crm.db.repository import RecordStore, StoreResult
from crm.errors import ExternalCallError, NotFoundError, ValidationError
from crm.services.conversion import ConversionWorkflow
from crm.services.lead_service import LeadManager

LEAD = {
    "first_name": "Grace",
    "last_name": "Hopper",
    "email": "grace@cobol.dev",
    "title": "VP Engineering",
    "company_name": "Compiler Co",
    "company_size": "201-500",
    "industry": "Software",
    "engagement_level": "High",
    "source": "Referral",
    "website": "https://cobol.dev",
}


@pytest.fixture
def workflow(store):
    return ConversionWorkflow(store)


@pytest.fixture
def lead(store):
    return LeadManager(store).create(LEAD)


class LeadUpdateFailsStore(RecordStore):
    """Record store that refuses to update leads."""

    def update_record(self, table, record_id, fields):
        if table == "leads":
            return StoreResult(False, message="leads table is read-only")
        return super().update_record(table, record_id, fields)


class TestConvertToDeal:
    def test_creates_deal_from_lead(self, workflow, lead):
        deal = workflow.convert_to_deal(lead.id)

        assert deal.title == "Compiler Co - Grace Hopper"
        assert deal.stage == DealStage.LEAD
        assert deal.probability == settings.conversion_probability
        assert deal.value == 0
        assert deal.contact_name == "Grace Hopper"
        assert deal.contact_email == "grace@cobol.dev"
        assert deal.lead_id == lead.id
        assert deal.lead_source == "Referral"
        assert deal.lead_score == lead.lead_score
        assert deal.notes == f"Converted from lead ID {lead.id}. Original lead score: {lead.lead_score}"

    def test_marks_lead_converted_and_notifies(self, workflow, lead, store):
        workflow.convert_to_deal(lead.id)
        assert workflow.leads.get(lead.id).status == LeadStatus.CONVERTED

        [notification] = store.fetch_records(
            "notifications", where={"type": NotificationType.STATUS_CHANGED},
        ).data
        assert notification.message == "Lead status changed from Qualified to Converted"

    def test_logs_conversion_activity(self, workflow, lead):
        deal = workflow.convert_to_deal(lead.id)
        [activity] = workflow.activities.list_activities(lead_id=lead.id)
        assert activity.type == ActivityType.CONVERSION
        assert activity.deal_id == deal.id
        assert activity.completed is True
        assert activity.is_task is False

    def test_overrides(self, workflow, lead):
        close = datetime(2031, 3, 1)
        deal = workflow.convert_to_deal(lead.id, {"title": "Compiler Co platform", "value": 48000, "expected_close_date": close})
        assert deal.title == "Compiler Co platform"
        assert deal.value == 48000.0
        assert deal.expected_close_date == close

    def test_create_company_from_lead(self, workflow, lead):
        deal = workflow.convert_to_deal(lead.id, {"create_company": True})
        company = workflow.companies.get(deal.company_id)
        assert company.name == "Compiler Co"
        assert company.employees == 300
        assert company.status == "Prospect"
        assert company.lead_score == lead.lead_score

    def test_missing_lead_creates_no_deal(self, workflow, store):
        with pytest.raises(NotFoundError):
            workflow.convert_to_deal(999)
        assert store.fetch_records("deals").data == []

    def test_removed_lead_cannot_be_converted(self, workflow, lead, store):
        workflow.leads.delete(lead.id)
        with pytest.raises(NotFoundError):
            workflow.convert_to_deal(lead.id)
        assert store.fetch_records("deals").data == []

    def test_already_converted_lead_rejected(self, workflow, lead, store):
        workflow.convert_to_deal(lead.id)
        with pytest.raises(ValidationError):
            workflow.convert_to_deal(lead.id)
        assert len(store.fetch_records("deals").data) == 1

    def test_unknown_override_rejected(self, workflow, lead, store):
        with pytest.raises(ValidationError):
            workflow.convert_to_deal(lead.id, {"stage": "closed"})
        assert store.fetch_records("deals").data == []

    def test_invalid_value_writes_nothing(self, workflow, lead, store):
        with pytest.raises(ValidationError) as exc:
            workflow.convert_to_deal(lead.id, {"create_company": True, "value": -5})
        assert exc.value.fields == ["value"]
        assert store.fetch_records("companies").data == []
        assert store.fetch_records("deals").data == []
        assert workflow.leads.get(lead.id).status == LeadStatus.QUALIFIED

    def test_default_title_for_unnamed_lead(self, workflow, store):
        unnamed = LeadManager(store).create({"company_name": "Acme", "company_size": "11-50"})
        assert workflow.convert_to_deal(unnamed.id).title == "Acme"

    def test_failed_lead_update_removes_deal(self, db):
        store = LeadUpdateFailsStore(db)
        lead = LeadManager(store).create(LEAD)
        workflow = ConversionWorkflow(store)

        with pytest.raises(ExternalCallError):
            workflow.convert_to_deal(lead.id)
        assert store.fetch_records("deals").data == []
        assert workflow.leads.get(lead.id).status == LeadStatus.QUALIFIED


class TestConversionStats:
    def test_empty(self, workflow):
        assert workflow.conversion_stats() == {
            "total_converted": 0,
            "total_revenue": 0,
            "avg_deal_size": 0,
            "conversions_by_source": {},
        }

    def test_revenue_by_source(self, workflow, store):
        leads = LeadManager(store)
        a = leads.create(LEAD)
        b = leads.create({**LEAD, "source": "Website"})
        c = leads.create(LEAD)
        workflow.convert_to_deal(a.id, {"value": 1000})
        workflow.convert_to_deal(b.id, {"value": 2500})
        workflow.convert_to_deal(c.id, {"value": 500})
        # Deals not created from a lead are left out.
        workflow.pipeline.create_deal({"title": "Inbound", "value": 9999})

        stats = workflow.conversion_stats()
        assert stats["total_converted"] == 3
        assert stats["total_revenue"] == 4000
        assert stats["avg_deal_size"] == 1333
        assert stats["conversions_by_source"] == {
            "Referral": {"count": 2, "revenue": 1500},
            "Website": {"count": 1, "revenue": 2500},
        }
