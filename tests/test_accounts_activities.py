"""
tests/test_accounts_activities.py — Companies, contacts, activities, tasks and comments.
"""

from datetime import datetime, timedelta

import pytest

from crm.db.models import ActivityType, ContactStatus, NotificationType, Priority
from crm.errors import NotFoundError, ValidationError
from crm.services.accounts import CompanyService, ContactService, employee_count_for_size
from crm.services.activities import ActivityService, CommentService


# ── Companies ─────────────────────────────────────────────────────────────────

class TestCompanyService:
    @pytest.fixture
    def companies(self, store):
        return CompanyService(store)

    def test_create_with_defaults(self, companies):
        company = companies.create({"name": "  Initech  "})
        assert company.name == "Initech"
        assert company.employees == 1
        assert company.mrr == 0

    def test_lenient_integer_fields(self, companies):
        company = companies.create({"name": "Globex", "employees": "250", "mrr": "not a number"})
        assert (company.employees, company.mrr) == (250, 0)

    def test_name_required(self, companies):
        with pytest.raises(ValidationError):
            companies.create({"industry": "Software"})

    def test_update_and_delete(self, companies):
        company = companies.create({"name": "Hooli"})
        assert companies.update(company.id, {"plan": "Pro", "mrr": 499}).mrr == 499
        companies.delete(company.id)
        with pytest.raises(NotFoundError):
            companies.get(company.id)

    def test_update_missing(self, companies):
        with pytest.raises(NotFoundError):
            companies.update(10, {"plan": "Pro"})

    def test_employee_count_for_size(self):
        assert employee_count_for_size("11-50") == 25
        assert employee_count_for_size("enormous") == 10
        assert employee_count_for_size(None) == 10


# ── Contacts ──────────────────────────────────────────────────────────────────

class TestContactService:
    @pytest.fixture
    def contacts(self, store):
        return ContactService(store)

    def test_create_defaults_to_trial(self, contacts):
        contact = contacts.create({"name": "Peter Gibbons", "email": "peter@initech.com"})
        assert contact.status == ContactStatus.TRIAL

    def test_company_need_not_exist(self, contacts):
        assert contacts.create({"name": "Orphan", "company_id": 424242}).company_id == 424242

    def test_invalid_status(self, contacts):
        with pytest.raises(ValidationError):
            contacts.create({"name": "Milton", "status": "fired"})

    def test_filter_by_company_and_status(self, contacts):
        contacts.create({"name": "A", "company_id": 1, "status": "active"})
        b = contacts.create({"name": "B", "company_id": 1, "status": "churned"})
        contacts.create({"name": "C", "company_id": 2, "status": "churned"})
        assert [c.id for c in contacts.list_contacts(company_id=1, status="churned")] == [b.id]

    def test_delete_missing(self, contacts):
        with pytest.raises(NotFoundError):
            contacts.delete(3)


# ── Activities and tasks ──────────────────────────────────────────────────────

class TestActivityService:
    @pytest.fixture
    def activities(self, store):
        return ActivityService(store)

    def test_task_type_defaults_to_task(self, activities):
        task = activities.create({"type": "task", "title": "Send proposal"})
        assert task.is_task is True
        assert task.completed is False
        assert task.priority == Priority.MEDIUM

    def test_call_is_not_a_task(self, activities):
        assert activities.create({"type": ActivityType.CALL, "title": "Intro call"}).is_task is False

    def test_type_and_title_required(self, activities):
        with pytest.raises(ValidationError):
            activities.create({"title": "No type"})
        with pytest.raises(ValidationError):
            activities.create({"type": "call", "title": ""})

    def test_invalid_priority(self, activities):
        with pytest.raises(ValidationError):
            activities.create({"type": "task", "title": "x", "priority": "urgent"})

    def test_complete_and_reopen(self, activities):
        task = activities.create({"type": "task", "title": "Follow up"})
        done = activities.mark_complete(task.id)
        assert done.completed is True and done.completed_at is not None
        reopened = activities.mark_incomplete(task.id)
        assert reopened.completed is False and reopened.completed_at is None

    def test_overdue_tasks(self, activities):
        now = datetime(2030, 6, 1, 12, 0)
        late = activities.create({"type": "task", "title": "Late", "due_date": now - timedelta(days=1)})
        done = activities.create({"type": "task", "title": "Done", "due_date": now - timedelta(days=2)})
        activities.mark_complete(done.id)
        activities.create({"type": "task", "title": "Future", "due_date": now + timedelta(days=1)})
        activities.create({"type": "task", "title": "Undated"})
        assert [t.id for t in activities.overdue_tasks(now=now)] == [late.id]

    def test_open_tasks_only(self, activities):
        a = activities.create({"type": "task", "title": "Open"})
        b = activities.create({"type": "task", "title": "Closed", "completed": True})
        activities.create({"type": "email", "title": "Not a task"})
        assert {t.id for t in activities.tasks()} == {a.id, b.id}
        assert [t.id for t in activities.tasks(include_completed=False)] == [a.id]

    def test_log_lead_activity_notifies(self, activities, store):
        activity = activities.log_lead_activity(5, {"title": "Discovery call", "type": "call"}, user_id=2)
        assert activity.lead_id == 5
        [notification] = store.fetch_records("notifications").data
        assert notification.type == NotificationType.NOTE_ADDED
        assert notification.user_id == 2
        assert notification.message == "New note added to lead: Discovery call"

    def test_delete_missing(self, activities):
        with pytest.raises(NotFoundError):
            activities.delete(8)


# ── Comments ──────────────────────────────────────────────────────────────────

class TestCommentService:
    @pytest.fixture
    def comments(self, store):
        return CommentService(store)

    def test_comment_on_lead_notifies(self, comments, store):
        comment = comments.create("Asked for pricing", lead_id=4, author="Emma")
        assert comment.lead_id == 4
        assert comment.deal_id is None
        assert len(store.fetch_records("notifications").data) == 1

    def test_comment_on_deal_does_not_notify(self, comments, store):
        comments.create("Legal approved", deal_id=2)
        assert store.fetch_records("notifications").data == []

    def test_exactly_one_target(self, comments):
        with pytest.raises(ValidationError):
            comments.create("Nowhere")
        with pytest.raises(ValidationError):
            comments.create("Everywhere", lead_id=1, deal_id=1)

    def test_empty_body_rejected(self, comments):
        with pytest.raises(ValidationError):
            comments.create("   ", lead_id=1)

    def test_for_lead_newest_first(self, comments):
        first = comments.create("first", lead_id=1)
        second = comments.create("second", lead_id=1)
        comments.create("elsewhere", lead_id=2)
        assert [c.id for c in comments.for_lead(1)] == [second.id, first.id]

    def test_edit_and_delete(self, comments):
        comment = comments.create("typo", deal_id=3)
        assert comments.update(comment.id, "fixed").body == "fixed"
        comments.delete(comment.id)
        with pytest.raises(NotFoundError):
            comments.get(comment.id)
