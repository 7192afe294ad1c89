"""
crm/services/lead_service.py — Lead lifecycle: creation, edits, assignment.

Status policy:
  - On create, status is derived from the score (Qualified / Nurturing / New).
  - On update, the score is recomputed whenever a scoring input is part of
    the patch, but status only changes when the patch carries a status.
    A rescore never moves a lead between statuses on its own.

Assignment policies:
  - assign()               direct, to a named team member
  - assign_by_territory()  least-loaded member of a territory
  - auto_assign()          least-loaded member of the whole team

Every assignment, status change and removal emits a notification.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from crm.db.models import Lead, LeadStatus, TeamMember, as_naive_utc, utcnow
from crm.db.repository import RecordStore
from crm.errors import NotFoundError, ValidationError
from crm.services.notifications import NotificationEmitter
from crm.services.scoring import SCORING_FIELDS, calculate_score, initial_status

logger = logging.getLogger(__name__)

TABLE = "leads"
TEAM_TABLE = "team_members"

# Fields a caller may set on create / update. Score, breakdown and
# assignment are managed by this service.
EDITABLE_FIELDS = frozenset({
    "first_name",
    "last_name",
    "email",
    "phone",
    "title",
    "company_name",
    "company_size",
    "industry",
    "website",
    "source",
    "engagement_level",
    "territory",
    "next_follow_up",
    "notes",
    "tags",
})

STATUS_ALIASES = {"Disqualified": LeadStatus.LOST}


def parse_status(value: Any) -> LeadStatus:
    """Coerce a status name into a LeadStatus, raising ValidationError if unknown."""
    if isinstance(value, LeadStatus):
        return value
    if value in STATUS_ALIASES:
        return STATUS_ALIASES[value]
    try:
        return LeadStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in LeadStatus)
        raise ValidationError(f"Invalid lead status {value!r}; expected one of: {allowed}", ["status"])


def pick_least_loaded(members: Iterable[TeamMember], counts: Mapping[int, int]) -> TeamMember:
    """
    Return the member with the fewest assigned leads.

    Ties go to whichever member comes first in `members`.
    """
    members = list(members)
    if not members:
        raise ValidationError("No team members available for assignment.")
    return min(members, key=lambda member: counts.get(member.id, 0))


class LeadManager:
    def __init__(self, store: RecordStore, notifier: Optional[NotificationEmitter] = None):
        self.store = store
        self.notifier = notifier or NotificationEmitter(store)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get(self, lead_id: int) -> Lead:
        """Return an active lead; removed leads count as missing."""
        lead = self.store.get_record_by_id(TABLE, lead_id).unwrap(TABLE, "get")
        if lead is None or lead.deleted_at is not None:
            raise NotFoundError("Lead", lead_id)
        return lead

    def list_leads(
        self,
        status: Optional[LeadStatus] = None,
        source: Optional[str] = None,
        assignee_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[Lead]:
        """Active leads, newest first, optionally filtered."""
        where: dict[str, Any] = {"deleted_at": None}
        if status is not None:
            where["status"] = parse_status(status)
        if source is not None:
            where["source"] = source
        if assignee_id is not None:
            where["assigned_to_id"] = assignee_id
        return self.store.fetch_records(
            TABLE, where=where, order_by="id", descending=True, limit=limit,
        ).unwrap(TABLE, "fetch")

    def team(self) -> list[TeamMember]:
        return self.store.fetch_records(TEAM_TABLE, order_by="id").unwrap(TEAM_TABLE, "fetch")

    # ── Mutations ─────────────────────────────────────────────────────────────

    def create(self, data: Mapping[str, Any]) -> Lead:
        """Score a new lead, derive its starting status and persist it."""
        fields = self._clean(data)
        fields.pop("status", None)

        score = calculate_score(fields)
        fields["lead_score"] = score.total_score
        fields["qualification_criteria"] = score.breakdown.as_dict()
        fields["status"] = initial_status(score.total_score)

        lead = self.store.create_record(TABLE, fields).unwrap(TABLE, "create")
        logger.info(
            "Lead created: %s @ %s (score=%d, status=%s)",
            lead.full_name or "<unnamed>", lead.company_name, lead.lead_score, lead.status.value,
        )
        return lead

    def update(self, lead_id: int, patch: Mapping[str, Any]) -> Lead:
        """Apply a partial edit. See the module docstring for the status policy."""
        return self._apply(lead_id, self._clean(patch))

    def delete(self, lead_id: int) -> Lead:
        """Remove a lead from the active set. The row itself is kept."""
        lead = self.get(lead_id)
        removed = self.store.update_record(
            TABLE, lead_id, {"deleted_at": utcnow()},
        ).unwrap(TABLE, "update")
        logger.info("Lead %d removed from the active set.", lead_id)
        self.notifier.lead_removed(lead_id, lead.full_name, user_id=removed.assigned_to_id)
        return removed

    def mark_lost(self, lead_id: int, reason: Optional[str] = None) -> Lead:
        return self._apply(lead_id, {"status": LeadStatus.LOST}, lost_reason=reason)

    def tag(self, lead_id: int, tags: Iterable[str]) -> Lead:
        """Add tags to a lead, keeping existing ones and their order."""
        if isinstance(tags, str):
            raise ValidationError("Tags must be a list of strings.", ["tags"])
        requested = self._clean({"tags": list(tags)})["tags"]
        lead = self.get(lead_id)
        merged = list(lead.tags or [])
        added = []
        for tag in requested:
            if tag not in merged:
                merged.append(tag)
                added.append(tag)
        if not added:
            return lead

        updated = self._apply(lead_id, {"tags": merged})
        self.notifier.lead_tagged(lead_id, added, user_id=updated.assigned_to_id)
        return updated

    def schedule_follow_up(self, lead_id: int, when: datetime) -> Lead:
        if not isinstance(when, datetime):
            raise ValidationError("Follow-up time must be a datetime.", ["next_follow_up"])
        lead = self._apply(lead_id, {"next_follow_up": as_naive_utc(when)})
        self.notifier.follow_up_reminder(lead_id, lead.next_follow_up, user_id=lead.assigned_to_id)
        return lead

    def due_follow_ups(self, now: Optional[datetime] = None) -> list[Lead]:
        """Active leads whose follow-up time has passed, soonest first."""
        cutoff = as_naive_utc(now) if now else utcnow()
        due = [
            lead for lead in self.list_leads()
            if lead.next_follow_up is not None and lead.next_follow_up <= cutoff
        ]
        return sorted(due, key=lambda lead: lead.next_follow_up)

    # ── Assignment ────────────────────────────────────────────────────────────

    def assign(self, lead_id: int, assignee_id: int) -> Lead:
        self.get(lead_id)
        member = self.store.get_record_by_id(TEAM_TABLE, assignee_id).unwrap(TEAM_TABLE, "get")
        if member is None:
            raise ValidationError(f"Invalid assignee ID {assignee_id}.", ["assignee_id"])
        return self._assign_to(lead_id, member)

    def assign_by_territory(self, lead_id: int, territory: str) -> Lead:
        """Route to the territory member holding the fewest leads in that territory."""
        self.get(lead_id)
        members = [m for m in self.team() if m.territory == territory]
        if not members:
            raise ValidationError(f"No team members found for territory {territory!r}.", ["territory"])

        in_territory = self.store.fetch_records(
            TABLE, where={"territory": territory, "deleted_at": None},
        ).unwrap(TABLE, "fetch")
        assignee = pick_least_loaded(members, self._assignment_counts(in_territory))
        return self._assign_to(lead_id, assignee)

    def auto_assign(self, lead_id: int) -> Lead:
        """Route to whoever on the whole team holds the fewest active leads."""
        self.get(lead_id)
        assignee = pick_least_loaded(self.team(), self._assignment_counts(self.list_leads()))
        return self._assign_to(lead_id, assignee)

    # ── Analytics ─────────────────────────────────────────────────────────────

    def source_analytics(self) -> dict[str, dict[str, int]]:
        """
        Per lead source: count, qualified, avg_score and conversion_rate
        (share of leads currently Qualified, as a rounded percentage).
        """
        buckets: dict[str, list[Lead]] = defaultdict(list)
        for lead in self.list_leads():
            buckets[lead.source or "Unknown"].append(lead)

        stats = {}
        for source, leads in buckets.items():
            qualified = sum(1 for lead in leads if lead.status == LeadStatus.QUALIFIED)
            stats[source] = {
                "count": len(leads),
                "qualified": qualified,
                "avg_score": round(sum(lead.lead_score for lead in leads) / len(leads)),
                "conversion_rate": round(qualified / len(leads) * 100),
            }
        return stats

    # ── Private helpers ───────────────────────────────────────────────────────

    def _apply(self, lead_id: int, fields: dict[str, Any], lost_reason: Optional[str] = None) -> Lead:
        lead = self.get(lead_id)
        old_status = lead.status

        if any(name in fields for name in SCORING_FIELDS):
            inputs = {name: getattr(lead, name) for name in SCORING_FIELDS}
            inputs.update({name: fields[name] for name in SCORING_FIELDS if name in fields})
            score = calculate_score(inputs)
            fields["lead_score"] = score.total_score
            fields["qualification_criteria"] = score.breakdown.as_dict()

        updated = self.store.update_record(TABLE, lead_id, fields).unwrap(TABLE, "update")
        if updated is None:
            raise NotFoundError("Lead", lead_id)
        logger.info("Lead %d updated: %s", lead_id, sorted(fields))

        new_status = fields.get("status")
        if new_status is not None and new_status != old_status:
            self.notifier.status_changed(
                lead_id, old_status.value, new_status.value, user_id=updated.assigned_to_id,
            )
            if new_status == LeadStatus.LOST:
                self.notifier.lead_marked_lost(lead_id, lost_reason, user_id=updated.assigned_to_id)
        return updated

    def _assign_to(self, lead_id: int, member: TeamMember) -> Lead:
        lead = self._apply(lead_id, {
            "assigned_to": member.name,
            "assigned_to_id": member.id,
            "territory": member.territory,
        })
        logger.info("Lead %d assigned to %s (%s).", lead_id, member.name, member.territory)
        self.notifier.lead_assigned(lead_id, member.name, member.id)
        return lead

    @staticmethod
    def _assignment_counts(leads: Iterable[Lead]) -> dict[int, int]:
        counts: dict[int, int] = defaultdict(int)
        for lead in leads:
            if lead.assigned_to_id is not None:
                counts[lead.assigned_to_id] += 1
        return counts

    @staticmethod
    def _clean(data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate a create/update payload before anything is written."""
        fields = dict(data)
        unknown = sorted(k for k in fields if k not in EDITABLE_FIELDS and k != "status")
        if unknown:
            raise ValidationError(f"Unknown or read-only lead field(s): {', '.join(unknown)}", unknown)

        if fields.get("status") is None:
            fields.pop("status", None)
        else:
            fields["status"] = parse_status(fields["status"])

        if "engagement_level" in fields and fields["engagement_level"] is not None:
            fields["engagement_level"] = getattr(fields["engagement_level"], "value", fields["engagement_level"])

        tags = fields.get("tags")
        if tags is not None:
            if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
                raise ValidationError("Tags must be a list of strings.", ["tags"])
            fields["tags"] = [t.strip() for t in tags if t.strip()]

        follow_up = fields.get("next_follow_up")
        if follow_up is not None:
            if not isinstance(follow_up, datetime):
                raise ValidationError("next_follow_up must be a datetime.", ["next_follow_up"])
            fields["next_follow_up"] = as_naive_utc(follow_up)

        return fields
