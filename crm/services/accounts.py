"""
crm/services/accounts.py — Companies and contacts.

Both are plain CRUD over the record store. Contacts and deals point at a
company by ID, but nothing enforces that the company exists.
"""

import logging
from typing import Any, Mapping, Optional

from crm.db.models import Company, Contact, ContactStatus, Lead
from crm.db.repository import RecordStore
from crm.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

COMPANY_TABLE = "companies"
CONTACT_TABLE = "contacts"

COMPANY_FIELDS = frozenset({
    "name", "industry", "employees", "mrr", "plan", "status", "website", "lead_source", "lead_score",
})
CONTACT_FIELDS = frozenset({"name", "email", "phone", "company_id", "company_name", "status", "mrr"})

# Representative head-count for each lead company-size bucket.
EMPLOYEES_BY_SIZE = {
    "1-10": 5,
    "11-50": 25,
    "51-200": 100,
    "201-500": 300,
    "500+": 1000,
}


def employee_count_for_size(company_size: Optional[str]) -> int:
    return EMPLOYEES_BY_SIZE.get(company_size, 10) if isinstance(company_size, str) else 10


def _as_int(value: Any, default: int) -> int:
    """Lenient integer coercion for form input: "12" → 12, "" / None / junk → default."""
    try:
        return int(value) or default
    except (TypeError, ValueError):
        return default


def _require_name(fields: dict[str, Any], entity: str) -> None:
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{entity} name is required.", ["name"])
    fields["name"] = name.strip()


def _reject_unknown(fields: Mapping[str, Any], allowed: frozenset, entity: str) -> None:
    unknown = sorted(k for k in fields if k not in allowed)
    if unknown:
        raise ValidationError(f"Unknown {entity} field(s): {', '.join(unknown)}", unknown)


class CompanyService:
    def __init__(self, store: RecordStore):
        self.store = store

    def get(self, company_id: int) -> Company:
        company = self.store.get_record_by_id(COMPANY_TABLE, company_id).unwrap(COMPANY_TABLE, "get")
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    def list_companies(self, limit: Optional[int] = None) -> list[Company]:
        return self.store.fetch_records(
            COMPANY_TABLE, order_by="id", descending=True, limit=limit,
        ).unwrap(COMPANY_TABLE, "fetch")

    def create(self, data: Mapping[str, Any]) -> Company:
        fields = self._clean(data, creating=True)
        company = self.store.create_record(COMPANY_TABLE, fields).unwrap(COMPANY_TABLE, "create")
        logger.info("Company created: %s (employees=%d, mrr=%d)", company.name, company.employees, company.mrr)
        return company

    def update(self, company_id: int, patch: Mapping[str, Any]) -> Company:
        fields = self._clean(patch)
        company = self.store.update_record(COMPANY_TABLE, company_id, fields).unwrap(COMPANY_TABLE, "update")
        if company is None:
            raise NotFoundError("Company", company_id)
        logger.info("Company %d updated: %s", company_id, sorted(fields))
        return company

    def delete(self, company_id: int) -> Company:
        company = self.store.delete_record(COMPANY_TABLE, company_id).unwrap(COMPANY_TABLE, "delete")
        if company is None:
            raise NotFoundError("Company", company_id)
        logger.info("Company %d deleted.", company_id)
        return company

    def create_from_lead(self, lead: Lead) -> Company:
        """Open a prospect account for a lead's company."""
        return self.create({
            "name": lead.company_name or lead.full_name or f"Lead {lead.id}",
            "industry": lead.industry,
            "employees": employee_count_for_size(lead.company_size),
            "website": lead.website,
            "status": "Prospect",
            "plan": "Free",
            "mrr": 0,
            "lead_source": lead.source,
            "lead_score": lead.lead_score,
        })

    @staticmethod
    def _clean(data: Mapping[str, Any], creating: bool = False) -> dict[str, Any]:
        fields = dict(data)
        _reject_unknown(fields, COMPANY_FIELDS, "company")
        if creating or "name" in fields:
            _require_name(fields, "Company")
        if creating or "employees" in fields:
            fields["employees"] = _as_int(fields.get("employees"), 1)
        if creating or "mrr" in fields:
            fields["mrr"] = _as_int(fields.get("mrr"), 0)
        return fields


class ContactService:
    def __init__(self, store: RecordStore):
        self.store = store

    def get(self, contact_id: int) -> Contact:
        contact = self.store.get_record_by_id(CONTACT_TABLE, contact_id).unwrap(CONTACT_TABLE, "get")
        if contact is None:
            raise NotFoundError("Contact", contact_id)
        return contact

    def list_contacts(
        self, company_id: Optional[int] = None, status: Optional[Any] = None,
    ) -> list[Contact]:
        where: dict[str, Any] = {}
        if company_id is not None:
            where["company_id"] = company_id
        if status is not None:
            where["status"] = self._parse_status(status)
        return self.store.fetch_records(
            CONTACT_TABLE, where=where, order_by="id", descending=True,
        ).unwrap(CONTACT_TABLE, "fetch")

    def create(self, data: Mapping[str, Any]) -> Contact:
        fields = self._clean(data, creating=True)
        contact = self.store.create_record(CONTACT_TABLE, fields).unwrap(CONTACT_TABLE, "create")
        logger.info("Contact created: %s (%s)", contact.name, contact.status.value)
        return contact

    def update(self, contact_id: int, patch: Mapping[str, Any]) -> Contact:
        fields = self._clean(patch)
        contact = self.store.update_record(CONTACT_TABLE, contact_id, fields).unwrap(CONTACT_TABLE, "update")
        if contact is None:
            raise NotFoundError("Contact", contact_id)
        logger.info("Contact %d updated: %s", contact_id, sorted(fields))
        return contact

    def delete(self, contact_id: int) -> Contact:
        contact = self.store.delete_record(CONTACT_TABLE, contact_id).unwrap(CONTACT_TABLE, "delete")
        if contact is None:
            raise NotFoundError("Contact", contact_id)
        logger.info("Contact %d deleted.", contact_id)
        return contact

    @staticmethod
    def _parse_status(value: Any) -> ContactStatus:
        try:
            return ContactStatus(getattr(value, "value", value))
        except ValueError:
            allowed = ", ".join(s.value for s in ContactStatus)
            raise ValidationError(f"Invalid contact status {value!r}; expected one of: {allowed}", ["status"])

    @classmethod
    def _clean(cls, data: Mapping[str, Any], creating: bool = False) -> dict[str, Any]:
        fields = dict(data)
        _reject_unknown(fields, CONTACT_FIELDS, "contact")
        if creating or "name" in fields:
            _require_name(fields, "Contact")
        if "status" in fields:
            fields["status"] = cls._parse_status(fields["status"])
        if creating or "mrr" in fields:
            fields["mrr"] = _as_int(fields.get("mrr"), 0)
        return fields
