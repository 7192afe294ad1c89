"""
api/endpoints/account_routes.py — Company and contact CRUD.

GET/POST          /companies        GET/PATCH/DELETE /companies/{id}
GET/POST          /contacts         GET/PATCH/DELETE /contacts/{id}
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.db.models import ContactStatus
from crm.db.repository import RecordStore
from crm.db.session import get_db
from crm.services.accounts import CompanyService, ContactService
from api.schemas import (
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    ContactCreate,
    ContactOut,
    ContactUpdate,
)

company_router = APIRouter()
contact_router = APIRouter()


def get_companies(db: Session = Depends(get_db)) -> CompanyService:
    return CompanyService(RecordStore(db))


def get_contacts(db: Session = Depends(get_db)) -> ContactService:
    return ContactService(RecordStore(db))


# ── Companies ─────────────────────────────────────────────────────────────────

@company_router.get("/", response_model=list[CompanyOut], summary="List companies")
def list_companies(
    limit: int = Query(default=50, ge=1, le=200),
    companies: CompanyService = Depends(get_companies),
):
    return companies.list_companies(limit=limit)


@company_router.post("/", response_model=CompanyOut, status_code=201, summary="Create company")
def create_company(payload: CompanyCreate, companies: CompanyService = Depends(get_companies)):
    return companies.create(payload.model_dump(exclude_none=True))


@company_router.get("/{company_id}", response_model=CompanyOut, summary="Get company by ID")
def get_company(company_id: int, companies: CompanyService = Depends(get_companies)):
    return companies.get(company_id)


@company_router.patch("/{company_id}", response_model=CompanyOut, summary="Update company")
def update_company(company_id: int, payload: CompanyUpdate, companies: CompanyService = Depends(get_companies)):
    return companies.update(company_id, payload.model_dump(exclude_unset=True))


@company_router.delete("/{company_id}", response_model=CompanyOut, summary="Delete company")
def delete_company(company_id: int, companies: CompanyService = Depends(get_companies)):
    return companies.delete(company_id)


# ── Contacts ──────────────────────────────────────────────────────────────────

@contact_router.get("/", response_model=list[ContactOut], summary="List contacts")
def list_contacts(
    company_id: Optional[int] = Query(default=None),
    status: Optional[ContactStatus] = Query(default=None),
    contacts: ContactService = Depends(get_contacts),
):
    return contacts.list_contacts(company_id=company_id, status=status)


@contact_router.post("/", response_model=ContactOut, status_code=201, summary="Create contact")
def create_contact(payload: ContactCreate, contacts: ContactService = Depends(get_contacts)):
    return contacts.create(payload.model_dump(exclude_none=True))


@contact_router.get("/{contact_id}", response_model=ContactOut, summary="Get contact by ID")
def get_contact(contact_id: int, contacts: ContactService = Depends(get_contacts)):
    return contacts.get(contact_id)


@contact_router.patch("/{contact_id}", response_model=ContactOut, summary="Update contact")
def update_contact(contact_id: int, payload: ContactUpdate, contacts: ContactService = Depends(get_contacts)):
    return contacts.update(contact_id, payload.model_dump(exclude_unset=True))


@contact_router.delete("/{contact_id}", response_model=ContactOut, summary="Delete contact")
def delete_contact(contact_id: int, contacts: ContactService = Depends(get_contacts)):
    return contacts.delete(contact_id)
