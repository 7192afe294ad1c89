"""
crm/errors.py — Exception taxonomy shared by every service.

NotFoundError      → an operation referenced a record that does not exist
ValidationError    → input rejected before any mutation was attempted
ExternalCallError  → the record store failed or returned success=False
"""

from typing import Optional


class CRMError(Exception):
    """Base class for all domain errors raised by the CRM services."""


class NotFoundError(CRMError):
    def __init__(self, entity: str, record_id) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} {record_id} not found.")


class ValidationError(CRMError):
    """Raised when a payload is missing required fields or has out-of-range values."""

    def __init__(self, message: str, fields: Optional[list[str]] = None) -> None:
        self.fields = sorted(set(fields or []))
        super().__init__(message)


class ExternalCallError(CRMError):
    def __init__(self, table: str, operation: str, message: str) -> None:
        self.table = table
        self.operation = operation
        super().__init__(f"Record store {operation} on '{table}' failed: {message}")
