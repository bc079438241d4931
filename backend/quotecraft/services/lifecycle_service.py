# Overview: Service-layer operations for quotation/invoice lifecycle; status changes and conversion.

"""
Document Lifecycle Service

================================================================================
PURPOSE: Create quotations/invoices, change their status, convert quotations
into invoices
================================================================================

STATUSES:
    Quotation: Draft, Sent, Approved, Rejected
    Invoice:   Draft, Sent, Pending, Paid, Overdue

TRANSITIONS:
- Any allowed status can be set from any other. Approval, rejection and
  payment are business decisions made by an operator; the only guard is that
  the target status is one of the allowed values.
- Nothing changes status automatically. Paid is only ever set explicitly.
  Overdue is never auto-applied; is_overdue() is a read-time flag computed
  from due_date, independent of the stored status.

CREATION:
- create_quotation(): status Sent (the creation flow sends immediately)
- create_invoice():   status Draft, quotation_id ""
- convert_to_invoice(): status Draft, quotation_id = source quotation

CONVERT-TO-INVOICE:
1. the store numbers it "INV-<year of quotation date>-<seq>"
2. due_date = quotation.date + 30 days; invoice date = quotation date
3. client_id, project_name, total and items copied verbatim (no recompute)
4. single add() on the invoices collection
5. the quotation is never written; its status is NOT moved to Approved
6. a store failure raises ConversionError and leaves the quotation as it was

TOTALS:
- total is derived from items on every create and every items edit; a caller
  cannot set it directly.
================================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Mapping

from ..errors import ConversionError, NotFoundError, StoreError
from ..models import Invoice, Quotation, QUOTATION_KIND, INVOICE_KIND
from ..time_utils import coerce_datetime, utcnow
from ..validation import ValidationError, validate_line_items
from .calculator_service import apply_line_totals, compute_document_totals
from .record_store import record_store


logger = logging.getLogger(__name__)

QUOTATIONS = Quotation.__collection__
INVOICES = Invoice.__collection__

QUOTATION_STATUSES = ("Draft", "Sent", "Approved", "Rejected")
INVOICE_STATUSES = ("Draft", "Sent", "Pending", "Paid", "Overdue")

# Statuses a quotation normally converts from. Converting from others
# (Draft, Sent) is allowed but logged.
CONVERTIBLE_QUOTATION_STATUSES = ("Approved",)

PAYMENT_TERMS_DAYS = 30

DOCUMENT_STATUSES = {
    QUOTATIONS: QUOTATION_STATUSES,
    INVOICES: INVOICE_STATUSES,
}
DOCUMENT_KINDS = {
    QUOTATION_KIND: QUOTATIONS,
    INVOICE_KIND: INVOICES,
}


class LifecycleError(ValueError):
    """
    Raised when a status value or lifecycle operation is not allowed.

    This is a domain error, not a technical error.
    """
    pass


def validate_status(collection: str, status: str) -> None:
    allowed = DOCUMENT_STATUSES.get(collection)
    if allowed is None:
        raise LifecycleError(f"'{collection}' has no document lifecycle")
    if status not in allowed:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(allowed)}"
        )


def can_transition(collection: str, from_status: str, to_status: str) -> bool:
    """
    Free transitions: any allowed status to any allowed status.

    Kept as a function so callers (and tests) have one place that states the
    rule.
    """
    validate_status(collection, from_status)
    validate_status(collection, to_status)
    return True


def document_kind(record: Mapping[str, Any]) -> str:
    """Read the kind discriminator. Never infer it from which fields exist."""
    kind = record.get("kind")
    if kind not in DOCUMENT_KINDS:
        raise LifecycleError(f"Record {record.get('id')!r} has no document kind")
    return kind


def collection_for(record: Mapping[str, Any]) -> str:
    return DOCUMENT_KINDS[document_kind(record)]


def _priced_items(items: Any) -> tuple[list[dict], Any]:
    cleaned = validate_line_items(items)
    priced = apply_line_totals(cleaned)
    return priced, compute_document_totals(priced).total


def _parse_date(value: Any, field: str) -> datetime | None:
    try:
        return coerce_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def _require_client(client_id: str | None) -> str:
    client_id = (client_id or "").strip()
    if not client_id:
        raise ValidationError("client_id is required")
    if not record_store.exists("clients", client_id):
        raise ValidationError(f"Client '{client_id}' not found")
    return client_id


# =============================================================================
# Creation
# =============================================================================

def create_quotation(
    *,
    client_id: str,
    items: list[dict],
    project_name: str = "",
    date: datetime | str | None = None,
    status: str = "Sent",
) -> dict:
    """
    Create a quotation from a submitted form.

    The creation flow marks quotations Sent; Draft is accepted when asked for
    explicitly.
    """
    validate_status(QUOTATIONS, status)
    client_id = _require_client(client_id)
    priced, total = _priced_items(items)
    issued = _parse_date(date, "date") or utcnow()

    data = {
        "client_id": client_id,
        "project_name": (project_name or "").strip(),
        "date": issued,
        "total": total,
        "status": status,
        "items": priced,
    }
    return record_store.add(QUOTATIONS, data)


def create_invoice(
    *,
    client_id: str,
    items: list[dict],
    project_name: str = "",
    date: datetime | str | None = None,
    due_date: datetime | str | None = None,
    status: str = "Draft",
) -> dict:
    """Manually created invoice (no origin quotation)."""
    validate_status(INVOICES, status)
    client_id = _require_client(client_id)
    priced, total = _priced_items(items)
    issued = _parse_date(date, "date") or utcnow()
    due = _parse_date(due_date, "due_date") or issued + timedelta(days=PAYMENT_TERMS_DAYS)

    data = {
        "quotation_id": "",
        "client_id": client_id,
        "project_name": (project_name or "").strip(),
        "date": issued,
        "due_date": due,
        "total": total,
        "status": status,
        "items": priced,
    }
    return record_store.add(INVOICES, data)


# =============================================================================
# Edits
# =============================================================================

def update_document(collection: str, document_id: str, patch: Mapping[str, Any]) -> dict:
    """
    Patch a quotation or invoice.

    - total cannot be set directly
    - items, when present, must be non-empty; line totals and total are fully
      recomputed from them
    - status goes through the allowed-value guard
    """
    if collection not in DOCUMENT_STATUSES:
        raise LifecycleError(f"'{collection}' has no document lifecycle")

    changes = dict(patch)
    if "total" in changes:
        raise ValidationError("total is derived from items and cannot be set")
    for key in ("id", "kind"):
        changes.pop(key, None)

    if "items" in changes:
        changes["items"], changes["total"] = _priced_items(changes["items"])
    if "status" in changes:
        validate_status(collection, changes["status"])
    if "client_id" in changes:
        changes["client_id"] = _require_client(changes["client_id"])
    for key in ("date", "due_date"):
        if key in changes:
            changes[key] = _parse_date(changes[key], key)

    record_store.update(collection, document_id, changes)
    return record_store.get(collection, document_id)


def update_items(collection: str, document_id: str, items: list[dict]) -> dict:
    return update_document(collection, document_id, {"items": items})


def _set_status(collection: str, document_id: str, status: str) -> dict:
    validate_status(collection, status)
    current = record_store.get(collection, document_id)
    if current is None:
        raise NotFoundError(collection, document_id)
    if current.get("status") in DOCUMENT_STATUSES[collection]:
        can_transition(collection, current["status"], status)
    record_store.update(collection, document_id, {"status": status})
    logger.info("%s %s: %s -> %s", collection, document_id, current.get("status"), status)
    return record_store.get(collection, document_id)


def set_quotation_status(quotation_id: str, status: str) -> dict:
    return _set_status(QUOTATIONS, quotation_id, status)


def set_invoice_status(invoice_id: str, status: str) -> dict:
    """Explicit status change. The only way an invoice becomes Paid."""
    return _set_status(INVOICES, invoice_id, status)


def is_overdue(invoice: Mapping[str, Any], now: datetime | None = None) -> bool:
    """
    Display flag: past due_date and not Paid.

    Computed at read time; the stored status is never changed by it.
    """
    if invoice.get("status") == "Paid":
        return False
    try:
        due = coerce_datetime(invoice.get("due_date"))
    except (TypeError, ValueError):
        logger.warning("Invoice %s has an unreadable due_date", invoice.get("id"))
        return False
    if due is None:
        return False
    return (coerce_datetime(now) or utcnow()) > due


# =============================================================================
# Conversion
# =============================================================================

def convert_to_invoice(quotation: Mapping[str, Any] | str) -> dict:
    """
    Create a Draft invoice from a quotation.

    Accepts the quotation record or its id. The quotation is read, never
    written: its status, items and total stay exactly as they were.

    Raises:
        NotFoundError: quotation id does not exist
        LifecycleError: the record is not a quotation or has no date
        ConversionError: the invoice could not be written
    """
    if isinstance(quotation, str):
        record = record_store.get(QUOTATIONS, quotation)
        if record is None:
            raise NotFoundError(QUOTATIONS, quotation)
        quotation = record

    if document_kind(quotation) != QUOTATION_KIND:
        raise LifecycleError(f"{quotation.get('id')} is not a quotation")

    try:
        issued = coerce_datetime(quotation.get("date"))
    except (TypeError, ValueError):
        issued = None
    if issued is None:
        raise LifecycleError(f"Quotation {quotation['id']} has no date")

    if quotation.get("status") not in CONVERTIBLE_QUOTATION_STATUSES:
        logger.warning(
            "Converting quotation %s in status %s", quotation["id"], quotation.get("status")
        )

    data = {
        "quotation_id": quotation["id"],
        "client_id": quotation.get("client_id"),
        "project_name": quotation.get("project_name"),
        "date": issued,
        "due_date": issued + timedelta(days=PAYMENT_TERMS_DAYS),
        "total": quotation.get("total"),
        "status": "Draft",
        "items": [dict(item) for item in quotation.get("items") or []],
    }

    try:
        invoice = record_store.add(INVOICES, data)
    except StoreError as exc:
        raise ConversionError(
            quotation["id"], f"Could not convert quotation {quotation['id']}: {exc}"
        ) from exc

    logger.info("Converted quotation %s into invoice %s", quotation["id"], invoice["id"])
    return invoice

