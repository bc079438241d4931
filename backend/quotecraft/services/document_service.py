# Overview: Read models over quotations and invoices for the renderer, tables and dashboard.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from ..errors import NotFoundError
from ..time_utils import coerce_datetime
from .calculator_service import TAX_RATE, compute_document_totals, format_currency, to_decimal
from .directory_service import CLIENTS, PROJECTS, UNKNOWN_CLIENT
from .lifecycle_service import (
    DOCUMENT_STATUSES,
    INVOICES,
    QUOTATIONS,
    LifecycleError,
    document_kind,
    is_overdue,
)
from .record_store import record_store
from .settings_service import settings_store


DOCUMENT_TITLES = {
    QUOTATIONS: "QUOTATION",
    INVOICES: "INVOICE",
}


def _date_key(record: dict) -> datetime:
    try:
        return coerce_datetime(record.get("date")) or datetime.min
    except (TypeError, ValueError):
        return datetime.min


def sort_by_date_desc(records: list[dict]) -> list[dict]:
    """Newest first. The store returns natural order, so sort explicitly."""
    return sorted(records, key=_date_key, reverse=True)


def list_documents(collection: str, *, status: str | None = None) -> list[dict]:
    if collection not in DOCUMENT_STATUSES:
        raise LifecycleError(f"'{collection}' has no document lifecycle")
    records = record_store.list(collection)
    if status is not None:
        records = [r for r in records if r.get("status") == status]
    return sort_by_date_desc(records)


def recent_documents(limit: int = 5) -> list[dict]:
    """Quotations and invoices together, newest first, each tagged by kind."""
    merged = record_store.list(QUOTATIONS) + record_store.list(INVOICES)
    for record in merged:
        document_kind(record)
    return sort_by_date_desc(merged)[:limit]


def project_documents(project_id: str) -> list[dict]:
    """
    Quotations and invoices filed under a project, newest first, each tagged
    by kind. Documents refer to a project by its name (project_name).
    """
    project = record_store.get(PROJECTS, project_id)
    if project is None:
        raise NotFoundError(PROJECTS, project_id)
    name = project.get("name")
    if not name:
        return []

    matched = [
        record
        for record in record_store.list(QUOTATIONS) + record_store.list(INVOICES)
        if record.get("project_name") == name
    ]
    for record in matched:
        document_kind(record)
    return sort_by_date_desc(matched)


def _sum_totals(records: list[dict]) -> Decimal:
    return sum((to_decimal(r.get("total") or 0) for r in records), Decimal(0))


def dashboard_summary() -> dict:
    invoices = record_store.list(INVOICES)
    quotations = record_store.list(QUOTATIONS)

    paid = [i for i in invoices if i.get("status") == "Paid"]
    pending = [i for i in invoices if i.get("status") in ("Sent", "Overdue")]

    return {
        "total_revenue": _sum_totals(paid),
        "pending_amount": _sum_totals(pending),
        "pending_invoices": len(pending),
        "sent_quotations": sum(1 for q in quotations if q.get("status") == "Sent"),
        "overdue_invoices": sum(1 for i in invoices if is_overdue(i)),
    }


def render_context(collection: str, document_id: str, *, now: datetime | None = None) -> dict[str, Any]:
    """
    Everything the PDF renderer needs for one document. Pure read.

    The stored total is what the document shows as its grand total; subtotal
    and tax are recomputed from the items for the breakdown rows.
    """
    if collection not in DOCUMENT_TITLES:
        raise LifecycleError(f"'{collection}' has no document lifecycle")
    document = record_store.get(collection, document_id)
    if document is None:
        raise NotFoundError(collection, document_id)

    client_id = document.get("client_id")
    client = record_store.get(CLIENTS, client_id) if client_id else None
    settings = settings_store.current()
    totals = compute_document_totals(document.get("items") or [])

    context = {
        "title": DOCUMENT_TITLES[collection],
        "document": document,
        "client": client,
        "client_name": (client or {}).get("name") or UNKNOWN_CLIENT,
        "settings": settings.to_dict(),
        "tax_rate": TAX_RATE,
        "subtotal": totals.subtotal,
        "tax": totals.tax,
        "total": document.get("total"),
        "formatted": {
            "subtotal": format_currency(totals.subtotal),
            "tax": format_currency(totals.tax),
            "total": format_currency(document.get("total") or 0),
            "items": [
                {
                    "unit_price": format_currency(item.get("unit_price") or 0),
                    "total": format_currency(item.get("total") or 0),
                }
                for item in document.get("items") or []
            ],
        },
    }
    if collection == INVOICES:
        context["terms"] = settings.invoice_payment_details
        context["is_overdue"] = is_overdue(document, now)
    else:
        context["terms"] = settings.quotation_terms
    return context
