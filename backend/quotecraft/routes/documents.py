# Overview: Flask API routes for quotations, invoices and the dashboard; parses input and returns JSON responses.

# backend/quotecraft/routes/documents.py
"""
Quotation / invoice routes.

- GET    /api/quotations                 newest first, optional ?status=
- POST   /api/quotations                 create (status Sent)
- GET    /api/quotations/<id>
- PATCH  /api/quotations/<id>            items edits recompute totals
- DELETE /api/quotations/<id>            hard delete, idempotent
- POST   /api/quotations/<id>/status     {"status": "..."}
- POST   /api/quotations/<id>/convert    -> new Draft invoice
- GET    /api/quotations/<id>/document   renderer context

Invoices mirror this minus /convert; GET /api/invoices/<id> adds the
read-time is_overdue flag.

Error mapping: 400 validation/lifecycle, 404 missing, 409 id collision,
503 store or conversion failure, 500 anything unexpected.
"""

from flask import Blueprint, current_app, request

from ..errors import ConversionError, DuplicateIdError, NotFoundError, StoreError
from ..services import document_service, lifecycle_service
from ..services.lifecycle_service import INVOICES, QUOTATIONS, LifecycleError
from ..services.record_store import record_store
from ..validation import ValidationError


quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")
invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")
dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")

QUOTATION_CREATE_FIELDS = {"client_id", "items", "project_name", "date", "status"}
INVOICE_CREATE_FIELDS = QUOTATION_CREATE_FIELDS | {"due_date"}


def _error(exc: Exception, action: str):
    if isinstance(exc, (ValidationError, LifecycleError)):
        return {"error": str(exc)}, 400
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, DuplicateIdError):
        return {"error": str(exc)}, 409
    if isinstance(exc, ConversionError):
        current_app.logger.exception("Failed to %s", action)
        return {"error": str(exc), "quotation_id": exc.quotation_id}, 503
    current_app.logger.exception("Failed to %s", action)
    if isinstance(exc, StoreError):
        return {"error": "Store unavailable"}, 503
    return {"error": "Internal server error"}, 500


def _creation_kwargs(payload: dict, allowed: set[str]) -> dict:
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    missing = [f for f in ("client_id", "items") if f not in payload]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


def _list(collection: str):
    status = request.args.get("status")
    try:
        if status is not None:
            lifecycle_service.validate_status(collection, status)
        return {collection: document_service.list_documents(collection, status=status)}
    except (LifecycleError, StoreError) as e:
        return _error(e, f"list {collection}")


def _get(collection: str, document_id: str):
    try:
        document = record_store.get(collection, document_id)
    except StoreError as e:
        return _error(e, f"read {collection}/{document_id}")
    if document is None:
        return {"error": f"{collection} record '{document_id}' not found"}, 404
    if collection == INVOICES:
        document["is_overdue"] = lifecycle_service.is_overdue(document)
    return document


def _patch(collection: str, document_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return lifecycle_service.update_document(collection, document_id, payload)
    except (ValidationError, LifecycleError, NotFoundError, StoreError) as e:
        return _error(e, f"update {collection}/{document_id}")


def _delete(collection: str, document_id: str):
    try:
        record_store.delete(collection, document_id)
    except StoreError as e:
        return _error(e, f"delete {collection}/{document_id}")
    return "", 204


def _document(collection: str, document_id: str):
    try:
        return document_service.render_context(collection, document_id)
    except (NotFoundError, LifecycleError, StoreError) as e:
        return _error(e, f"render {collection}/{document_id}")


# =============================================================================
# Quotations
# =============================================================================

@quotations_bp.get("")
def list_quotations():
    return _list(QUOTATIONS)


@quotations_bp.post("")
def create_quotation_route():
    payload = request.get_json(silent=True) or {}
    try:
        quotation = lifecycle_service.create_quotation(
            **_creation_kwargs(payload, QUOTATION_CREATE_FIELDS)
        )
    except (ValidationError, LifecycleError, StoreError) as e:
        return _error(e, "create quotation")
    except Exception as e:
        return _error(e, "create quotation")
    return quotation, 201


@quotations_bp.get("/<quotation_id>")
def get_quotation(quotation_id: str):
    return _get(QUOTATIONS, quotation_id)


@quotations_bp.patch("/<quotation_id>")
def update_quotation_route(quotation_id: str):
    return _patch(QUOTATIONS, quotation_id)


@quotations_bp.delete("/<quotation_id>")
def delete_quotation_route(quotation_id: str):
    return _delete(QUOTATIONS, quotation_id)


@quotations_bp.post("/<quotation_id>/status")
def set_quotation_status_route(quotation_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return lifecycle_service.set_quotation_status(quotation_id, payload.get("status") or "")
    except (LifecycleError, NotFoundError, StoreError) as e:
        return _error(e, f"set status on quotation {quotation_id}")


@quotations_bp.post("/<quotation_id>/convert")
def convert_quotation_route(quotation_id: str):
    """
    Convert a quotation into a Draft invoice.

    The quotation itself is not modified (its status stays as it is).
    """
    try:
        invoice = lifecycle_service.convert_to_invoice(quotation_id)
    except (NotFoundError, LifecycleError, ConversionError) as e:
        return _error(e, f"convert quotation {quotation_id}")
    except Exception as e:
        return _error(e, f"convert quotation {quotation_id}")
    return invoice, 201


@quotations_bp.get("/<quotation_id>/document")
def quotation_document(quotation_id: str):
    return _document(QUOTATIONS, quotation_id)


# =============================================================================
# Invoices
# =============================================================================

@invoices_bp.get("")
def list_invoices():
    return _list(INVOICES)


@invoices_bp.post("")
def create_invoice_route():
    payload = request.get_json(silent=True) or {}
    try:
        invoice = lifecycle_service.create_invoice(
            **_creation_kwargs(payload, INVOICE_CREATE_FIELDS)
        )
    except (ValidationError, LifecycleError, StoreError) as e:
        return _error(e, "create invoice")
    except Exception as e:
        return _error(e, "create invoice")
    return invoice, 201


@invoices_bp.get("/<invoice_id>")
def get_invoice(invoice_id: str):
    return _get(INVOICES, invoice_id)


@invoices_bp.patch("/<invoice_id>")
def update_invoice_route(invoice_id: str):
    return _patch(INVOICES, invoice_id)


@invoices_bp.delete("/<invoice_id>")
def delete_invoice_route(invoice_id: str):
    return _delete(INVOICES, invoice_id)


@invoices_bp.post("/<invoice_id>/status")
def set_invoice_status_route(invoice_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return lifecycle_service.set_invoice_status(invoice_id, payload.get("status") or "")
    except (LifecycleError, NotFoundError, StoreError) as e:
        return _error(e, f"set status on invoice {invoice_id}")


@invoices_bp.get("/<invoice_id>/document")
def invoice_document(invoice_id: str):
    return _document(INVOICES, invoice_id)


# =============================================================================
# Dashboard
# =============================================================================

@dashboard_bp.get("")
def dashboard():
    limit = request.args.get("limit", default=5, type=int)
    try:
        return {
            "summary": document_service.dashboard_summary(),
            "recent": document_service.recent_documents(limit=max(1, min(limit, 50))),
        }
    except (LifecycleError, StoreError) as e:
        return _error(e, "load dashboard")
