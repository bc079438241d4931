from datetime import datetime
from decimal import Decimal

import pytest

from quotecraft.errors import ConversionError, NotFoundError, StoreError
from quotecraft.services import lifecycle_service
from quotecraft.services.lifecycle_service import (
    INVOICE_STATUSES,
    QUOTATION_STATUSES,
    LifecycleError,
    can_transition,
    convert_to_invoice,
    create_invoice,
    create_quotation,
    is_overdue,
    set_invoice_status,
    set_quotation_status,
    update_document,
    update_items,
)
from quotecraft.services.record_store import record_store
from quotecraft.validation import ValidationError


@pytest.fixture
def approved_quotation(acme, items):
    return create_quotation(
        client_id=acme["id"],
        items=items,
        project_name="Office Security Upgrade",
        date="2024-07-15",
        status="Approved",
    )


# =============================================================================
# Creation
# =============================================================================

def test_create_quotation_defaults_to_sent(acme, items):
    quotation = create_quotation(client_id=acme["id"], items=items, date="2024-07-15")

    assert quotation["id"] == "Q-2024-001"
    assert quotation["kind"] == "quotation"
    assert quotation["status"] == "Sent"
    assert quotation["total"] == Decimal("388.5")
    assert [line["total"] for line in quotation["items"]] == [Decimal("150"), Decimal("220")]


def test_create_quotation_draft_on_request(acme, items):
    assert create_quotation(client_id=acme["id"], items=items, status="Draft")["status"] == "Draft"


def test_create_quotation_uses_date_year(acme, items):
    assert create_quotation(client_id=acme["id"], items=items, date="2023-12-31")["id"] == "Q-2023-001"


def test_create_quotation_at_boundary_amounts(acme):
    quotation = create_quotation(client_id=acme["id"], date="2024-07-15", items=[
        {"description": "Core switch", "quantity": 1000, "unit_price": 100000},
        {"description": "Site survey", "quantity": 1, "unit_price": 0},
    ])

    assert [line["total"] for line in quotation["items"]] == [Decimal("100000000"), Decimal("0")]
    assert quotation["total"] == Decimal("105000000")
    assert record_store.get("quotations", quotation["id"])["total"] == Decimal("105000000")


def test_create_requires_items_and_known_client(acme, items):
    with pytest.raises(ValidationError):
        create_quotation(client_id=acme["id"], items=[])
    with pytest.raises(ValidationError):
        create_quotation(client_id="cli-missing", items=items)
    with pytest.raises(ValidationError):
        create_quotation(client_id=acme["id"], items=[{"description": "", "quantity": 1, "unit_price": 1}])
    with pytest.raises(ValidationError):
        create_quotation(client_id=acme["id"], items=[{"description": "x", "quantity": 0, "unit_price": 1}])
    with pytest.raises(ValidationError):
        create_quotation(client_id=acme["id"], items=[{"description": "x", "quantity": 1, "unit_price": -1}])
    with pytest.raises(ValidationError):
        create_quotation(client_id=acme["id"], items=items, date="not-a-date")
    assert record_store.list("quotations") == []


def test_create_invoice_manual(acme, items):
    invoice = create_invoice(client_id=acme["id"], items=items, date="2024-06-10")

    assert invoice["id"] == "INV-2024-001"
    assert invoice["kind"] == "invoice"
    assert invoice["status"] == "Draft"
    assert invoice["quotation_id"] == ""
    assert invoice["due_date"] == "2024-07-10T00:00:00Z"


def test_invalid_status_rejected(acme, items):
    with pytest.raises(LifecycleError):
        create_quotation(client_id=acme["id"], items=items, status="Paid")
    with pytest.raises(LifecycleError):
        create_invoice(client_id=acme["id"], items=items, status="Approved")


# =============================================================================
# Conversion
# =============================================================================

def test_convert_to_invoice(approved_quotation):
    before = record_store.get("quotations", approved_quotation["id"])

    invoice = convert_to_invoice(approved_quotation)

    assert invoice["id"] == "INV-2024-001"
    assert invoice["kind"] == "invoice"
    assert invoice["quotation_id"] == approved_quotation["id"]
    assert invoice["client_id"] == approved_quotation["client_id"]
    assert invoice["project_name"] == "Office Security Upgrade"
    assert invoice["date"] == "2024-07-15T00:00:00Z"
    assert invoice["due_date"] == "2024-08-14T00:00:00Z"
    assert invoice["status"] == "Draft"
    assert invoice["total"] == approved_quotation["total"]
    assert invoice["items"] == approved_quotation["items"]

    # The quotation is read, never written
    assert record_store.get("quotations", approved_quotation["id"]) == before


def test_convert_by_id(approved_quotation):
    invoice = convert_to_invoice(approved_quotation["id"])
    assert invoice["quotation_id"] == approved_quotation["id"]


def test_convert_sent_quotation_keeps_its_status(acme, items):
    quotation = create_quotation(client_id=acme["id"], items=items, date="2024-07-18")

    convert_to_invoice(quotation)

    assert record_store.get("quotations", quotation["id"])["status"] == "Sent"


def test_invoice_items_are_an_independent_copy(approved_quotation):
    invoice = convert_to_invoice(approved_quotation)

    update_items("quotations", approved_quotation["id"], [
        {"description": "Cable", "quantity": 1, "unit_price": 40},
    ])

    assert record_store.get("invoices", invoice["id"])["items"] == approved_quotation["items"]


def test_convert_store_failure_leaves_quotation_untouched(approved_quotation, monkeypatch):
    before = record_store.get("quotations", approved_quotation["id"])

    def failing_add(*args, **kwargs):
        raise StoreError("database is unavailable")

    monkeypatch.setattr(record_store, "add", failing_add)
    with pytest.raises(ConversionError) as excinfo:
        convert_to_invoice(approved_quotation)
    monkeypatch.undo()

    assert excinfo.value.quotation_id == approved_quotation["id"]
    assert record_store.get("quotations", approved_quotation["id"]) == before
    assert record_store.list("invoices") == []


def test_convert_missing_quotation(db_session):
    with pytest.raises(NotFoundError):
        convert_to_invoice("Q-2024-999")


def test_convert_rejects_invoice_record(acme, items):
    invoice = create_invoice(client_id=acme["id"], items=items)
    with pytest.raises(LifecycleError):
        convert_to_invoice(invoice)


def test_two_conversions_get_distinct_ids(approved_quotation):
    first = convert_to_invoice(approved_quotation)
    second = convert_to_invoice(approved_quotation)
    assert first["id"] != second["id"]


# =============================================================================
# Status
# =============================================================================

def test_transitions_are_free():
    for collection, statuses in (("quotations", QUOTATION_STATUSES), ("invoices", INVOICE_STATUSES)):
        for source in statuses:
            for target in statuses:
                assert can_transition(collection, source, target)


def test_status_can_move_backwards(approved_quotation, acme, items):
    assert set_quotation_status(approved_quotation["id"], "Draft")["status"] == "Draft"

    invoice = create_invoice(client_id=acme["id"], items=items)
    set_invoice_status(invoice["id"], "Paid")
    assert set_invoice_status(invoice["id"], "Sent")["status"] == "Sent"


def test_set_status_rejects_unknown_value(approved_quotation):
    with pytest.raises(LifecycleError):
        set_quotation_status(approved_quotation["id"], "Archived")
    assert record_store.get("quotations", approved_quotation["id"])["status"] == "Approved"


def test_set_status_missing_document(db_session):
    with pytest.raises(NotFoundError):
        set_invoice_status("INV-2024-404", "Paid")


def test_overdue_is_read_time_only(acme, items):
    invoice = create_invoice(
        client_id=acme["id"], items=items, date="2024-05-01", due_date="2024-05-31", status="Sent",
    )
    now = datetime(2024, 7, 1)

    assert is_overdue(invoice, now)
    assert record_store.get("invoices", invoice["id"])["status"] == "Sent"
    assert not is_overdue(invoice, datetime(2024, 5, 30))

    paid = set_invoice_status(invoice["id"], "Paid")
    assert not is_overdue(paid, now)


def test_invoice_without_due_date_is_not_overdue():
    assert not is_overdue({"status": "Sent", "due_date": None})


# =============================================================================
# Edits
# =============================================================================

def test_total_cannot_be_set(approved_quotation):
    with pytest.raises(ValidationError):
        update_document("quotations", approved_quotation["id"], {"total": "1"})


def test_items_edit_recomputes_totals(approved_quotation):
    updated = update_items("quotations", approved_quotation["id"], [
        {"description": "Cable", "quantity": 2, "unit_price": "40", "total": "999"},
    ])

    assert updated["items"][0]["total"] == Decimal("80")
    assert updated["total"] == Decimal("84")


def test_items_edit_rejects_empty_list(approved_quotation):
    with pytest.raises(ValidationError):
        update_items("quotations", approved_quotation["id"], [])
    assert record_store.get("quotations", approved_quotation["id"])["total"] == Decimal("388.5")


def test_update_document_other_fields(approved_quotation):
    updated = update_document("quotations", approved_quotation["id"], {
        "project_name": "Phase 2",
        "date": "2024-08-01T09:30:00Z",
    })

    assert updated["project_name"] == "Phase 2"
    assert updated["date"] == "2024-08-01T09:30:00Z"
    assert updated["id"] == approved_quotation["id"]


def test_update_document_missing(db_session):
    with pytest.raises(NotFoundError):
        update_document("invoices", "INV-2024-404", {"project_name": "x"})


def test_document_kind_reads_discriminator():
    assert lifecycle_service.collection_for({"kind": "invoice"}) == "invoices"
    assert lifecycle_service.collection_for({"kind": "quotation", "due_date": "2024-01-01"}) == "quotations"
    with pytest.raises(LifecycleError):
        lifecycle_service.document_kind({"id": "x", "due_date": "2024-01-01"})
