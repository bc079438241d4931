from __future__ import annotations

from ..extensions import db
from ..services.identifier_service import INVOICE_PREFIX, QUOTATION_PREFIX
from .base import RecordMixin
from .types import IsoDateTime, LineItemList, Money


QUOTATION_KIND = "quotation"
INVOICE_KIND = "invoice"


class Quotation(RecordMixin, db.Model):
    """
    Sales quotation (id "Q-<year>-<seq>").

    total is derived from items (see calculator_service) and is never edited
    directly. kind is the explicit discriminator used when quotations and
    invoices are shown together.
    """
    __tablename__ = "quotations"
    __collection__ = "quotations"
    __id_prefix__ = QUOTATION_PREFIX
    __numbered__ = True
    __kind__ = QUOTATION_KIND

    kind = db.Column(db.String(16), nullable=False)
    client_id = db.Column(db.String(64), nullable=True, index=True)
    project_name = db.Column(db.String(255), nullable=True, index=True)
    date = db.Column(IsoDateTime, nullable=True, index=True)
    total = db.Column(Money, nullable=True)
    status = db.Column(db.String(16), nullable=True, index=True)  # Draft, Sent, Approved, Rejected
    items = db.Column(LineItemList, nullable=True)


class Invoice(RecordMixin, db.Model):
    """
    Invoice (id "INV-<year>-<seq>"), created manually or converted from a
    quotation. After conversion the items/total are an independent copy.
    """
    __tablename__ = "invoices"
    __collection__ = "invoices"
    __id_prefix__ = INVOICE_PREFIX
    __numbered__ = True
    __kind__ = INVOICE_KIND

    kind = db.Column(db.String(16), nullable=False)
    # Origin quotation; "" for manually created invoices
    quotation_id = db.Column(db.String(64), nullable=True, index=True)
    client_id = db.Column(db.String(64), nullable=True, index=True)
    project_name = db.Column(db.String(255), nullable=True, index=True)
    date = db.Column(IsoDateTime, nullable=True, index=True)
    due_date = db.Column(IsoDateTime, nullable=True)
    total = db.Column(Money, nullable=True)
    status = db.Column(db.String(16), nullable=True, index=True)  # Draft, Sent, Pending, Paid, Overdue
    items = db.Column(LineItemList, nullable=True)


class RetiredId(db.Model):
    """
    Ids of deleted records. The record itself is hard-deleted; only the id is
    kept so it is never handed out again.
    """
    __tablename__ = "retired_ids"

    collection = db.Column(db.String(32), primary_key=True)
    record_id = db.Column(db.String(64), primary_key=True)
    retired_at = db.Column(db.DateTime, nullable=False)
