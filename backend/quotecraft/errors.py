# Overview: Domain error taxonomy shared by the record store and document services.

from __future__ import annotations


class StoreError(Exception):
    """Backing database unreachable, or it rejected the operation."""


class DuplicateIdError(StoreError):
    """An explicit record id is already live (or retired) in its collection."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} id '{record_id}' is already taken")
        self.collection = collection
        self.record_id = record_id


class NotFoundError(LookupError):
    """Update or lookup targeting an id that does not exist."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record '{record_id}' not found")
        self.collection = collection
        self.record_id = record_id


class ConversionError(StoreError):
    """
    Quotation -> invoice conversion failed while writing the invoice.

    The source quotation is never written by the conversion, so it is left
    exactly as it was.
    """

    def __init__(self, quotation_id: str, message: str):
        super().__init__(message)
        self.quotation_id = quotation_id
