from .base import RecordMixin
from .directory import Client, Project, User
from .documents import Quotation, Invoice, RetiredId, QUOTATION_KIND, INVOICE_KIND
from .settings import SettingsBlob

# Collection name -> model. Collection names are the wire contract.
COLLECTIONS = {
    Client.__collection__: Client,
    Project.__collection__: Project,
    Quotation.__collection__: Quotation,
    Invoice.__collection__: Invoice,
    User.__collection__: User,
}

__all__ = [
    'RecordMixin',
    'Client', 'Project', 'User',
    'Quotation', 'Invoice', 'RetiredId', 'QUOTATION_KIND', 'INVOICE_KIND',
    'SettingsBlob',
    'COLLECTIONS',
]
