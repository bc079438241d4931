from __future__ import annotations

from ..extensions import db
from .base import RecordMixin


class Client(RecordMixin, db.Model):
    """
    Client reference data. Referenced by projects, quotations and invoices
    through client_id (weak reference: never cascaded, resolved on demand).
    """
    __tablename__ = "clients"
    __collection__ = "clients"
    __id_prefix__ = "cli"

    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)


class Project(RecordMixin, db.Model):
    """
    A project belongs to a client by id only. Deleting the client leaves the
    project in place; lookups report "Unknown Client".
    """
    __tablename__ = "projects"
    __collection__ = "projects"
    __id_prefix__ = "proj"

    name = db.Column(db.String(255), nullable=True)
    client_id = db.Column(db.String(64), nullable=True, index=True)


class User(RecordMixin, db.Model):
    __tablename__ = "users"
    __collection__ = "users"
    __id_prefix__ = "user"
    HIDDEN_FIELDS = frozenset({"password"})

    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    # bcrypt hash; never returned by to_dict()
    password = db.Column(db.String(255), nullable=True)
    requires_password_change = db.Column(db.Boolean, nullable=True)
