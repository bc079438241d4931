from __future__ import annotations

from ..extensions import db


class SettingsBlob(db.Model):
    """Keyed JSON blob (branding, terms, page setup). Not a record collection."""
    __tablename__ = "settings_blobs"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)
