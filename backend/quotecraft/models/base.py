from __future__ import annotations

from ..extensions import db


class RecordMixin:
    """
    Shared shape of every stored record: an immutable string id plus the
    collection's typed columns. Fields a caller sends that have no column
    land in ``extra`` and are merged back on read.

    Columns hold no defaults. A column that was never written (NULL) is left
    out of ``to_dict()``, so a record reads back with exactly the fields it
    was given plus its id.
    """
    __collection__ = ""
    __id_prefix__ = None
    __kind__ = None
    # Ids come from the "<prefix>-<year>-<seq>" document series
    __numbered__ = False
    HIDDEN_FIELDS = frozenset()

    id = db.Column(db.String(64), primary_key=True)
    extra = db.Column(db.JSON, nullable=True)

    @classmethod
    def field_names(cls) -> list[str]:
        return [c.key for c in cls.__mapper__.columns if c.key != "extra"]

    def to_dict(self) -> dict:
        data = {}
        for key in self.field_names():
            if key in self.HIDDEN_FIELDS:
                continue
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        for key, value in (self.extra or {}).items():
            if key not in self.HIDDEN_FIELDS:
                data.setdefault(key, value)
        return data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
