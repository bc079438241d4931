from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, String
from sqlalchemy.types import TypeDecorator

from ..services.calculator_service import to_decimal
from ..time_utils import to_utc_z


# Line-item fields holding money; serialized as exact decimal strings in JSON.
LINE_MONEY_FIELDS = ("unit_price", "total")


class Money(TypeDecorator):
    """
    Exact decimal amount stored as a string.

    SQLite has no native DECIMAL, and Numeric would round-trip through float.
    """
    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(to_decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class IsoDateTime(TypeDecorator):
    """
    ISO-8601 instant kept as text.

    Strings are stored exactly as given so a record reads back the way it was
    written; datetime values are serialized as "YYYY-MM-DDTHH:MM:SSZ".
    Callers compare and sort through time_utils.coerce_datetime.
    """
    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, datetime):
            return to_utc_z(value)
        return value.isoformat()


class LineItemList(TypeDecorator):
    """
    Embedded line items (JSON array). unit_price/total are kept as decimal
    strings in storage and come back as Decimal.
    """
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        stored = []
        for item in value:
            row = dict(item)
            for key in LINE_MONEY_FIELDS:
                if row.get(key) is not None:
                    row[key] = str(to_decimal(row[key]))
            stored.append(row)
        return stored

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        items = []
        for row in value:
            item = dict(row)
            for key in LINE_MONEY_FIELDS:
                if item.get(key) is not None:
                    item[key] = Decimal(item[key])
            items.append(item)
        return items
