from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .services.calculator_service import to_decimal


# Maximum unit price: 9,999,999.99
# Keeps form input inside sane money bounds
MAX_UNIT_PRICE = Decimal("9999999.99")
MAX_QUANTITY = 1_000_000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem, raised at the form boundary."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = [f for f in sorted(required) if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]
        val = _coerce_value(col, raw)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_client(patch: dict) -> None:
    """Client name is required; email may be empty but must look like an email otherwise."""
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("name cannot be blank")
    email = patch.get("email")
    if email and not EMAIL_RE.match(email):
        raise ValidationError("email must be a valid email address")


def enforce_rules_project(patch: dict) -> None:
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("name cannot be blank")
    if "client_id" in patch and not (patch["client_id"] or "").strip():
        raise ValidationError("client_id is required")


def enforce_rules_user(patch: dict) -> None:
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("name cannot be blank")
    email = patch.get("email")
    if email is not None and not EMAIL_RE.match(email):
        raise ValidationError("email must be a valid email address")


def _validate_quantity(value: Any, position: int) -> int:
    # Reject floats, bools and scientific notation; quantities are whole units
    if isinstance(value, bool):
        raise ValidationError(f"items[{position}].quantity must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"items[{position}].quantity must be an integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"items[{position}].quantity must be an integer")
    if value < 1:
        raise ValidationError(f"items[{position}].quantity must be >= 1")
    if value > MAX_QUANTITY:
        raise ValidationError(f"items[{position}].quantity cannot exceed {MAX_QUANTITY}")
    return value


def _validate_unit_price(value: Any, position: int) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"items[{position}].unit_price is required")
    try:
        price = to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"items[{position}].unit_price must be a number")
    if not price.is_finite():
        raise ValidationError(f"items[{position}].unit_price must be a number")
    if price < 0:
        raise ValidationError(f"items[{position}].unit_price must be >= 0")
    if price > MAX_UNIT_PRICE:
        raise ValidationError(f"items[{position}].unit_price cannot exceed {MAX_UNIT_PRICE:,}")
    return price


def validate_line_items(items: Any) -> list[dict]:
    """
    Validate and normalize a document's line items.

    An edit form must submit at least one item. Each item needs a non-empty
    description, an integer quantity >= 1 and a unit_price >= 0. Missing item
    ids are generated. Item totals are not trusted here; the calculator
    recomputes them.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("At least one line item is required")

    cleaned = []
    for position, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{position}] must be an object")

        description = str(raw.get("description") or "").strip()
        if not description:
            raise ValidationError(f"items[{position}].description cannot be blank")

        item = {
            "id": str(raw.get("id") or uuid.uuid4().hex[:8]),
            "description": description,
            "brand_name": str(raw.get("brand_name") or "").strip(),
            "quantity": _validate_quantity(raw.get("quantity"), position),
            "unit_price": _validate_unit_price(raw.get("unit_price"), position),
        }
        if raw.get("image_url"):
            item["image_url"] = str(raw["image_url"]).strip()
        if raw.get("image_hint"):
            item["image_hint"] = str(raw["image_hint"]).strip()
        cleaned.append(item)

    return cleaned
