# Overview: Pure financial calculations for quotation and invoice line items.

"""
Financial Calculator

Derives per-line totals, subtotal, tax and grand total from a list of line
items. Pure and deterministic: no I/O, no rounding at storage time.

RULES:
- line total = quantity * unit_price
- subtotal   = sum of line totals
- tax        = subtotal * tax_rate
- total      = subtotal + tax

Money is decimal.Decimal end to end. Rounding to the currency's minor unit
happens only in format_currency(); stored values keep full precision so that
repeated recomputation never accumulates rounding error.

Inputs are assumed to be pre-validated at the form boundary (see
validation.py). Over non-negative numeric input these functions never raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping


# Hard-coded rate. The settings blob exposes tax *terms* text, not this number.
TAX_RATE = Decimal("0.05")

CENT = Decimal("0.01")


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {"subtotal": self.subtotal, "tax": self.tax, "total": self.total}


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal without float drift.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    approximation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(str(value).strip())


def compute_line_total(quantity: int, unit_price: Any) -> Decimal:
    return to_decimal(quantity) * to_decimal(unit_price)


def compute_document_totals(
    items: Iterable[Mapping[str, Any]],
    tax_rate: Any = TAX_RATE,
) -> DocumentTotals:
    """
    Compute subtotal, tax and total for a document's items.

    Per-line totals are recomputed from quantity and unit_price; any stored
    "total" on an item is ignored.
    """
    subtotal = sum(
        (compute_line_total(item["quantity"], item["unit_price"]) for item in items),
        Decimal(0),
    )
    tax = subtotal * to_decimal(tax_rate)
    return DocumentTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def apply_line_totals(items: Iterable[Mapping[str, Any]]) -> list[dict]:
    """
    Return new item dicts with "total" fully replaced by quantity * unit_price.

    The input items are not mutated.
    """
    result = []
    for item in items:
        line = dict(item)
        line["unit_price"] = to_decimal(line["unit_price"])
        line["total"] = compute_line_total(line["quantity"], line["unit_price"])
        result.append(line)
    return result


def round_money(amount: Any) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Any, symbol: str = "$") -> str:
    """Display formatting: two decimal places, thousands separators."""
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"
