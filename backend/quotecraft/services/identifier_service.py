# Overview: Human-readable document numbers for quotations and invoices.

"""
Identifier Allocator - "<prefix>-<year>-<seq>" document numbers

FORMAT: Q-2024-003, INV-2024-001 (seq zero-padded to 3 digits, grows past
999 without truncation).

POLICY: seq = (number of known ids sharing "<prefix>-<year>") + 1, bumped
until it no longer collides with a known id.

The allocator is advisory and pure; it never reads or writes storage. The
record store numbers quotations and invoices with it: it proposes
next_id(prefix, year, known_ids) and, when the insert collides (DuplicateIdError),
proposes again past the rejected id. Retired ids are part of known_ids(), so a
deleted document's number is never proposed again.
"""

from __future__ import annotations

import re
from typing import Iterable


QUOTATION_PREFIX = "Q"
INVOICE_PREFIX = "INV"
SEQUENCE_PAD = 3

DOCUMENT_ID_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<year>\d{4})-(?P<seq>\d+)$")


def format_document_id(prefix: str, year: int, seq: int) -> str:
    return f"{prefix}-{year}-{seq:0{SEQUENCE_PAD}d}"


def parse_document_id(value: str) -> tuple[str, int, int] | None:
    """Split "Q-2024-003" into ("Q", 2024, 3). Returns None for other ids."""
    match = DOCUMENT_ID_RE.match(value or "")
    if not match:
        return None
    return match.group("prefix"), int(match.group("year")), int(match.group("seq"))


def next_id(prefix: str, year: int, existing_ids: Iterable[str]) -> str:
    """Propose the next id for prefix/year given the ids already taken."""
    existing = set(existing_ids)
    same_series = 0
    for value in existing:
        parsed = parse_document_id(value)
        if parsed and parsed[0] == prefix and parsed[1] == year:
            same_series += 1

    seq = same_series + 1
    candidate = format_document_id(prefix, year, seq)
    while candidate in existing:
        seq += 1
        candidate = format_document_id(prefix, year, seq)
    return candidate

