"""
auth/sequence.py -- Business identifier formatting and parsing.

A business identifier is "<PREFIX>-<zero-padded integer>", e.g. EMP-000123.
These helpers are pure. The atomic allocation itself lives in
PrincipalStore.create_principal(), which increments a counter row and
inserts the principal in the same transaction.

A stored identifier that cannot be parsed (wrong prefix, non-numeric suffix)
counts as 0 so allocation can continue; the anomaly is logged.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("staffdesk.auth")

BUSINESS_ID_WIDTH = 6


def format_business_id(prefix: str, number: int, width: int = BUSINESS_ID_WIDTH) -> str:
    """Return e.g. format_business_id("EMP", 7) -> "EMP-000007"."""
    if number < 1:
        raise ValueError(f"business id numbers start at 1, got {number}")
    return f"{prefix}-{number:0{width}d}"


def parse_business_id(value: str | None, prefix: str) -> int:
    """Return the numeric suffix of a stored business id, or 0 if unusable."""
    if not value:
        return 0
    head, sep, suffix = value.partition("-")
    if sep and head == prefix and suffix.isascii() and suffix.isdigit():
        return int(suffix)
    logger.warning("Unparsable business id %r for prefix %s; treating as 0", value, prefix)
    return 0


def next_business_id(last: str | None, prefix: str, width: int = BUSINESS_ID_WIDTH) -> str:
    """Return the identifier that follows `last` (the first one if last is None)."""
    return format_business_id(prefix, parse_business_id(last, prefix) + 1, width)
