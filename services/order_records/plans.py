from __future__ import annotations

import re
from typing import Optional

_UUID_TIMESTAMP_RE = re.compile(
    r"""
    ^[0-9a-f-]{8,}                     # uuid-like token
    /\d{4}-\d{2}-\d{2}                 # ISO date
    T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z$     # time, optional fraction, UTC marker
    """,
    re.IGNORECASE | re.VERBOSE,
)

_NUMBERED_PLAN_RE = re.compile(r"^(NEW|MOD|CAN)-(\d+)", re.IGNORECASE)

# (prefixes, label) checked in order after the UCDM pattern
_PREFIX_LABELS = (
    (("TOM", "PRJ"), "PPM"),
    (("AMEX",), "NEW-14"),
    (("UCP",), "UCSS"),
)

_BARE_PLANS = ("NEW", "MOD", "CAN")


def classify_plan(order_id: Optional[str]) -> str:
    """
    Derive the plan label for an order id. First matching rule wins:

      '0f8c1e2a-77/2025-11-02T10:15:00Z' -> 'UCDM'
      'tomcat-1', 'PRJ-9'                -> 'PPM'
      'AMEX123'                          -> 'NEW-14'
      'ucp-7'                            -> 'UCSS'
      'new-102x'                         -> 'NEW-102'
      'Modify'                           -> 'MOD'

    Anything else (including blank input) gives ''.
    """
    if order_id is None:
        return ""
    trimmed = order_id.strip()
    if not trimmed:
        return ""

    if _UUID_TIMESTAMP_RE.match(trimmed):
        return "UCDM"

    upper = trimmed.upper()
    for prefixes, label in _PREFIX_LABELS:
        if upper.startswith(prefixes):
            return label

    m = _NUMBERED_PLAN_RE.match(trimmed)
    if m:
        return m.group(0).upper()

    for plan in _BARE_PLANS:
        if upper.startswith(plan):
            return plan
    return ""
