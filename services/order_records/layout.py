from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

ORDERS_SHEET = "Orders"
ALL_ORDERS_SHEET = "AllOrders"
VALUE_CONDITIONS_SHEET = "ValueConditions"

ORDER_ID_LABEL = "Order ID"
PLAN_LABEL = "Plan Name"
ENVIRONMENT_LABEL = "Environment"
SPRINT_LABEL = "Sprint"
DATE_LABEL = "Date"

ORDER_HEADERS: Tuple[str, ...] = (ORDER_ID_LABEL, PLAN_LABEL, ENVIRONMENT_LABEL, SPRINT_LABEL, DATE_LABEL)
LEGACY_ORDER_HEADERS: Tuple[str, ...] = (ORDER_ID_LABEL, PLAN_LABEL, SPRINT_LABEL, DATE_LABEL)
MINIMAL_ORDER_HEADERS: Tuple[str, ...] = (ORDER_ID_LABEL, DATE_LABEL)

SCHEDULE_HEADERS: Tuple[str, ...] = ("Sprint Name", "Start Date", "End Date")

# 0-based column offsets
SHIFTED_OFFSET = 3                      # Orders sheet tables start in column D
ZERO_OFFSET = 0
SCHEDULE_OFFSET = 2                     # ValueConditions starts in column C

ORDERS_TOP_PADDING = 3
ORDERS_TABLE_GAP = 2
SCHEDULE_TOP_PADDING = 2
VALUE_CONDITIONS_INDEX = 2


@dataclass(frozen=True)
class HeaderLayout:
    """A header row shape: `labels` in consecutive columns starting at `offset`."""
    name: str
    offset: int
    labels: Tuple[str, ...]

    def matches(self, row: Sequence) -> bool:
        for i, label in enumerate(self.labels):
            col = self.offset + i
            value = row[col] if col < len(row) else None
            if value is None or str(value).strip().lower() != label.lower():
                return False
        return True


# priority order; the first layout that matches marks the row as a header
HEADER_LAYOUTS: Tuple[HeaderLayout, ...] = (
    HeaderLayout("shifted", SHIFTED_OFFSET, ORDER_HEADERS),
    HeaderLayout("shifted-legacy", SHIFTED_OFFSET, LEGACY_ORDER_HEADERS),
    HeaderLayout("zero", ZERO_OFFSET, ORDER_HEADERS),
    HeaderLayout("zero-legacy", ZERO_OFFSET, LEGACY_ORDER_HEADERS),
    HeaderLayout("zero-minimal", ZERO_OFFSET, MINIMAL_ORDER_HEADERS),
)

# where each field may live in a data row, tried left to right
ORDER_ID_COLUMNS = (SHIFTED_OFFSET, ZERO_OFFSET)
DATE_COLUMNS = (SHIFTED_OFFSET + 4, SHIFTED_OFFSET + 3, SHIFTED_OFFSET + 2, 4, 3, 2, 1)
ENVIRONMENT_COLUMNS = (SHIFTED_OFFSET + 2, ZERO_OFFSET + 2)
