from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from openpyxl.workbook.workbook import Workbook

from .layout import (
    ALL_ORDERS_SHEET,
    DATE_COLUMNS,
    ENVIRONMENT_COLUMNS,
    HEADER_LAYOUTS,
    ORDER_ID_COLUMNS,
    ORDERS_SHEET,
    SCHEDULE_HEADERS,
    SCHEDULE_OFFSET,
    SHIFTED_OFFSET,
    VALUE_CONDITIONS_SHEET,
    ZERO_OFFSET,
    HeaderLayout,
)
from .model import DateIndex, OrderEntry, SprintWindow
from .sprints import is_sprint_label

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
_DATE_SHAPE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(s: str) -> date:
    """
    Strict 'yyyy-MM-dd'. Raise ValueError for anything else, including
    single-digit months/days and impossible dates like '2026-13-40'.
    """
    ss = s.strip()
    if not _DATE_SHAPE_RE.match(ss):
        raise ValueError(f"Not a yyyy-MM-dd date: {s!r}")
    return datetime.strptime(ss, DATE_FORMAT).date()


def is_date_text(s: Optional[str]) -> bool:
    if not s:
        return False
    try:
        parse_iso_date(s)
    except ValueError:
        return False
    return True


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def cell_text(row: Sequence, col: int) -> Optional[str]:
    """Cell value as text; numbers and native dates go through str()."""
    if col < 0 or col >= len(row):
        return None
    value = row[col]
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def first_non_blank(*candidates: Optional[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate is not None and candidate.strip():
            return candidate
    return None


def _looks_like_schedule_value(text: str) -> bool:
    return is_sprint_label(text) or is_date_text(text)


def header_layout(row: Sequence) -> Optional[HeaderLayout]:
    for layout in HEADER_LAYOUTS:
        if layout.matches(row):
            return layout
    return None


def _is_flat_row(row: Sequence) -> bool:
    """Column A holds an id and column D a sprint or date: a flat/legacy row."""
    zero = cell_text(row, ZERO_OFFSET)
    shifted = cell_text(row, SHIFTED_OFFSET)
    if zero is None or not zero.strip() or shifted is None:
        return False
    return _looks_like_schedule_value(shifted.strip())


def _resolve_order_id(row: Sequence) -> Optional[str]:
    columns = (ZERO_OFFSET,) if _is_flat_row(row) else ORDER_ID_COLUMNS
    value = first_non_blank(*(cell_text(row, col) for col in columns))
    return value.strip() if value is not None else None


def _resolve_date(row: Sequence) -> Optional[date]:
    for col in DATE_COLUMNS:
        text = cell_text(row, col)
        if text is None or not text.strip():
            continue
        try:
            return parse_iso_date(text)
        except ValueError:
            continue
    return None


def _resolve_environment(row: Sequence) -> str:
    value = first_non_blank(*(cell_text(row, col) for col in ENVIRONMENT_COLUMNS))
    normalized = (value or "").strip()
    if not normalized or _looks_like_schedule_value(normalized):
        return ""
    return normalized


def parse_rows(rows: Iterable[Sequence]) -> DateIndex:
    """
    Fold raw sheet rows into a DateIndex. Header rows, blank rows and rows
    without an order id or a yyyy-MM-dd date are skipped.
    """
    index: DateIndex = {}
    skipped = 0
    for row in rows:
        row = tuple(row or ())
        if header_layout(row) is not None:
            continue
        order_id = _resolve_order_id(row)
        d = _resolve_date(row)
        if not order_id or d is None:
            if any(v not in (None, "") for v in row):
                skipped += 1
            continue
        merge_entry(index, OrderEntry(order_id, _resolve_environment(row)), d)
    if skipped:
        logger.debug(f"Skipped {skipped} unrecognised row(s) while reading orders")
    return index


def parse_existing(wb: Workbook) -> DateIndex:
    """Read stored orders from the Orders sheet, falling back to AllOrders."""
    for name in (ORDERS_SHEET, ALL_ORDERS_SHEET):
        if name in wb.sheetnames:
            index = parse_rows(wb[name].iter_rows(values_only=True))
            logger.debug(f"Read {sum(len(v) for v in index.values())} order(s) from '{name}'")
            return index
    return {}


def merge_entry(index: DateIndex, entry: OrderEntry, d: date) -> DateIndex:
    index.setdefault(d, []).append(entry)
    return index


def load_sprint_windows(wb: Workbook) -> Optional[List[SprintWindow]]:
    """
    Read the persisted schedule from ValueConditions. Rows before the
    'Sprint Name / Start Date / End Date' header are ignored, as are rows
    after it that don't hold a name and two valid dates.
    None means the sheet does not exist.
    """
    if VALUE_CONDITIONS_SHEET not in wb.sheetnames:
        return None

    windows: List[SprintWindow] = []
    header_reached = False
    for row in wb[VALUE_CONDITIONS_SHEET].iter_rows(values_only=True):
        row = tuple(row or ())
        name, start, end = (
            first_non_blank(cell_text(row, SCHEDULE_OFFSET + i), cell_text(row, i))
            for i in range(3)
        )

        if not header_reached:
            header_reached = all(
                v is not None and v.strip().lower() == label.lower()
                for v, label in zip((name, start, end), SCHEDULE_HEADERS)
            )
            continue

        if name is None or start is None or end is None:
            continue
        try:
            windows.append(SprintWindow(name.strip(), parse_iso_date(start), parse_iso_date(end)))
        except ValueError:
            continue
    return windows
