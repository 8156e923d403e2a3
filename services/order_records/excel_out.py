from __future__ import annotations

from datetime import date
from typing import Sequence

from openpyxl.worksheet.worksheet import Worksheet

from services.excel import OpenPyXLFileHandler

from .layout import (
    ALL_ORDERS_SHEET,
    ORDER_HEADERS,
    ORDERS_SHEET,
    ORDERS_TABLE_GAP,
    ORDERS_TOP_PADDING,
    SCHEDULE_HEADERS,
    SCHEDULE_OFFSET,
    SCHEDULE_TOP_PADDING,
    SHIFTED_OFFSET,
    VALUE_CONDITIONS_INDEX,
    VALUE_CONDITIONS_SHEET,
    ZERO_OFFSET,
)
from .model import DateIndex, OrderEntry, SprintWindow
from .parse import format_date
from .plans import classify_plan
from .sprints import SprintScheduleManager


def _write_header_row(ws: Worksheet, row: int, offset: int, labels: Sequence[str]) -> None:
    for i, label in enumerate(labels):
        OpenPyXLFileHandler.set_header_cell(ws, row, offset + i + 1, label)


def _write_order_row(ws: Worksheet, row: int, offset: int, entry: OrderEntry, d: date, sprint: str) -> None:
    values = (entry.order_id, classify_plan(entry.order_id), entry.environment, sprint, format_date(d))
    for i, value in enumerate(values):
        OpenPyXLFileHandler.set_text_cell(ws, row, offset + i + 1, value)


def write_grouped_view(ws: Worksheet, index: DateIndex, windows: Sequence[SprintWindow]) -> None:
    """One small table per date, starting in column D below the top padding."""
    row = ORDERS_TOP_PADDING + 1
    for d in sorted(index):
        _write_header_row(ws, row, SHIFTED_OFFSET, ORDER_HEADERS)
        row += 1
        sprint = SprintScheduleManager.resolve(d, windows)
        for entry in index[d]:
            _write_order_row(ws, row, SHIFTED_OFFSET, entry, d, sprint)
            row += 1
        row += ORDERS_TABLE_GAP


def write_flat_view(ws: Worksheet, index: DateIndex, windows: Sequence[SprintWindow]) -> None:
    _write_header_row(ws, 1, ZERO_OFFSET, ORDER_HEADERS)
    row = 2
    for d in sorted(index):
        sprint = SprintScheduleManager.resolve(d, windows)
        for entry in index[d]:
            _write_order_row(ws, row, ZERO_OFFSET, entry, d, sprint)
            row += 1


def write_schedule_view(ws: Worksheet, windows: Sequence[SprintWindow], schedule: SprintScheduleManager) -> None:
    col = SCHEDULE_OFFSET + 1
    row = SCHEDULE_TOP_PADDING + 1

    current = schedule.current_window()
    info = (
        "Current Sprint",
        current.name,
        f"Start Date: {format_date(current.start)}",
        f"End Date: {format_date(current.end)}",
        f"Window (days): {schedule.settings.window_days}",
    )
    for i, value in enumerate(info):
        ws.cell(row=row, column=col + i, value=value)
    row += 2  # blank spacer row

    _write_header_row(ws, row, SCHEDULE_OFFSET, SCHEDULE_HEADERS)
    row += 1
    for window in windows:
        ws.cell(row=row, column=col, value=window.name)
        ws.cell(row=row, column=col + 1, value=format_date(window.start))
        ws.cell(row=row, column=col + 2, value=format_date(window.end))
        row += 1


def render_views(
    handler: OpenPyXLFileHandler,
    index: DateIndex,
    windows: Sequence[SprintWindow],
    schedule: SprintScheduleManager,
) -> None:
    """
    Rebuild Orders, AllOrders and ValueConditions from scratch. Whatever those
    sheets held before is discarded; other sheets in the workbook are left alone.
    """
    orders = handler.recreate_sheet(ORDERS_SHEET)
    write_grouped_view(orders, index, windows)
    handler.autosize_columns(orders, SHIFTED_OFFSET + 1)

    all_orders = handler.recreate_sheet(ALL_ORDERS_SHEET)
    write_flat_view(all_orders, index, windows)
    handler.autosize_columns(all_orders, ZERO_OFFSET + 1)

    value_conditions = handler.recreate_sheet(VALUE_CONDITIONS_SHEET)
    write_schedule_view(value_conditions, windows, schedule)
    handler.autosize_columns(value_conditions, SCHEDULE_OFFSET + 1)

    handler.move_sheet(VALUE_CONDITIONS_SHEET, VALUE_CONDITIONS_INDEX)
