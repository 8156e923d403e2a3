from __future__ import annotations

import logging
import threading
import weakref
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from services.excel import OpenPyXLFileHandler
from services.exceptions import InvalidOrderDateError, OrderStorageError

from .excel_out import render_views
from .model import DateIndex, OrderEntry, OrderRecordRequest, OrderRecordResponse
from .parse import format_date, load_sprint_windows, merge_entry, parse_existing, parse_iso_date
from .sprints import SprintScheduleManager, SprintSettings

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "order-records.xlsx"
SAVED_MESSAGE = "Order ID saved successfully"

# one writer per workbook path inside this process; entries drop out once no caller references the lock
_PATH_LOCKS: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(str(path), threading.Lock())


def resolve_order_date(requested: Optional[str], today: date) -> date:
    if requested is None or not requested.strip():
        return today
    try:
        return parse_iso_date(requested)
    except ValueError as exc:
        raise InvalidOrderDateError("Invalid date format. Use yyyy-MM-dd") from exc


def normalize_environment(env: Optional[str]) -> str:
    return (env or "").strip()


def coverage_date(index: DateIndex, today: date) -> date:
    """Latest date that needs a sprint: the newest order date or today, whichever is later."""
    latest = max(index) if index else today
    return max(latest, today)


class OrderRecordService:
    """
    Stores one order per call in `<directory>/order-records.xlsx`.

    Each call re-reads every stored order, merges the new one, extends the
    sprint schedule and rewrites all three sheets. Nothing is cached between
    calls; the file on disk is the only state.
    """

    def __init__(
        self,
        settings: Optional[SprintSettings] = None,
        file_name: str = DEFAULT_FILE_NAME,
        today: Callable[[], date] = date.today,
    ):
        self.schedule = SprintScheduleManager(settings)
        self.file_name = file_name
        self.today = today

    @classmethod
    def from_config(cls, cfg: Optional[dict], today: Callable[[], date] = date.today) -> "OrderRecordService":
        """Build from the `order_records` config section."""
        cfg = cfg or {}
        return cls(
            settings=SprintSettings.from_config(cfg.get("sprints")),
            file_name=cfg.get("file_name") or DEFAULT_FILE_NAME,
            today=today,
        )

    def resolve_directory(self, directory: str) -> Path:
        try:
            path = Path(directory).expanduser().resolve()
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OrderStorageError(f"Unable to create or access directory: {directory}") from exc
        return path

    def _open_workbook(self, file_path: Path) -> OpenPyXLFileHandler:
        if not file_path.exists():
            return OpenPyXLFileHandler.new()
        try:
            return OpenPyXLFileHandler.from_file(str(file_path))
        except Exception as exc:
            raise OrderStorageError(f"Unable to read existing Excel file: {file_path}") from exc

    def store_order_record(self, request: OrderRecordRequest) -> OrderRecordResponse:
        today = self.today()
        # reject a bad date before touching the filesystem
        order_date = resolve_order_date(request.date, today)
        environment = normalize_environment(request.env)

        file_path = self.resolve_directory(request.directory_path) / self.file_name

        with _lock_for(file_path):
            handler = self._open_workbook(file_path)
            workbook = handler.workbook
            try:
                index = parse_existing(workbook)
                merge_entry(index, OrderEntry(request.order_id.strip(), environment), order_date)

                windows = self.schedule.ensure_schedule(load_sprint_windows(workbook), coverage_date(index, today))
                render_views(handler, index, windows, self.schedule)

                try:
                    handler.save_workbook(str(file_path))
                except OSError as exc:
                    raise OrderStorageError("Failed to store order details") from exc
            finally:
                workbook.close()

        logger.info(
            f"Stored order {request.order_id} for {format_date(order_date)} in {file_path} "
            f"({sum(len(v) for v in index.values())} order(s), {len(windows)} sprint(s))"
        )
        return OrderRecordResponse(
            message=SAVED_MESSAGE,
            file_path=str(file_path),
            order_id=request.order_id,
            stored_at=format_date(order_date),
        )
