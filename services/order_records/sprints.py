from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

from .model import SprintWindow

logger = logging.getLogger(__name__)

SPRINT_PREFIX = "Sprint-"
_SPRINT_LABEL_RE = re.compile(r"^Sprint-\d+$", re.IGNORECASE)


def is_sprint_label(value: Optional[str]) -> bool:
    return value is not None and bool(_SPRINT_LABEL_RE.match(value))


def sprint_name(number: int) -> str:
    return f"{SPRINT_PREFIX}{number}"


def parse_sprint_number(name: Optional[str]) -> int:
    """'Sprint-391' -> 391. Anything else -> -1."""
    if not name or not name.startswith(SPRINT_PREFIX):
        return -1
    try:
        return int(name[len(SPRINT_PREFIX):])
    except ValueError:
        return -1


@dataclass(frozen=True)
class SprintSettings:
    first_number: int = 340
    default_last_number: int = 398
    anchor_number: int = 385
    anchor_start: date = date(2026, 1, 7)
    interval_days: int = 14
    window_days: int = 14
    additional: int = 15

    @classmethod
    def from_config(cls, cfg: Optional[dict]) -> "SprintSettings":
        """Build settings from the `order_records.sprints` config block; missing keys keep defaults."""
        cfg = cfg or {}
        defaults = cls()
        anchor_start = cfg.get("anchor_start")
        return cls(
            first_number=int(cfg.get("first_number", defaults.first_number)),
            default_last_number=int(cfg.get("default_last_number", defaults.default_last_number)),
            anchor_number=int(cfg.get("anchor_number", defaults.anchor_number)),
            anchor_start=date.fromisoformat(anchor_start) if anchor_start else defaults.anchor_start,
            interval_days=int(cfg.get("interval_days", defaults.interval_days)),
            window_days=int(cfg.get("window_days", defaults.window_days)),
            additional=int(cfg.get("additional", defaults.additional)),
        )


class SprintScheduleManager:
    """
    Periodic sprint numbering anchored on one known sprint.

    Every window is a pure function of its number, so regenerating the whole
    schedule reproduces the dates of every window that existed before. That is
    what lets `ensure_schedule` replace the stored schedule wholesale while the
    schedule still only ever grows at its forward edge.
    """

    def __init__(self, settings: Optional[SprintSettings] = None):
        self.settings = settings or SprintSettings()

    def window_number_for_date(self, d: date) -> int:
        s = self.settings
        days_between = (d - s.anchor_start).days
        # floor division keeps dates before the anchor in the right window
        return s.anchor_number + days_between // s.interval_days

    def window_start(self, number: int) -> date:
        s = self.settings
        return s.anchor_start + timedelta(days=(number - s.anchor_number) * s.interval_days)

    def window_end(self, start: date) -> date:
        return start + timedelta(days=self.settings.window_days - 1)

    def window(self, number: int) -> SprintWindow:
        start = self.window_start(number)
        return SprintWindow(name=sprint_name(number), start=start, end=self.window_end(start))

    def current_window(self) -> SprintWindow:
        return self.window(self.settings.anchor_number)

    def generate(self, first: int, last: int) -> List[SprintWindow]:
        return [self.window(n) for n in range(first, last + 1)]

    def required_last_number(self, coverage_date: date) -> int:
        s = self.settings
        baseline = max(self.window_number_for_date(coverage_date), s.first_number)
        return baseline + s.additional

    def ensure_schedule(
        self,
        existing: Optional[Sequence[SprintWindow]],
        coverage_date: date,
    ) -> List[SprintWindow]:
        required = self.required_last_number(coverage_date)
        existing_last = parse_sprint_number(existing[-1].name) if existing else -1

        if existing and existing_last >= required:
            logger.debug(f"Sprint schedule ends at {existing_last}, covers required {required}")
            return list(existing)

        last = max(required, self.settings.default_last_number)
        logger.debug(
            f"Regenerating sprint schedule {self.settings.first_number}..{last} "
            f"(stored last={existing_last}, required={required})"
        )
        return self.generate(self.settings.first_number, last)

    @staticmethod
    def resolve(d: date, windows: Optional[Sequence[SprintWindow]]) -> str:
        for window in windows or ():
            if window.contains(d):
                return window.name
        return ""
