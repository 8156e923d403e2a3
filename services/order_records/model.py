from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional


@dataclass(frozen=True)
class OrderEntry:
    order_id: str                       # trimmed, never empty
    environment: str = ""               # trimmed, may be empty

    def __post_init__(self):
        if self.environment is None:
            object.__setattr__(self, "environment", "")


@dataclass(frozen=True)
class SprintWindow:
    name: str                           # "Sprint-<N>"
    start: date
    end: date                           # inclusive

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


# date -> entries in insertion order; iterate with sorted(index) for ascending dates
DateIndex = Dict[date, List[OrderEntry]]


@dataclass(frozen=True)
class OrderRecordRequest:
    order_id: str
    directory_path: str
    env: str
    date: Optional[str] = None


@dataclass(frozen=True)
class OrderRecordResponse:
    message: str
    file_path: str
    order_id: str
    stored_at: str                      # yyyy-MM-dd

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "filePath": self.file_path,
            "orderId": self.order_id,
            "storedAt": self.stored_at,
        }
