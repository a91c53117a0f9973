"""Queue item model: print jobs, gaps and wait-until pauses.

``QueueItem`` is a closed union of three frozen dataclasses. Code that needs to
tell them apart uses ``isinstance`` and raises ``ValueError`` on anything else.
Items are immutable and hashable, so a queue stored as a tuple is a value.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Union

from time_utils import is_valid_clock_time, normalize_clock_time

logger = logging.getLogger(__name__)

GAP_NAME = "Prep Time"
WAIT_NAME = "Wait Until"


def new_item_id(kind: str) -> str:
    """Fresh id such as ``print-3f2a...``; unique for the lifetime of the process."""
    return f"{kind}-{uuid.uuid4().hex}"


def _check_common(item_id: str, name: str) -> None:
    if not isinstance(item_id, str) or not item_id:
        raise ValueError("Queue item id must be a non-empty string")
    if not isinstance(name, str):
        raise ValueError("Queue item name must be a string")


def _check_duration(minutes: int) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ValueError(f"Duration must be a non-negative integer, got {minutes!r}")


@dataclass(frozen=True)
class PrintItem:
    """A print job with a fixed duration."""

    kind: ClassVar[str] = "print"

    id: str
    name: str
    duration_minutes: int

    def __post_init__(self) -> None:
        _check_common(self.id, self.name)
        _check_duration(self.duration_minutes)


@dataclass(frozen=True)
class GapItem:
    """Preparation or buffer time between jobs. Never becomes the current print."""

    kind: ClassVar[str] = "gap"

    id: str
    name: str
    duration_minutes: int

    def __post_init__(self) -> None:
        _check_common(self.id, self.name)
        _check_duration(self.duration_minutes)


@dataclass(frozen=True)
class WaitUntilItem:
    """Pause the queue until a wall-clock time of day (``HH:MM``, 24-hour)."""

    kind: ClassVar[str] = "wait"

    id: str
    name: str
    wait_until: str

    def __post_init__(self) -> None:
        _check_common(self.id, self.name)
        if not is_valid_clock_time(self.wait_until):
            raise ValueError(f"Invalid wait-until time: {self.wait_until!r}")


QueueItem = Union[PrintItem, GapItem, WaitUntilItem]


@dataclass(frozen=True)
class CurrentPrint:
    """The print job running right now."""

    item: PrintItem
    end_time: datetime


# --- Boundary factories: invalid input is rejected silently (None) ---

def _is_positive_minutes(minutes: Any) -> bool:
    return isinstance(minutes, int) and not isinstance(minutes, bool) and minutes > 0


def make_print(name: str, minutes: int) -> Optional[PrintItem]:
    name = (name or "").strip()
    if not name or not _is_positive_minutes(minutes):
        logger.debug("Rejected print item: name=%r minutes=%r", name, minutes)
        return None
    return PrintItem(id=new_item_id(PrintItem.kind), name=name, duration_minutes=minutes)


def make_gap(minutes: int, name: str = GAP_NAME) -> Optional[GapItem]:
    name = (name or "").strip()
    if not name or not _is_positive_minutes(minutes):
        logger.debug("Rejected gap item: name=%r minutes=%r", name, minutes)
        return None
    return GapItem(id=new_item_id(GapItem.kind), name=name, duration_minutes=minutes)


def make_wait(clock: str, name: str = WAIT_NAME) -> Optional[WaitUntilItem]:
    name = (name or "").strip()
    if not name or not is_valid_clock_time(clock):
        logger.debug("Rejected wait item: name=%r clock=%r", name, clock)
        return None
    return WaitUntilItem(
        id=new_item_id(WaitUntilItem.kind), name=name, wait_until=normalize_clock_time(clock)
    )


# --- Wire format (same field names as the persisted browser state) ---

def item_to_dict(item: QueueItem) -> Dict[str, Any]:
    if isinstance(item, (PrintItem, GapItem)):
        return {
            "id": item.id,
            "name": item.name,
            "durationMinutes": item.duration_minutes,
            "type": item.kind,
        }
    if isinstance(item, WaitUntilItem):
        return {
            "id": item.id,
            "name": item.name,
            "waitUntilTime": item.wait_until,
            "type": item.kind,
        }
    raise ValueError(f"Unknown queue item type: {type(item)}")


def item_from_dict(data: Dict[str, Any]) -> QueueItem:
    """Build a queue item from its wire dict; raises ValueError/KeyError/TypeError on bad input."""
    kind = data["type"]
    if kind == PrintItem.kind:
        return PrintItem(id=data["id"], name=data["name"], duration_minutes=data["durationMinutes"])
    if kind == GapItem.kind:
        return GapItem(id=data["id"], name=data["name"], duration_minutes=data["durationMinutes"])
    if kind == WaitUntilItem.kind:
        return WaitUntilItem(id=data["id"], name=data["name"], wait_until=data["waitUntilTime"])
    raise ValueError(f"Unknown queue item type: {kind!r}")


def describe(item: QueueItem) -> str:
    """Short badge label used in listings."""
    if isinstance(item, PrintItem):
        return "Print"
    if isinstance(item, GapItem):
        return "Gap"
    if isinstance(item, WaitUntilItem):
        return "Wait"
    raise ValueError(f"Unknown queue item type: {type(item)}")
