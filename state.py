"""Persisted scheduler state and its JSON file store.

Wire shape::

    {
      "currentPrint": {"item": <print item>, "endTime": "<ISO-8601>"} | null,
      "queue": [<queue item>, ...],
      "defaultGapMinutes": 15
    }

Loading never fails: each malformed field falls back to its default on its own,
and a missing or corrupt file loads as the empty state. Save errors are logged
and swallowed, so the in-memory state stays authoritative for the session.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from queue_items import CurrentPrint, PrintItem, QueueItem, item_from_dict, item_to_dict

logger = logging.getLogger(__name__)

DEFAULT_GAP_MINUTES = 15


@dataclass(frozen=True)
class SchedulerState:
    current_print: Optional[CurrentPrint] = None
    queue: Tuple[QueueItem, ...] = ()
    default_gap_minutes: int = DEFAULT_GAP_MINUTES


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    Offsets (including a trailing ``Z``) are converted to the local wall clock.
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def state_to_dict(state: SchedulerState) -> Dict[str, Any]:
    current = None
    if state.current_print is not None:
        current = {
            "item": item_to_dict(state.current_print.item),
            "endTime": state.current_print.end_time.isoformat(),
        }
    return {
        "currentPrint": current,
        "queue": [item_to_dict(item) for item in state.queue],
        "defaultGapMinutes": state.default_gap_minutes,
    }


def _current_from_dict(data: Any) -> Optional[CurrentPrint]:
    if data is None:
        return None
    try:
        item = item_from_dict(data["item"])
        if not isinstance(item, PrintItem):
            raise ValueError(f"Current print must be a print item, got {item.kind!r}")
        return CurrentPrint(item=item, end_time=parse_timestamp(data["endTime"]))
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Dropping malformed current print from saved state: %s", e)
        return None


def _queue_from_list(data: Any, reserved: Iterable[str] = ()) -> Tuple[QueueItem, ...]:
    if not isinstance(data, list):
        if data is not None:
            logger.warning("Saved queue is not a list, starting empty")
        return ()
    items = []
    seen = set(reserved)
    for raw in data:
        try:
            item = item_from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed queue item %r: %s", raw, e)
            continue
        if item.id in seen:
            logger.warning("Skipping queue item with duplicate id %s", item.id)
            continue
        seen.add(item.id)
        items.append(item)
    return tuple(items)


def _gap_from_value(value: Any, default: int = DEFAULT_GAP_MINUTES) -> int:
    # The browser version stored `parsed.defaultGapMinutes || 15`, so 0 means default too
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def state_from_dict(data: Any, default_gap_minutes: int = DEFAULT_GAP_MINUTES) -> SchedulerState:
    """Rebuild state from a decoded blob, substituting defaults for bad fields."""
    if not isinstance(data, dict):
        logger.warning("Saved state is not an object, using defaults")
        return SchedulerState(default_gap_minutes=default_gap_minutes)
    current = _current_from_dict(data.get("currentPrint"))
    reserved = {current.item.id} if current is not None else set()
    return SchedulerState(
        current_print=current,
        queue=_queue_from_list(data.get("queue"), reserved),
        default_gap_minutes=_gap_from_value(data.get("defaultGapMinutes"), default_gap_minutes),
    )


class StateStore:
    """Load/save ``SchedulerState`` as a JSON file."""

    def __init__(self, path: str | Path, default_gap_minutes: int = DEFAULT_GAP_MINUTES) -> None:
        self.path = Path(path)
        self.default_gap_minutes = default_gap_minutes

    def load(self) -> SchedulerState:
        if not self.path.exists():
            logger.info("No saved state at %s, starting empty", self.path)
            return SchedulerState(default_gap_minutes=self.default_gap_minutes)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read saved state %s: %s", self.path, e)
            return SchedulerState(default_gap_minutes=self.default_gap_minutes)
        state = state_from_dict(data, self.default_gap_minutes)
        logger.info(
            "Loaded state: %d queued item(s), current=%s",
            len(state.queue),
            state.current_print.item.name if state.current_print else None,
        )
        return state

    def save(self, state: SchedulerState) -> bool:
        """Write ``state``; returns False (after logging) when the write fails."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(state_to_dict(state), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("Failed to save state to %s: %s", self.path, e)
            return False
        return True
