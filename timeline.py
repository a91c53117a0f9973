"""Timeline projection: start and end time for every queued item.

The projection is a sequential fold over the queue from an anchor time (the
current print's end, or now). Print and gap items advance the cursor by their
duration; wait-until items advance it to the next occurrence of their clock time,
rolling over to the next day when that time is not strictly after the cursor.

``project`` is a pure function of ``(anchor, queue)`` and is memoized, so callers
can re-run it after every mutation without recomputing unchanged timelines.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from queue_items import CurrentPrint, GapItem, PrintItem, QueueItem, WaitUntilItem
from time_utils import add_duration, parse_clock_time


@dataclass(frozen=True)
class ProjectedItem:
    """A queue item with its derived start and end time. Never persisted."""

    item: QueueItem
    start: datetime
    end: datetime


def resolve_wait_end(cursor: datetime, clock: str) -> datetime:
    """Next occurrence of ``clock`` strictly after ``cursor``."""
    hh, mm = parse_clock_time(clock)
    candidate = cursor.replace(hour=hh, minute=mm, second=0, microsecond=0)
    if candidate <= cursor:
        candidate += timedelta(days=1)
    return candidate


def item_end(cursor: datetime, item: QueueItem) -> datetime:
    if isinstance(item, WaitUntilItem):
        return resolve_wait_end(cursor, item.wait_until)
    if isinstance(item, (PrintItem, GapItem)):
        return add_duration(cursor, item.duration_minutes)
    raise ValueError(f"Unknown queue item type: {type(item)}")


@lru_cache(maxsize=128)
def _project(anchor: datetime, queue: Tuple[QueueItem, ...]) -> Tuple[ProjectedItem, ...]:
    projected = []
    cursor = anchor
    for item in queue:
        end = item_end(cursor, item)
        projected.append(ProjectedItem(item=item, start=cursor, end=end))
        cursor = end
    return tuple(projected)


def project(anchor: datetime, queue: Iterable[QueueItem]) -> Tuple[ProjectedItem, ...]:
    """Project every item of ``queue`` in order, starting at ``anchor``.

    The input queue is never modified. Item ``i + 1`` starts exactly where
    item ``i`` ends.
    """
    return _project(anchor, tuple(queue))


def completion_time(anchor: datetime, queue: Iterable[QueueItem]) -> Optional[datetime]:
    """End of the last projected item, or None for an empty queue."""
    projected = project(anchor, queue)
    if not projected:
        return None
    return projected[-1].end


def queue_start_time(current: Optional[CurrentPrint], now: datetime) -> datetime:
    """Anchor for the queue: the current print's end time, else ``now``."""
    if current is not None:
        return current.end_time
    return now


def completion_banner(
    current: Optional[CurrentPrint], queue: Iterable[QueueItem], now: datetime
) -> Optional[datetime]:
    """Time shown in the "queue completes" banner.

    No banner (None) when nothing is running and nothing is queued. With an
    empty queue the banner falls back to the current print's end time.
    """
    queue = tuple(queue)
    if current is None and not queue:
        return None
    done = completion_time(queue_start_time(current, now), queue)
    if done is None:
        return current.end_time  # type: ignore[union-attr]
    return done
