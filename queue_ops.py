"""Pure queue transformations.

Every function takes a queue (any sequence of items) and returns a new tuple;
the input is never modified. Lookup misses are not errors: ``insert_after``
falls back to appending and ``remove_by_id`` is a no-op.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Optional, Sequence, Tuple

from queue_items import CurrentPrint, PrintItem, QueueItem, new_item_id
from time_utils import add_duration

logger = logging.getLogger(__name__)

Queue = Tuple[QueueItem, ...]


def find_index(queue: Sequence[QueueItem], item_id: str) -> int:
    """Index of the item with ``item_id``, or -1."""
    for i, item in enumerate(queue):
        if item.id == item_id:
            return i
    return -1


def append(queue: Sequence[QueueItem], item: QueueItem) -> Queue:
    return (*queue, item)


def insert_after(queue: Sequence[QueueItem], after_id: str, item: QueueItem) -> Queue:
    """Insert right after ``after_id``; append to the tail when it is not found."""
    index = find_index(queue, after_id)
    if index == -1:
        logger.debug("insert_after: %s not found, appending %s", after_id, item.id)
        return append(queue, item)
    return (*queue[: index + 1], item, *queue[index + 1 :])


def remove_by_id(queue: Sequence[QueueItem], item_id: str) -> Queue:
    return tuple(item for item in queue if item.id != item_id)


def reorder(queue: Sequence[QueueItem], new_order: Sequence[QueueItem]) -> Queue:
    """Replace the queue with ``new_order`` wholesale.

    Callers must pass a permutation of the same items; nothing is validated.
    """
    return tuple(new_order)


def move(queue: Sequence[QueueItem], from_index: int, to_index: int) -> Queue:
    """New order with the item at ``from_index`` moved to ``to_index``.

    Out-of-range indexes return the queue unchanged.
    """
    items = list(queue)
    if not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
        return tuple(items)
    items.insert(to_index, items.pop(from_index))
    return reorder(queue, items)


def duplicate(item: QueueItem) -> QueueItem:
    """Copy of ``item`` with a fresh id; every other field is equal."""
    return dataclasses.replace(item, id=new_item_id(item.kind))


def duplicate_into(queue: Sequence[QueueItem], item_id: str) -> Queue:
    """Append a duplicate of the item with ``item_id`` to the tail (no-op if absent)."""
    index = find_index(queue, item_id)
    if index == -1:
        return tuple(queue)
    return append(queue, duplicate(queue[index]))


def promote_to_current(
    queue: Sequence[QueueItem], item_id: str, now: datetime
) -> Tuple[Queue, Optional[CurrentPrint]]:
    """Move a print item out of the queue and start it as the current print.

    Returns ``(new_queue, current)``. Gaps, waits and unknown ids cannot be
    promoted: the queue comes back unchanged with ``None``.
    """
    index = find_index(queue, item_id)
    if index == -1:
        return tuple(queue), None
    item = queue[index]
    if not isinstance(item, PrintItem):
        logger.debug("Refusing to promote %s item %s", item.kind, item.id)
        return tuple(queue), None
    current = CurrentPrint(item=item, end_time=add_duration(now, item.duration_minutes))
    return remove_by_id(queue, item_id), current
