"""Single-user scheduler session: owns the state and applies user actions.

All mutations go through the pure functions in ``queue_ops``; the session swaps
in the new immutable ``SchedulerState`` and saves it. Rejected input (empty name,
non-positive duration, bad clock time, unknown id) leaves the state untouched
and returns None or False.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

import config
import queue_ops
from queue_items import CurrentPrint, PrintItem, QueueItem, make_gap, make_print, make_wait
from state import SchedulerState, StateStore
from time_utils import add_duration, remaining_duration, remaining_minutes
from timeline import ProjectedItem, completion_banner, completion_time, project, queue_start_time

logger = logging.getLogger(__name__)


class SchedulerSession:
    """Holds the queue and current print; saves after every observable change."""

    def __init__(
        self,
        store: Optional[StateStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        default_gap_minutes: Optional[int] = None,
    ) -> None:
        self.store = store
        self.clock = clock
        if default_gap_minutes is None:
            default_gap_minutes = config.DEFAULT_GAP_MINUTES
        self.default_gap_minutes = default_gap_minutes
        if store is not None:
            self.state = store.load()
        else:
            self.state = SchedulerState(default_gap_minutes=default_gap_minutes)

    # --- plumbing ---

    def _commit(self, state: SchedulerState) -> None:
        if state == self.state:
            return
        self.state = state
        if self.store is not None:
            self.store.save(state)

    def _set_queue(self, queue: Tuple[QueueItem, ...]) -> None:
        self._commit(dataclasses.replace(self.state, queue=queue))

    @property
    def queue(self) -> Tuple[QueueItem, ...]:
        return self.state.queue

    @property
    def current(self) -> Optional[CurrentPrint]:
        return self.state.current_print

    def item_at(self, position: int) -> Optional[QueueItem]:
        """Item at 1-based display ``position``, or None."""
        if 1 <= position <= len(self.state.queue):
            return self.state.queue[position - 1]
        return None

    # --- queue actions ---

    def add_print(self, name: str, minutes: int) -> Optional[PrintItem]:
        item = make_print(name, minutes)
        if item is None:
            return None
        self._set_queue(queue_ops.append(self.queue, item))
        logger.info("Queued print %r (%d min)", item.name, item.duration_minutes)
        return item

    def add_gap(self, minutes: Optional[int] = None, name: Optional[str] = None) -> Optional[QueueItem]:
        item = self._build_gap(minutes, name)
        if item is None:
            return None
        self._set_queue(queue_ops.append(self.queue, item))
        logger.info("Queued gap %r (%d min)", item.name, item.duration_minutes)
        return item

    def add_wait(self, clock: str, name: Optional[str] = None) -> Optional[QueueItem]:
        item = make_wait(clock) if name is None else make_wait(clock, name)
        if item is None:
            return None
        self._set_queue(queue_ops.append(self.queue, item))
        logger.info("Queued wait until %s", item.wait_until)
        return item

    def insert_gap_after(self, after_id: str, minutes: Optional[int] = None) -> Optional[QueueItem]:
        item = self._build_gap(minutes, None)
        if item is None:
            return None
        self._set_queue(queue_ops.insert_after(self.queue, after_id, item))
        logger.info("Inserted gap (%d min) after %s", item.duration_minutes, after_id)
        return item

    def insert_wait_after(self, after_id: str, clock: str) -> Optional[QueueItem]:
        item = make_wait(clock)
        if item is None:
            return None
        self._set_queue(queue_ops.insert_after(self.queue, after_id, item))
        logger.info("Inserted wait until %s after %s", item.wait_until, after_id)
        return item

    def _build_gap(self, minutes: Optional[int], name: Optional[str]):
        if minutes is None:
            minutes = self.state.default_gap_minutes
        return make_gap(minutes) if name is None else make_gap(minutes, name)

    def remove(self, item_id: str) -> bool:
        queue = queue_ops.remove_by_id(self.queue, item_id)
        if len(queue) == len(self.queue):
            return False
        self._set_queue(queue)
        logger.info("Removed %s", item_id)
        return True

    def reorder(self, ids: Sequence[str]) -> None:
        """Reorder by id list; ids must be a permutation of the queue's ids."""
        by_id = {item.id: item for item in self.queue}
        self._set_queue(queue_ops.reorder(self.queue, [by_id[i] for i in ids]))

    def move(self, from_position: int, to_position: int) -> bool:
        """Move between 1-based positions; False when either is out of range."""
        size = len(self.queue)
        if not (1 <= from_position <= size and 1 <= to_position <= size):
            return False
        self._set_queue(queue_ops.move(self.queue, from_position - 1, to_position - 1))
        return True

    def duplicate(self, item_id: str) -> Optional[QueueItem]:
        queue = queue_ops.duplicate_into(self.queue, item_id)
        if len(queue) == len(self.queue):
            return None
        self._set_queue(queue)
        logger.info("Duplicated %s as %s", item_id, queue[-1].id)
        return queue[-1]

    def promote(self, item_id: str) -> Optional[CurrentPrint]:
        """Start a queued print now. Gaps, waits and unknown ids are refused."""
        queue, current = queue_ops.promote_to_current(self.queue, item_id, self.clock())
        if current is None:
            return None
        self._commit(dataclasses.replace(self.state, queue=queue, current_print=current))
        logger.info("Started %r, ends %s", current.item.name, current.end_time.isoformat())
        return current

    # --- current print ---

    def set_current_remaining(self, name: str, minutes: int) -> Optional[CurrentPrint]:
        """Current print that finishes ``minutes`` from now."""
        item = make_print(name, minutes)
        if item is None:
            return None
        return self._set_current(item, add_duration(self.clock(), minutes))

    def set_current_until(self, name: str, end_time: datetime) -> Optional[CurrentPrint]:
        """Current print that finishes at ``end_time`` (must be in the future)."""
        minutes = remaining_minutes(end_time, self.clock())
        item = make_print(name, minutes)
        if item is None:
            return None
        return self._set_current(item, end_time)

    def _set_current(self, item: PrintItem, end_time: datetime) -> CurrentPrint:
        current = CurrentPrint(item=item, end_time=end_time)
        self._commit(dataclasses.replace(self.state, current_print=current))
        logger.info("Current print %r, ends %s", item.name, end_time.isoformat())
        return current

    def update_end_time(self, end_time: datetime) -> bool:
        if self.current is None:
            return False
        current = dataclasses.replace(self.current, end_time=end_time)
        self._commit(dataclasses.replace(self.state, current_print=current))
        logger.info("Current print now ends %s", end_time.isoformat())
        return True

    def update_remaining(self, minutes: int) -> bool:
        if self.current is None or isinstance(minutes, bool) or minutes <= 0:
            return False
        return self.update_end_time(add_duration(self.clock(), minutes))

    def clear_current(self) -> bool:
        if self.current is None:
            return False
        self._commit(dataclasses.replace(self.state, current_print=None))
        logger.info("Cleared current print")
        return True

    # --- settings ---

    def set_default_gap(self, minutes: int) -> bool:
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            return False
        self._commit(dataclasses.replace(self.state, default_gap_minutes=minutes))
        return True

    def reset(self) -> None:
        """Clear the queue and current print; the default gap returns to the configured one."""
        self._commit(SchedulerState(default_gap_minutes=self.default_gap_minutes))
        logger.info("State reset")

    # --- read side ---

    def anchor(self) -> datetime:
        return queue_start_time(self.current, self.clock())

    def projection(self) -> Tuple[ProjectedItem, ...]:
        return project(self.anchor(), self.queue)

    def completion_time(self) -> Optional[datetime]:
        return completion_time(self.anchor(), self.queue)

    def banner(self) -> Optional[datetime]:
        return completion_banner(self.current, self.queue, self.clock())

    def remaining(self) -> Optional[str]:
        if self.current is None:
            return None
        return remaining_duration(self.current.end_time, self.clock())
