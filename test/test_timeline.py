"""Tests for the timeline projection engine."""

from datetime import datetime, timedelta

import pytest

from queue_items import CurrentPrint, GapItem, PrintItem, WaitUntilItem
from timeline import (
    completion_banner,
    completion_time,
    item_end,
    project,
    queue_start_time,
    resolve_wait_end,
)

ANCHOR = datetime(2024, 1, 1, 10, 0)


def _print(item_id: str, minutes: int) -> PrintItem:
    return PrintItem(id=item_id, name=f"Print {item_id}", duration_minutes=minutes)


def _gap(item_id: str, minutes: int) -> GapItem:
    return GapItem(id=item_id, name="Prep Time", duration_minutes=minutes)


def _wait(item_id: str, clock: str) -> WaitUntilItem:
    return WaitUntilItem(id=item_id, name="Wait Until", wait_until=clock)


@pytest.fixture
def mixed_queue():
    return (
        _print("p1", 150),
        _gap("g1", 15),
        _wait("w1", "09:00"),
        _print("p2", 45),
        _wait("w2", "12:00"),
    )


class TestWaitResolution:
    def test_rolls_to_next_day_when_time_passed(self):
        assert resolve_wait_end(ANCHOR, "09:00") == datetime(2024, 1, 2, 9, 0)

    def test_same_day_when_time_ahead(self):
        assert resolve_wait_end(ANCHOR, "14:00") == datetime(2024, 1, 1, 14, 0)

    def test_equal_time_rolls_to_next_day(self):
        assert resolve_wait_end(ANCHOR, "10:00") == datetime(2024, 1, 2, 10, 0)

    def test_seconds_are_zeroed(self):
        cursor = datetime(2024, 1, 1, 10, 0, 30, 500)
        # 10:00:00 is before 10:00:30, so it belongs to tomorrow
        assert resolve_wait_end(cursor, "10:00") == datetime(2024, 1, 2, 10, 0)
        assert resolve_wait_end(cursor, "10:01") == datetime(2024, 1, 1, 10, 1)

    def test_rolls_over_month_end(self):
        cursor = datetime(2024, 1, 31, 22, 0)
        assert resolve_wait_end(cursor, "06:00") == datetime(2024, 2, 1, 6, 0)


class TestProject:
    def test_empty_queue(self):
        assert project(ANCHOR, ()) == ()
        assert completion_time(ANCHOR, ()) is None

    def test_preserves_queue_order(self, mixed_queue):
        projected = project(ANCHOR, mixed_queue)
        assert [p.item for p in projected] == list(mixed_queue)

    def test_items_are_contiguous_and_monotonic(self, mixed_queue):
        projected = project(ANCHOR, mixed_queue)
        assert projected[0].start == ANCHOR
        for entry in projected:
            assert entry.end >= entry.start
        for before, after in zip(projected, projected[1:]):
            assert after.start == before.end

    def test_expected_timestamps(self, mixed_queue):
        ends = [p.end for p in project(ANCHOR, mixed_queue)]
        assert ends == [
            datetime(2024, 1, 1, 12, 30),
            datetime(2024, 1, 1, 12, 45),
            datetime(2024, 1, 2, 9, 0),
            datetime(2024, 1, 2, 9, 45),
            datetime(2024, 1, 2, 12, 0),
        ]
        assert completion_time(ANCHOR, mixed_queue) == datetime(2024, 1, 2, 12, 0)

    def test_single_wait_before_anchor_time_is_tomorrow(self):
        (entry,) = project(ANCHOR, [_wait("w", "07:30")])
        assert entry.start == ANCHOR
        assert entry.end == datetime(2024, 1, 2, 7, 30)

    def test_consecutive_waits_same_time_take_a_day_each(self):
        projected = project(ANCHOR, [_wait("a", "14:00"), _wait("b", "14:00")])
        assert projected[0].end == datetime(2024, 1, 1, 14, 0)
        assert projected[1].end == datetime(2024, 1, 2, 14, 0)

    def test_zero_duration_item(self):
        (entry,) = project(ANCHOR, [_gap("g", 0)])
        assert entry.start == entry.end == ANCHOR

    def test_wait_always_moves_forward(self):
        for hour in range(24):
            cursor = ANCHOR + timedelta(hours=hour, minutes=7)
            end = item_end(cursor, _wait("w", f"{hour:02d}:07"))
            assert end > cursor

    def test_reprojection_is_idempotent(self, mixed_queue):
        first = project(ANCHOR, mixed_queue)
        second = project(ANCHOR, list(mixed_queue))
        assert first == second

    def test_does_not_mutate_input(self, mixed_queue):
        queue = list(mixed_queue)
        project(ANCHOR, queue)
        assert queue == list(mixed_queue)

    def test_unknown_item_type_raises(self):
        with pytest.raises(ValueError):
            item_end(ANCHOR, object())  # type: ignore[arg-type]


class TestAnchorAndBanner:
    def test_anchor_is_current_end_time(self):
        current = CurrentPrint(item=_print("c", 60), end_time=datetime(2024, 1, 1, 11, 0))
        assert queue_start_time(current, ANCHOR) == datetime(2024, 1, 1, 11, 0)

    def test_anchor_falls_back_to_now(self):
        assert queue_start_time(None, ANCHOR) == ANCHOR

    def test_no_banner_without_current_or_queue(self):
        assert completion_banner(None, (), ANCHOR) is None

    def test_banner_falls_back_to_current_end_when_queue_empty(self):
        current = CurrentPrint(item=_print("c", 60), end_time=datetime(2024, 1, 1, 11, 0))
        assert completion_banner(current, (), ANCHOR) == datetime(2024, 1, 1, 11, 0)

    def test_banner_projects_queue_after_current(self):
        current = CurrentPrint(item=_print("c", 60), end_time=datetime(2024, 1, 1, 11, 0))
        assert completion_banner(current, [_print("p", 30)], ANCHOR) == datetime(2024, 1, 1, 11, 30)

    def test_banner_projects_queue_from_now(self):
        assert completion_banner(None, [_gap("g", 20)], ANCHOR) == datetime(2024, 1, 1, 10, 20)
