"""Tests for not-found suppression."""
from roadmap.services.failure_tracker import NotFoundTracker


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def make_tracker(clock=None) -> NotFoundTracker:
    return NotFoundTracker(threshold=3, cooldown_seconds=60, clock=clock or FakeClock())


def test_suppressed_after_threshold():
    tracker = make_tracker()
    tracker.record_not_found("x")
    tracker.record_not_found("x")
    assert not tracker.is_suppressed("x")
    tracker.record_not_found("x")
    assert tracker.is_suppressed("x")
    assert not tracker.is_suppressed("y")


def test_cooldown_expires():
    clock = FakeClock()
    tracker = make_tracker(clock)
    for _ in range(3):
        tracker.record_not_found("x")
    clock.now += 59
    assert tracker.is_suppressed("x")
    clock.now += 1
    assert not tracker.is_suppressed("x")
    assert tracker.miss_count("x") == 0


def test_success_clears_misses():
    tracker = make_tracker()
    tracker.record_not_found("x")
    tracker.record_not_found("x")
    tracker.record_success("x")
    tracker.record_not_found("x")
    assert tracker.miss_count("x") == 1
    assert not tracker.is_suppressed("x")


def test_trackers_are_independent():
    first, second = make_tracker(), make_tracker()
    for _ in range(3):
        first.record_not_found("x")
    assert first.is_suppressed("x")
    assert not second.is_suppressed("x")


def test_reset():
    tracker = make_tracker()
    for _ in range(3):
        tracker.record_not_found("x")
    tracker.reset()
    assert not tracker.is_suppressed("x")
