"""Tests for request epochs."""

from sci_learner.guard import RequestGuard


def test_starts_at_zero():
    guard = RequestGuard()
    assert guard.epoch == 0
    assert guard.is_current(guard.capture())


def test_advance_makes_captured_epoch_stale():
    guard = RequestGuard()
    captured = guard.capture()
    assert guard.advance() == 1
    assert guard.is_stale(captured)
    assert not guard.is_current(captured)
    assert guard.is_current(guard.capture())


def test_epochs_are_monotonic():
    guard = RequestGuard()
    seen = [guard.advance() for _ in range(5)]
    assert seen == sorted(set(seen))
