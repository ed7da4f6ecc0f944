"""Tests for the provider health tracker."""

import threading

from imagerelay.services.health_tracker import ProviderHealthTracker


def test_record_failure_increments_and_stamps(health, clock):
    record = health.record_failure("p1")

    assert record.consecutive_errors == 1
    assert record.last_used_at == clock.now
    assert record.disabled_until is None


def test_third_failure_disables_for_cooldown(health, clock):
    health.record_failure("p1")
    health.record_failure("p1")
    record = health.record_failure("p1")

    assert record.consecutive_errors == 3
    assert record.disabled_until == clock.now + 60
    assert health.is_available("p1") is False


def test_disabled_for_exactly_sixty_seconds(health, clock):
    for _ in range(3):
        health.record_failure("p1")

    clock.advance(59.999)
    assert health.is_available("p1") is False

    clock.advance(0.001)
    assert health.is_available("p1") is True


def test_half_open_provider_trips_again_on_next_failure(health, clock):
    for _ in range(3):
        health.record_failure("p1")
    clock.advance(60)

    assert health.get("p1").consecutive_errors == 2

    record = health.record_failure("p1")
    assert record.consecutive_errors == 3
    assert health.is_available("p1") is False


def test_record_success_clears_state(health, clock):
    for _ in range(3):
        health.record_failure("p1")
    clock.advance(5)

    record = health.record_success("p1")

    assert record.consecutive_errors == 0
    assert record.disabled_until is None
    assert record.last_used_at == clock.now
    assert health.is_available("p1") is True


def test_reset_makes_provider_eligible_immediately(health, clock):
    for _ in range(3):
        health.record_failure("p1")
    last_used = health.get("p1").last_used_at

    health.reset("p1")

    record = health.get("p1")
    assert health.is_available("p1") is True
    assert record.consecutive_errors == 0
    assert record.last_used_at == last_used


def test_reset_unknown_provider_is_noop(health):
    health.reset("missing")
    assert health.snapshot() == {}


def test_reset_all(health):
    for pid in ("a", "b"):
        for _ in range(3):
            health.record_failure(pid)

    health.reset_all()

    assert all(record.consecutive_errors == 0 for record in health.snapshot().values())


def test_sweep_forgives_after_thirty_minutes(health, clock):
    health.record_failure("p1")
    health.record_failure("p2")
    clock.advance(20 * 60)
    health.record_failure("p2")
    clock.advance(10 * 60 + 1)

    forgiven = health.sweep_expired()

    assert forgiven == ["p1"]
    assert health.get("p1").consecutive_errors == 0
    assert health.get("p2").consecutive_errors == 2


def test_sweep_leaves_cooling_down_provider_alone(health, clock):
    for _ in range(3):
        health.record_failure("p1")
    clock.advance(30)

    assert health.sweep_expired() == []
    assert health.is_available("p1") is False


def test_unknown_provider_is_available(health):
    assert health.is_available("never-seen") is True
    assert health.get("never-seen").consecutive_errors == 0


def test_concurrent_failures_are_not_lost():
    tracker = ProviderHealthTracker(failure_threshold=10_000)

    def hammer():
        for _ in range(500):
            tracker.record_failure("shared")

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tracker.get("shared").consecutive_errors == 4000
