"""Tests for the publish gate: cooldown and in-flight lock."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from gitblog.exceptions import AlreadyInProgressError, CooldownActiveError
from gitblog.services.publish_gate import PublishGate

if TYPE_CHECKING:
    from tests.conftest import FakeClock


@pytest.fixture
def clock(gate_clock: FakeClock) -> FakeClock:
    return gate_clock


@pytest.fixture
def publish_gate(clock: FakeClock) -> PublishGate:
    return PublishGate(cooldown_seconds=60, stale_after_seconds=300, clock=clock)


class TestCooldown:
    def test_never_triggered_can_proceed(self, publish_gate: PublishGate) -> None:
        assert publish_gate.can_proceed()
        assert publish_gate.remaining_seconds() == 0

    def test_blocked_right_after_trigger(self, publish_gate: PublishGate) -> None:
        publish_gate.record_triggered()
        assert not publish_gate.can_proceed()
        assert publish_gate.remaining_seconds() == 60

    def test_remaining_rounds_up(self, publish_gate: PublishGate, clock: FakeClock) -> None:
        publish_gate.record_triggered()
        clock.advance(59.2)
        assert publish_gate.remaining_seconds() == 1
        assert not publish_gate.can_proceed()

    def test_remaining_never_increases(self, publish_gate: PublishGate, clock: FakeClock) -> None:
        publish_gate.record_triggered()
        previous = publish_gate.remaining_seconds()
        for _ in range(70):
            clock.advance(1)
            current = publish_gate.remaining_seconds()
            assert current <= previous
            previous = current
        assert previous == 0

    def test_proceeds_once_window_elapsed(
        self, publish_gate: PublishGate, clock: FakeClock
    ) -> None:
        publish_gate.record_triggered()
        clock.advance(60)
        assert publish_gate.can_proceed()


class TestInFlightLock:
    def test_acquire_and_release(self, publish_gate: PublishGate, clock: FakeClock) -> None:
        lease = publish_gate.try_acquire()
        assert publish_gate.is_publishing
        assert publish_gate.started_at == lease.started_at == clock.now
        publish_gate.release(lease)
        assert not publish_gate.is_publishing
        assert publish_gate.started_at is None

    def test_second_acquire_rejected(self, publish_gate: PublishGate, clock: FakeClock) -> None:
        publish_gate.try_acquire()
        clock.advance(299)
        with pytest.raises(AlreadyInProgressError):
            publish_gate.try_acquire()

    def test_stale_lock_reclaimed_with_warning(
        self,
        publish_gate: PublishGate,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        publish_gate.try_acquire()
        clock.advance(301)
        with caplog.at_level(logging.WARNING, logger="gitblog.services.publish_gate"):
            publish_gate.try_acquire()
        assert publish_gate.started_at == clock.now
        assert "stale publish lock" in caplog.text

    def test_double_release_is_noop(self, publish_gate: PublishGate) -> None:
        lease = publish_gate.try_acquire()
        publish_gate.release(lease)
        publish_gate.release(lease)
        assert not publish_gate.is_publishing

    def test_reclaimed_lease_does_not_release_new_holder(
        self, publish_gate: PublishGate, clock: FakeClock
    ) -> None:
        stale = publish_gate.admit()
        clock.advance(301)
        current = publish_gate.admit()

        publish_gate.record_triggered()
        publish_gate.release(stale)
        clock.advance(61)

        assert publish_gate.is_publishing
        assert publish_gate.started_at == current.started_at
        with pytest.raises(AlreadyInProgressError):
            publish_gate.admit()
        publish_gate.release(current)
        assert not publish_gate.is_publishing


class TestAdmit:
    def test_admit_takes_lock(self, publish_gate: PublishGate) -> None:
        publish_gate.admit()
        assert publish_gate.is_publishing

    def test_only_one_admission(self, publish_gate: PublishGate) -> None:
        publish_gate.admit()
        with pytest.raises(AlreadyInProgressError):
            publish_gate.admit()

    def test_cooldown_denial_carries_retry_after(
        self, publish_gate: PublishGate, clock: FakeClock
    ) -> None:
        publish_gate.record_triggered()
        clock.advance(15)
        with pytest.raises(CooldownActiveError) as exc_info:
            publish_gate.admit()
        assert exc_info.value.retry_after == 45
        assert "45s" in str(exc_info.value)
        assert not publish_gate.is_publishing

    def test_in_progress_reported_before_cooldown(
        self, publish_gate: PublishGate
    ) -> None:
        publish_gate.admit()
        publish_gate.record_triggered()
        with pytest.raises(AlreadyInProgressError):
            publish_gate.admit()

    def test_admit_reclaims_stale_lock(self, publish_gate: PublishGate, clock: FakeClock) -> None:
        publish_gate.admit()
        clock.advance(400)
        publish_gate.admit()
        assert publish_gate.started_at == clock.now

    def test_admit_after_release_and_cooldown(
        self, publish_gate: PublishGate, clock: FakeClock
    ) -> None:
        lease = publish_gate.admit()
        publish_gate.record_triggered()
        publish_gate.release(lease)
        clock.advance(61)
        publish_gate.admit()
        assert publish_gate.is_publishing
