"""Admission control for publishing: global cooldown plus an in-flight lock."""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING

from gitblog.exceptions import AlreadyInProgressError, CooldownActiveError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class PublishLease:
    """Proof of holding the in-flight lock, handed back to ``release``."""

    __slots__ = ("started_at",)

    def __init__(self, started_at: float) -> None:
        self.started_at = started_at


class PublishGate:
    """Guard that lets at most one publish run at a time, and not too often.

    One instance is created at startup and shared by everything that
    publishes. State is in memory and is lost on restart.

    Thread-safety: safe under asyncio's single-threaded cooperative model.
    ``admit`` and ``try_acquire`` read and mutate state with no await point
    in between, so two coroutines can never both observe "not publishing".
    Do NOT use from multiple OS threads without external synchronization.
    """

    def __init__(
        self,
        cooldown_seconds: float = 60.0,
        stale_after_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._last_trigger: float | None = None
        self._lease: PublishLease | None = None

    @property
    def is_publishing(self) -> bool:
        return self._lease is not None

    @property
    def started_at(self) -> float | None:
        """Clock reading when the current holder acquired the lock."""
        return self._lease.started_at if self._lease is not None else None

    def can_proceed(self) -> bool:
        """Return True when the cooldown window has elapsed."""
        return self.remaining_seconds() == 0

    def remaining_seconds(self) -> int:
        """Whole seconds left in the cooldown window, rounded up."""
        if self._last_trigger is None:
            return 0
        remaining = self._last_trigger + self.cooldown_seconds - self._clock()
        return max(0, math.ceil(remaining))

    def record_triggered(self) -> None:
        self._last_trigger = self._clock()

    def _held_for(self) -> float | None:
        if self._lease is None:
            return None
        return self._clock() - self._lease.started_at

    def try_acquire(self) -> PublishLease:
        """Take the in-flight lock and return the lease that releases it.

        Raises AlreadyInProgressError while another holder is active. A holder
        older than ``stale_after_seconds`` is presumed dead and its lock is
        reclaimed; its lease no longer releases anything.
        """
        held_for = self._held_for()
        if held_for is not None:
            if held_for <= self.stale_after_seconds:
                raise AlreadyInProgressError
            logger.warning(
                "Reclaiming stale publish lock held for %.0fs (limit %.0fs)",
                held_for,
                self.stale_after_seconds,
            )
        self._lease = PublishLease(self._clock())
        return self._lease

    def release(self, lease: PublishLease) -> None:
        """Drop the lock if ``lease`` still holds it."""
        if self._lease is not lease:
            logger.warning("Ignoring release of a publish lock that was reclaimed")
            return
        self._lease = None

    def admit(self) -> PublishLease:
        """Check both guards and take the lock in one step.

        The in-flight check comes first so a caller racing a running publish
        is told it is in progress rather than cooling down. Raises
        AlreadyInProgressError or CooldownActiveError; on return the caller
        holds the lock and must pass the lease to ``release``.
        """
        held_for = self._held_for()
        if held_for is not None and held_for <= self.stale_after_seconds:
            raise AlreadyInProgressError
        remaining = self.remaining_seconds()
        if remaining > 0:
            raise CooldownActiveError(remaining)
        return self.try_acquire()
