"""Decide whether a Pages build should be requested."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from gitblog.github.base import BuildRecord

# Statuses meaning a build is pending or has just produced the current site.
ACTIVE_BUILD_STATUSES = frozenset({"queued", "building", "built"})

DEFAULT_RECENCY_SECONDS = 120.0


def should_trigger(
    recent_builds: Sequence[BuildRecord],
    now: datetime,
    recency_seconds: float = DEFAULT_RECENCY_SECONDS,
) -> bool:
    """Return False when the newest build is active and started recently.

    ``recent_builds`` is newest first. A build with no timestamp is treated as
    old.
    """
    if not recent_builds:
        return True
    newest = recent_builds[0]
    if newest.status not in ACTIVE_BUILD_STATUSES or newest.created_at is None:
        return True
    age = now.timestamp() - newest.created_at.timestamp()
    return age > recency_seconds
