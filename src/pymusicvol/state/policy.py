"""Pure decisions shared by the gate and the state store."""

from __future__ import annotations

MIN_VOLUME = 0
MAX_VOLUME = 100


def clamp_volume(value: int | float) -> int:
    """Round and clamp *value* into ``0..100``."""
    return max(MIN_VOLUME, min(MAX_VOLUME, round(value)))


def should_absorb_reading(
    *,
    current: int | None,
    polled: int,
    write_pending: bool,
    write_started_since_read: bool = False,
) -> bool:
    """Decide whether a reconciliation read may replace the local volume.

    Policy:
    - Never while a write is in flight or queued: the local value is an
      optimistic update the backend has not caught up with yet.
    - Never if a write was requested after the read was issued; the reading
      predates that write.
    - Otherwise only when the reading actually differs.
    """
    if write_pending or write_started_since_read:
        return False
    return polled != current
