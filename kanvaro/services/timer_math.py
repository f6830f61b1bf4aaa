"""Pure duration arithmetic for active timers.

All datetimes are naive UTC, matching what the database returns.
"""

import math
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def calculate_current_duration(
    start_time: datetime,
    total_paused_minutes: float = 0,
    now: Optional[datetime] = None,
) -> float:
    """Minutes worked so far: elapsed wall time minus paused time, never negative."""
    reference = now or utcnow()
    return max(0.0, minutes_between(start_time, reference) - (total_paused_minutes or 0))


def timer_duration(timer, now: Optional[datetime] = None) -> float:
    """Duration of a timer row; a paused timer is frozen at ``paused_at``."""
    reference = timer.paused_at or now or utcnow()
    return calculate_current_duration(timer.start_time, timer.total_paused_duration, reference)


def pause_minutes(paused_at: datetime, now: Optional[datetime] = None) -> float:
    return max(0.0, minutes_between(paused_at, now or utcnow()))


def apply_rounding_rules(
    duration: float, enabled: bool, increment: int = 15, round_up: bool = True
) -> int:
    """Round a duration in minutes to the configured increment."""
    if not enabled or not increment or increment <= 0:
        return int(round(duration))
    if round_up:
        return int(math.ceil(duration / increment) * increment)
    return int(math.floor(duration / increment) * increment)


def format_duration(minutes: float) -> str:
    whole = int(minutes)
    hours, mins = divmod(whole, 60)
    return f"{hours}h {mins}m"
