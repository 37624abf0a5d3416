# chronovault/clock.py
"""
Unlock state is always computed from "now" at read time. Nothing here caches.
"""
import time
from typing import Optional

from .schemas import TimeRemaining

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


def now_ms() -> int:
    return int(time.time() * 1000)


def is_unlocked(unlock_time_s: int, now: Optional[int] = None) -> bool:
    if now is None:
        now = now_ms()
    return unlock_time_s * MS_PER_SECOND <= now


def remaining(unlock_time_s: int, now: Optional[int] = None) -> Optional[TimeRemaining]:
    """
    Break the time left until unlock into days/hours/minutes/seconds.
    Returns None once the seal is unlocked.
    """
    if now is None:
        now = now_ms()
    diff = unlock_time_s * MS_PER_SECOND - now
    if diff <= 0:
        return None

    days, diff = divmod(diff, MS_PER_DAY)
    hours, diff = divmod(diff, MS_PER_HOUR)
    minutes, diff = divmod(diff, MS_PER_MINUTE)
    seconds = diff // MS_PER_SECOND
    return TimeRemaining(days=days, hours=hours, minutes=minutes, seconds=seconds)


def describe_remaining(unlock_time_s: int, now: Optional[int] = None) -> str:
    left = remaining(unlock_time_s, now)
    if left is None:
        return "Unlocked"
    if left.days > 0:
        return f"{left.days} day{'s' if left.days != 1 else ''} until unlock"
    if left.hours > 0:
        return f"{left.hours} hour{'s' if left.hours != 1 else ''} until unlock"
    return f"{left.minutes} minute{'s' if left.minutes != 1 else ''} until unlock"
