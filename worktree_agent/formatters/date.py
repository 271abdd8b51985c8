"""Date and time formatting utilities."""

from datetime import datetime, timezone
from typing import Optional


def format_time(moment: Optional[datetime]) -> str:
    """
    Format a timestamp as local HH:MM:SS.

    Args:
        moment: Aware or naive datetime

    Returns:
        Formatted time string, or "--:--:--" when absent
    """
    if moment is None:
        return "--:--:--"
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%H:%M:%S")


def format_relative(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format how long ago something happened.

    Args:
        moment: The past moment
        now: Reference time (defaults to the current UTC time)

    Returns:
        Strings like "just now", "42s ago", "5m ago", "3h ago", "2d ago" or "never"
    """
    if moment is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = int((now - moment).total_seconds())
    if seconds < 2:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
