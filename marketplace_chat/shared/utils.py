"""Shared date and time formatting for conversation views.

Timestamps without a zone are treated as local wall-clock time, which is what
the marketplace API sends. Month names are fixed English abbreviations so the
labels do not depend on the process locale.
"""
import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def as_aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.astimezone()


def calendar_day(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of ``ts`` in ``tz`` (local time when ``tz`` is None)."""
    return ts.astimezone(tz).date()


def short_date(day: date) -> str:
    return f"{MONTHS[day.month - 1]} {day.day}"


def long_date(day: date) -> str:
    return f"{MONTHS[day.month - 1]} {day.day}, {day.year}"


def format_relative_time(ts: Optional[datetime], now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """Return "Just now", "{n}m ago", "{n}h ago", "{n}d ago" or a short date."""
    if ts is None:
        return ""
    now = as_aware(now) if now is not None else datetime.now(timezone.utc)
    seconds = (now - as_aware(ts)).total_seconds()
    minutes = math.floor(seconds / 60)
    hours = math.floor(seconds / 3600)
    days = math.floor(seconds / 86400)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return short_date(calendar_day(ts, tz))


def date_label(ts: datetime, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> str:
    """Header for a day of messages: "Today", "Yesterday" or "Jan 5, 2024"."""
    day = calendar_day(ts, tz)
    if today is None:
        today = datetime.now(tz).date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return long_date(day)


def format_clock(ts: datetime, tz: Optional[tzinfo] = None) -> str:
    local = ts.astimezone(tz)
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{local:%I:%M} {suffix}"
