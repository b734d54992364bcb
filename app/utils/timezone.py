# FILE: app/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from app.core.config import settings


def lab_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """
    Returns a *naive* datetime representing lab-local time.
    All DateTime columns are naive and hold lab-local wall time.
    """
    return datetime.now(lab_tz()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
