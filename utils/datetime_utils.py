import pytz
from datetime import datetime, date, time, timedelta

from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "UTC"


def get_timezone():
    """Timezone configured for the running app (UTC outside an app context)"""
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("APP_TIMEZONE", DEFAULT_TIMEZONE)
    return pytz.timezone(name)


def ensure_timezone_aware(dt, target_timezone=None):
    """Ensure datetime object is timezone-aware and in the app timezone"""
    if dt is None:
        return None

    if target_timezone is None:
        target_timezone = get_timezone()

    if dt.tzinfo is not None:
        return dt.astimezone(target_timezone)
    else:
        # SQLite hands back naive values; they were stored as UTC
        return pytz.utc.localize(dt).astimezone(target_timezone)


def now_local():
    """Get current datetime in the app timezone"""
    return datetime.now(get_timezone())


def now_utc():
    return datetime.now(pytz.utc)


def get_today():
    """Get today's date in the app timezone"""
    return now_local().date()


def day_bounds(day: date):
    """Aware [start, end) datetimes covering one local calendar day"""
    tz = get_timezone()
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start, end


def parse_iso_date(value):
    """Parse a YYYY-MM-DD string; empty values become None"""
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()
