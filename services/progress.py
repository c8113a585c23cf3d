"""
Read-side views over sessions and the experience ledger
"""

import math
from datetime import date, timedelta
from typing import Dict, List, Optional

import pytz

from db import db
from models import StudySession, Subject, Topic, XpLog
from services.engine import require_user
from services.store import StudyStore
from utils.datetime_utils import day_bounds, ensure_timezone_aware, get_today

MOTIVATIONAL_QUOTES = [
    "Success is the sum of small efforts repeated day in and day out.",
    "The expert in anything was once a beginner.",
    "Don't watch the clock; do what it does. Keep going.",
    "Your limitation is only your imagination.",
    "The secret of getting ahead is getting started.",
    "Study while others are sleeping; work while others are loafing.",
]


def quote_of_the_day(today: Optional[date] = None) -> str:
    """Same quote all day, rotating daily"""
    today = today or get_today()
    return MOTIVATIONAL_QUOTES[today.toordinal() % len(MOTIVATIONAL_QUOTES)]


def ledger_total(user_id: str) -> int:
    """Sum of every ledger entry for the user (the source of truth for xp)"""
    return (
        db.session.query(db.func.coalesce(db.func.sum(XpLog.amount), 0))
        .filter(XpLog.user_id == user_id)
        .scalar()
    )


def completion_rate(user_id: str) -> int:
    """Percentage of the user's sessions that are completed, rounded"""
    require_user(user_id)
    base = (
        db.session.query(StudySession)
        .join(Topic)
        .join(Subject)
        .filter(Subject.user_id == user_id)
    )
    total = base.count()
    if total == 0:
        return 0
    completed = base.filter(StudySession.completed.is_(True)).count()
    # Half up, so 12.5 shows as 13
    return math.floor(completed * 100 / total + 0.5)


def daily_xp(user_id: str, days: int = 5, today: Optional[date] = None) -> List[Dict]:
    """XP earned per local calendar day, oldest first"""
    require_user(user_id)
    today = today or get_today()
    first_day = today - timedelta(days=days - 1)
    window_start, _ = day_bounds(first_day)
    _, window_end = day_bounds(today)

    # Stored timestamps are UTC
    logs = (
        XpLog.query.filter(
            XpLog.user_id == user_id,
            XpLog.created_at >= window_start.astimezone(pytz.utc),
            XpLog.created_at < window_end.astimezone(pytz.utc),
        )
        .with_entities(XpLog.amount, XpLog.created_at)
        .all()
    )

    totals = {first_day + timedelta(days=i): 0 for i in range(days)}
    for amount, created_at in logs:
        local_day = ensure_timezone_aware(created_at).date()
        if local_day in totals:
            totals[local_day] += amount

    return [{"date": day.isoformat(), "xp": xp} for day, xp in totals.items()]


def upcoming_sessions(
    user_id: str, limit: int = 5, today: Optional[date] = None
) -> List[Dict]:
    """Pending sessions from today onward"""
    require_user(user_id)
    today = today or get_today()
    sessions = (
        StudySession.query.join(Topic)
        .join(Subject)
        .filter(
            Subject.user_id == user_id,
            StudySession.completed.is_(False),
            StudySession.scheduled_date >= today,
        )
        .order_by(StudySession.scheduled_date.asc(), StudySession.id.asc())
        .limit(limit)
        .all()
    )
    return [s.to_dict() for s in sessions]


def get_progress(user_id: str, today: Optional[date] = None) -> Dict:
    store = StudyStore()
    return {
        "completion_rate": completion_rate(user_id),
        "daily_xp": daily_xp(user_id, today=today),
        "total_xp": store.profile_or_default(user_id).xp or 0,
        "ledger_total": ledger_total(user_id),
    }


def get_home(user_id: str, today: Optional[date] = None) -> Dict:
    today = today or get_today()
    return {
        "quote": quote_of_the_day(today),
        "upcoming_sessions": upcoming_sessions(user_id, today=today),
    }
