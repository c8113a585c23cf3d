"""
Adaptive scheduling engine: plan generation and the feedback handlers.

Each operation validates first, then performs all of its writes inside one
database transaction under a per-user lock. A failure rolls everything back,
so the xp aggregate, the ledger, sessions and topics never drift apart.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import date
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from db import db
from errors import (
    AlreadyCompleted,
    InvalidScore,
    NotAuthenticated,
    NoTopicsConfigured,
    PersistenceFailure,
    StudyPlannerError,
)
from models import Assessment, StudySession, XpLog
from services.algorithm import (
    COMPLETION_XP,
    SCORE_MAX,
    SCORE_MIN,
    build_study_plan,
    calculate_assessment_xp,
)
from services.store import StudyStore
from utils.datetime_utils import get_today, now_utc

logger = logging.getLogger(__name__)

COMPLETION_SOURCE = "Task Completion"
ASSESSMENT_SOURCE = "Assessment"

_locks_guard = threading.Lock()
# Entries disappear once no transaction holds the lock
_user_locks = weakref.WeakValueDictionary()


def user_lock(user_id: str) -> threading.Lock:
    """Process-local lock serializing writes for one user"""
    with _locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = _user_locks[user_id] = threading.Lock()
        return lock


def require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise NotAuthenticated()
    return user_id


@contextmanager
def transaction(user_id: str, action: str):
    """Serialize on the user's lock and commit once, or roll back everything"""
    with user_lock(user_id):
        try:
            yield
            db.session.commit()
        except StudyPlannerError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("%s failed for user %s", action, user_id)
            raise PersistenceFailure() from e
        except Exception:
            db.session.rollback()
            raise


def award_xp(store: StudyStore, user_id: str, amount: int, source: str) -> int:
    """
    Append a ledger entry and bump the profile aggregate by the same amount.

    Must run inside the caller's transaction. Returns the new total.
    """
    store.append_xp_log(XpLog(user_id=user_id, amount=amount, source=source))
    return store.increment_profile_xp(user_id, amount)


def generate_plan(
    user_id: str, today: Optional[date] = None, store: StudyStore = None
) -> Dict:
    """
    Replace the user's pending sessions with a fresh plan.

    Topics are ranked by priority, the top ten get one session per day
    starting today. Completed sessions are left alone.
    """
    require_user(user_id)
    store = store or StudyStore()
    start_date = today or get_today()

    with transaction(user_id, "Plan generation"):
        topics = store.list_topics_for_user(user_id)
        if not topics:
            raise NoTopicsConfigured()

        snapshots = [topic.to_snapshot() for topic in topics]
        plan = build_study_plan(snapshots, start_date)

        replaced = store.delete_pending_sessions(user_id)
        sessions = store.insert_sessions(
            StudySession(
                topic_id=planned.topic_id,
                session_type=planned.session_type.value,
                scheduled_date=planned.scheduled_date,
                completed=False,
            )
            for planned in plan
        )

        for topic in topics:
            topic.priority_score = topic.current_priority()

    logger.info(
        "Generated %d sessions for user %s (%d topics, replaced %d pending)",
        len(sessions),
        user_id,
        len(topics),
        replaced,
    )
    return {
        "success": True,
        "sessions": [s.to_dict() for s in sessions],
        "replaced_count": replaced,
    }


def complete_session(user_id: str, session_id: int, store: StudyStore = None) -> Dict:
    """Mark a pending session done and award the fixed completion reward"""
    require_user(user_id)
    store = store or StudyStore()

    with transaction(user_id, "Session completion"):
        study_session = store.get_session_for_user(user_id, session_id)
        if study_session.completed:
            raise AlreadyCompleted()
        if not store.mark_session_completed(study_session.id):
            raise AlreadyCompleted()

        study_session.topic.last_studied = now_utc()
        total_xp = award_xp(store, user_id, COMPLETION_XP, COMPLETION_SOURCE)

    logger.info(
        "User %s completed session %s (+%d xp, total %d)",
        user_id,
        session_id,
        COMPLETION_XP,
        total_xp,
    )
    return {
        "success": True,
        "session": study_session.to_dict(),
        "xp_awarded": COMPLETION_XP,
        "total_xp": total_xp,
    }


def validate_score(value, field: str) -> int:
    """Whole number in [0, 100]; bools and fractional values are rejected"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidScore(f"{field} must be a number between 0 and 100")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidScore(f"{field} must be a whole number")
        value = int(value)
    if value < SCORE_MIN or value > SCORE_MAX:
        raise InvalidScore(f"{field} must be between 0 and 100")
    return value


def submit_assessment(
    user_id: str,
    topic_id: int,
    score,
    confidence_level,
    store: StudyStore = None,
) -> Dict:
    """
    Record a self-assessment and feed it back into the topic.

    The submitted score and confidence replace the topic's previous state
    outright; the next plan run schedules from these values.
    """
    require_user(user_id)
    score = validate_score(score, "score")
    confidence_level = validate_score(confidence_level, "confidence_level")
    store = store or StudyStore()
    xp_earned = calculate_assessment_xp(score)

    with transaction(user_id, "Assessment"):
        topic = store.get_topic_for_user(user_id, topic_id)
        assessment = store.insert_assessment(
            Assessment(
                topic_id=topic.id,
                user_id=user_id,
                score=score,
                confidence_level=confidence_level,
                xp_earned=xp_earned,
            )
        )
        total_xp = award_xp(store, user_id, xp_earned, ASSESSMENT_SOURCE)
        store.update_topic(
            topic.id, performance_score=score, confidence_level=confidence_level
        )

    logger.info(
        "User %s assessed topic %s: score=%d confidence=%d (+%d xp)",
        user_id,
        topic_id,
        score,
        confidence_level,
        xp_earned,
    )
    return {
        "success": True,
        "assessment": assessment.to_dict(),
        "topic": topic.to_dict(),
        "xp_awarded": xp_earned,
        "total_xp": total_xp,
    }
