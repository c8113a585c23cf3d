"""
Subject/topic setup and profile settings.

Saving a setup replaces the user's subjects wholesale. Deleting a subject
cascades to its topics, and from there to their sessions and assessments.
"""

import logging
from typing import Dict, List, Optional

from errors import InvalidSetup
from services.engine import require_user, transaction
from services.store import StudyStore
from utils.datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)

MIN_DAILY_HOURS = 1
MAX_DAILY_HOURS = 16
SCREENS = ("home", "setup", "planner", "progress")


def _clean_name(value, kind: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidSetup(f"{kind} names must be text")
    return value.strip()


def _clean_subjects(subjects) -> List[Dict]:
    """Drop blank subject and topic names; validate the payload shape"""
    if subjects is None:
        return []
    if not isinstance(subjects, list):
        raise InvalidSetup("subjects must be a list")

    cleaned = []
    for subject in subjects:
        if not isinstance(subject, dict):
            raise InvalidSetup("each subject must be an object")
        name = _clean_name(subject.get("name"), "subject")
        if not name:
            continue
        topics = subject.get("topics") or []
        if not isinstance(topics, list):
            raise InvalidSetup(f"topics for '{name}' must be a list")
        topic_names = []
        for topic in topics:
            topic_name = topic.get("name") if isinstance(topic, dict) else topic
            topic_name = _clean_name(topic_name, "topic")
            if topic_name:
                topic_names.append(topic_name)
        cleaned.append({"name": name, "topics": topic_names})
    return cleaned


def _validate_hours(daily_study_hours) -> int:
    if isinstance(daily_study_hours, bool) or not isinstance(daily_study_hours, int):
        raise InvalidSetup("daily_study_hours must be a whole number")
    if not MIN_DAILY_HOURS <= daily_study_hours <= MAX_DAILY_HOURS:
        raise InvalidSetup(
            f"daily_study_hours must be between {MIN_DAILY_HOURS} and {MAX_DAILY_HOURS}"
        )
    return daily_study_hours


def save_setup(
    user_id: str,
    subjects,
    daily_study_hours: int = 2,
    deadline_date: Optional[str] = None,
    store: StudyStore = None,
) -> Dict:
    require_user(user_id)
    hours = _validate_hours(daily_study_hours)
    try:
        deadline = parse_iso_date(deadline_date)
    except (TypeError, ValueError):
        raise InvalidSetup("deadline_date must be a YYYY-MM-DD date")
    cleaned = _clean_subjects(subjects)
    store = store or StudyStore()

    with transaction(user_id, "Setup save"):
        profile = store.get_or_create_profile(user_id)
        profile.daily_study_hours = hours
        profile.deadline_date = deadline

        removed = store.delete_subjects_for_user(user_id)
        for subject in cleaned:
            store.add_subject(user_id, subject["name"], subject["topics"])

    logger.info(
        "User %s saved setup: %d subjects (replaced %d)",
        user_id,
        len(cleaned),
        removed,
    )
    return get_setup(user_id, store=store)


def get_setup(user_id: str, store: StudyStore = None) -> Dict:
    require_user(user_id)
    store = store or StudyStore()
    profile = store.profile_or_default(user_id)
    return {
        "daily_study_hours": profile.daily_study_hours,
        "deadline_date": (
            profile.deadline_date.isoformat() if profile.deadline_date else None
        ),
        "subjects": [s.to_dict() for s in store.list_subjects_for_user(user_id)],
    }


def get_profile(user_id: str, store: StudyStore = None) -> Dict:
    require_user(user_id)
    store = store or StudyStore()
    return store.profile_or_default(user_id).to_dict()


def record_screen(user_id: str, screen: str, store: StudyStore = None) -> Dict:
    """Remember the last screen the user visited"""
    require_user(user_id)
    if screen not in SCREENS:
        raise InvalidSetup(f"screen must be one of: {', '.join(SCREENS)}")
    store = store or StudyStore()

    with transaction(user_id, "Screen update"):
        profile = store.get_or_create_profile(user_id)
        profile.last_visited_screen = screen

    return profile.to_dict()
