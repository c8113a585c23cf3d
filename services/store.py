"""
Persistence interface used by the scheduling engine.

StudyStore wraps the SQLAlchemy session. It never commits: the engine owns
the transaction boundary so that every handler's writes land together or not
at all. Missing rows raise NotFound; IntegrityError surfaces as
ConstraintViolation.
"""

from functools import wraps
from typing import Iterable, List

from sqlalchemy.exc import IntegrityError

from db import db
from errors import ConstraintViolation, NotFound
from models import Assessment, StudySession, Subject, Topic, UserProfile, XpLog
from utils.datetime_utils import now_utc


def _constraint_guard(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            raise ConstraintViolation(str(e.orig)) from e

    return wrapper


class StudyStore:
    def __init__(self, session=None):
        self.session = session or db.session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_topics_for_user(self, user_id: str) -> List[Topic]:
        """All topics across the user's subjects, in stable source order"""
        return (
            self.session.query(Topic)
            .join(Subject)
            .filter(Subject.user_id == user_id)
            .order_by(Subject.id.asc(), Topic.id.asc())
            .all()
        )

    def list_subjects_for_user(self, user_id: str) -> List[Subject]:
        return (
            self.session.query(Subject)
            .filter(Subject.user_id == user_id)
            .order_by(Subject.id.asc())
            .all()
        )

    def get_topic_for_user(self, user_id: str, topic_id: int) -> Topic:
        topic = (
            self.session.query(Topic)
            .join(Subject)
            .filter(Topic.id == topic_id, Subject.user_id == user_id)
            .first()
        )
        if topic is None:
            raise NotFound(f"Topic {topic_id} not found")
        return topic

    def get_session_for_user(self, user_id: str, session_id: int) -> StudySession:
        study_session = (
            self.session.query(StudySession)
            .join(Topic)
            .join(Subject)
            .filter(StudySession.id == session_id, Subject.user_id == user_id)
            .first()
        )
        if study_session is None:
            raise NotFound(f"Study session {session_id} not found")
        return study_session

    def list_sessions_for_user(
        self, user_id: str, pending_only: bool = False, limit: int = None
    ) -> List[StudySession]:
        query = (
            self.session.query(StudySession)
            .join(Topic)
            .join(Subject)
            .filter(Subject.user_id == user_id)
        )
        if pending_only:
            query = query.filter(StudySession.completed.is_(False))
        query = query.order_by(StudySession.scheduled_date.asc(), StudySession.id.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def profile_or_default(self, user_id: str) -> UserProfile:
        """Stored profile, or an unsaved one carrying the defaults"""
        profile = (
            self.session.query(UserProfile).filter_by(user_id=user_id).one_or_none()
        )
        if profile is None:
            profile = UserProfile(
                user_id=user_id, xp=0, daily_study_hours=2, last_visited_screen="home"
            )
        return profile

    @_constraint_guard
    def get_or_create_profile(self, user_id: str) -> UserProfile:
        profile = (
            self.session.query(UserProfile).filter_by(user_id=user_id).one_or_none()
        )
        if profile is None:
            profile = UserProfile(user_id=user_id, xp=0)
            self.session.add(profile)
            self.session.flush()
        return profile

    # ------------------------------------------------------------------
    # Writes (flushed, never committed)
    # ------------------------------------------------------------------

    def delete_pending_sessions(self, user_id: str) -> int:
        """Remove every pending session for the user's topics; history stays"""
        topic_ids = (
            self.session.query(Topic.id)
            .join(Subject)
            .filter(Subject.user_id == user_id)
            .scalar_subquery()
        )
        return (
            self.session.query(StudySession)
            .filter(
                StudySession.topic_id.in_(topic_ids),
                StudySession.completed.is_(False),
            )
            .delete(synchronize_session="fetch")
        )

    @_constraint_guard
    def insert_sessions(self, sessions: Iterable[StudySession]) -> List[StudySession]:
        sessions = list(sessions)
        self.session.add_all(sessions)
        self.session.flush()
        return sessions

    @_constraint_guard
    def update_topic(self, topic_id: int, **fields) -> Topic:
        topic = self.session.get(Topic, topic_id)
        if topic is None:
            raise NotFound(f"Topic {topic_id} not found")
        for key, value in fields.items():
            if not hasattr(topic, key):
                raise ValueError(f"Topic has no field '{key}'")
            setattr(topic, key, value)
        self.session.flush()
        return topic

    @_constraint_guard
    def insert_assessment(self, assessment: Assessment) -> Assessment:
        self.session.add(assessment)
        self.session.flush()
        return assessment

    @_constraint_guard
    def append_xp_log(self, entry: XpLog) -> XpLog:
        self.session.add(entry)
        self.session.flush()
        return entry

    @_constraint_guard
    def update_profile_xp(self, user_id: str, new_total: int) -> UserProfile:
        profile = self.get_or_create_profile(user_id)
        profile.xp = new_total
        self.session.flush()
        return profile

    def increment_profile_xp(self, user_id: str, amount: int) -> int:
        """Add to the aggregate in SQL so concurrent writers cannot lose updates"""
        self.get_or_create_profile(user_id)
        self.session.query(UserProfile).filter_by(user_id=user_id).update(
            {UserProfile.xp: UserProfile.xp + amount}, synchronize_session=False
        )
        return self.session.query(UserProfile.xp).filter_by(user_id=user_id).scalar()

    def mark_session_completed(self, session_id: int) -> bool:
        """
        Flip a pending session to completed.

        The update is conditional on completed = false, so a second caller
        racing on the same row gets False instead of a double completion.
        """
        updated = (
            self.session.query(StudySession)
            .filter(StudySession.id == session_id, StudySession.completed.is_(False))
            .update(
                {StudySession.completed: True, StudySession.completed_at: now_utc()},
                synchronize_session=False,
            )
        )
        if updated:
            return True
        if self.session.get(StudySession, session_id) is None:
            raise NotFound(f"Study session {session_id} not found")
        return False

    def delete_subjects_for_user(self, user_id: str) -> int:
        """ORM deletes so cascades reach topics, sessions and assessments"""
        subjects = self.list_subjects_for_user(user_id)
        for subject in subjects:
            self.session.delete(subject)
        self.session.flush()
        return len(subjects)

    @_constraint_guard
    def add_subject(self, user_id: str, name: str, topic_names: Iterable[str]) -> Subject:
        subject = Subject(user_id=user_id, name=name)
        for topic_name in topic_names:
            subject.topics.append(Topic(name=topic_name))
        self.session.add(subject)
        self.session.flush()
        return subject
