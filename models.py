"""
Database Models for the Adaptive Study Planner
==============================================

Tables:
- subjects / topics: what the user studies, with mutable performance and
  confidence state on each topic
- study_sessions: dated, typed sessions produced by the plan generator
- assessments: immutable self-reports that overwrite topic state
- xp_logs: append-only experience ledger
- user_profiles: per-user settings plus the xp aggregate kept in step with
  the ledger

Ownership runs user -> subject -> topic. Sessions and assessments only
reference a topic; deleting a topic removes them with it.
"""

from datetime import datetime, timezone
from typing import Dict

from db import db
from services.algorithm import TopicSnapshot, calculate_priority
from utils.datetime_utils import ensure_timezone_aware


def _utcnow():
    return datetime.now(timezone.utc)


def _isoformat(dt):
    aware = ensure_timezone_aware(dt)
    return aware.isoformat() if aware else None


class Subject(db.Model):
    """A subject owned by exactly one user"""

    __tablename__ = "subjects"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    topics = db.relationship(
        "Topic",
        backref="subject",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Topic.id",
    )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "topics": [{"id": t.id, "name": t.name} for t in self.topics],
        }


class Topic(db.Model):
    """
    Topic with the performance/confidence state the scheduler reads
    """

    __tablename__ = "topics"

    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(
        db.Integer, db.ForeignKey("subjects.id"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)

    # Latest self-report, 0-100 (missing counts as 0)
    performance_score = db.Column(db.Integer, nullable=True, default=0)
    confidence_level = db.Column(db.Integer, nullable=True, default=0)

    # Cached output of the priority scorer, refreshed on every plan run
    priority_score = db.Column(db.Float, nullable=True)
    last_studied = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    sessions = db.relationship(
        "StudySession", backref="topic", lazy=True, cascade="all, delete-orphan"
    )
    assessments = db.relationship(
        "Assessment", backref="topic", lazy=True, cascade="all, delete-orphan"
    )

    def to_snapshot(self) -> TopicSnapshot:
        """Convert to the scheduler's immutable view of this topic"""
        return TopicSnapshot(
            topic_id=self.id,
            name=self.name,
            performance_score=self.performance_score,
            confidence_level=self.confidence_level,
            subject_name=self.subject.name if self.subject else None,
        )

    def current_priority(self) -> float:
        return calculate_priority(self.performance_score, self.confidence_level)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "subject_id": self.subject_id,
            "subject": self.subject.name if self.subject else None,
            "performance_score": self.performance_score or 0,
            "confidence_level": self.confidence_level or 0,
            "priority_score": self.priority_score,
            "last_studied": _isoformat(self.last_studied),
        }


class StudySession(db.Model):
    """
    A scheduled study session for one topic on one calendar day
    """

    __tablename__ = "study_sessions"

    id = db.Column(db.Integer, primary_key=True)
    topic_id = db.Column(
        db.Integer, db.ForeignKey("topics.id"), nullable=False, index=True
    )
    session_type = db.Column(db.String(20), nullable=False)
    scheduled_date = db.Column(db.Date, nullable=False, index=True)
    completed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self) -> Dict:
        topic = self.topic
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "topic": topic.name if topic else None,
            "subject": topic.subject.name if topic and topic.subject else None,
            "session_type": self.session_type,
            "scheduled_date": self.scheduled_date.isoformat(),
            "completed": bool(self.completed),
            "completed_at": _isoformat(self.completed_at),
        }


class Assessment(db.Model):
    """
    Immutable self-assessment. xp_earned is frozen at creation.
    """

    __tablename__ = "assessments"

    id = db.Column(db.Integer, primary_key=True)
    topic_id = db.Column(
        db.Integer, db.ForeignKey("topics.id"), nullable=False, index=True
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    confidence_level = db.Column(db.Integer, nullable=False)
    xp_earned = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.CheckConstraint("score BETWEEN 0 AND 100", name="ck_assessment_score"),
        db.CheckConstraint(
            "confidence_level BETWEEN 0 AND 100", name="ck_assessment_confidence"
        ),
    )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "score": self.score,
            "confidence_level": self.confidence_level,
            "xp_earned": self.xp_earned,
            "created_at": _isoformat(self.created_at),
        }


class XpLog(db.Model):
    """Append-only experience ledger entry"""

    __tablename__ = "xp_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(50), nullable=False)  # "Task Completion", "Assessment"
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )


class UserProfile(db.Model):
    """
    One row per user: settings and the redundant xp aggregate
    """

    __tablename__ = "user_profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, unique=True)
    xp = db.Column(db.Integer, nullable=False, default=0)
    daily_study_hours = db.Column(db.Integer, nullable=True, default=2)
    deadline_date = db.Column(db.Date, nullable=True)
    last_visited_screen = db.Column(db.String(20), nullable=True, default="home")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "xp": self.xp or 0,
            "daily_study_hours": self.daily_study_hours,
            "deadline_date": (
                self.deadline_date.isoformat() if self.deadline_date else None
            ),
            "last_visited_screen": self.last_visited_screen or "home",
        }
