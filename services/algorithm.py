"""
Adaptive Scheduling Heuristics
==============================

Pure functions behind the study planner. Nothing here touches the database:
the engine converts stored topics into TopicSnapshot objects, asks this
module for a plan, and persists the result.

Scoring:
- priority = (100 - performance) + |confidence - performance|
- low performance always raises priority
- miscalibration (over- or under-confidence) raises it independently

Session intensity (first match wins):
- performance < 40 or mismatch > 30  -> Intense
- performance > 70                   -> Passive Review
- otherwise                          -> Focused

A plan is the top MAX_PLAN_SESSIONS topics by priority, one per calendar day
starting today. The heuristic is greedy and deterministic.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Sequence

# Contract constants
SCORE_MIN = 0
SCORE_MAX = 100
MAX_PLAN_SESSIONS = 10
INTENSE_PERFORMANCE_THRESHOLD = 40  # below this -> Intense
PASSIVE_PERFORMANCE_THRESHOLD = 70  # above this -> Passive Review
MISMATCH_THRESHOLD = 30  # calibration gap above this -> Intense

COMPLETION_XP = 100
ASSESSMENT_BASE_XP = 50


class SessionType(str, Enum):
    """Session intensity labels (values are stored verbatim)"""

    INTENSE = "Intense"
    FOCUSED = "Focused"
    PASSIVE_REVIEW = "Passive Review"


@dataclass(frozen=True)
class TopicSnapshot:
    """Topic state as seen by the scheduler at generation time"""

    topic_id: int
    name: str
    performance_score: Optional[float] = None
    confidence_level: Optional[float] = None
    subject_name: Optional[str] = None


@dataclass(frozen=True)
class PlannedSession:
    """One dated session produced by build_study_plan"""

    topic_id: int
    session_type: SessionType
    scheduled_date: date
    priority_score: float


def clamp_score(value: Optional[float]) -> float:
    """Treat missing values as 0 and clamp into [0, 100]"""
    if value is None:
        return 0
    return max(SCORE_MIN, min(SCORE_MAX, value))


def calculate_mismatch(
    performance_score: Optional[float], confidence_level: Optional[float]
) -> float:
    return abs(clamp_score(confidence_level) - clamp_score(performance_score))


def calculate_priority(
    performance_score: Optional[float], confidence_level: Optional[float]
) -> float:
    """Priority in [0, 200]; higher means more urgent"""
    performance = clamp_score(performance_score)
    mismatch = calculate_mismatch(performance_score, confidence_level)
    return (SCORE_MAX - performance) + mismatch


def classify_session_type(
    performance_score: Optional[float], confidence_level: Optional[float]
) -> SessionType:
    """Order-sensitive decision table: the Intense rule is checked first"""
    performance = clamp_score(performance_score)
    mismatch = calculate_mismatch(performance_score, confidence_level)

    if performance < INTENSE_PERFORMANCE_THRESHOLD or mismatch > MISMATCH_THRESHOLD:
        return SessionType.INTENSE
    if performance > PASSIVE_PERFORMANCE_THRESHOLD:
        return SessionType.PASSIVE_REVIEW
    return SessionType.FOCUSED


def rank_topics(topics: Sequence[TopicSnapshot]) -> List[TopicSnapshot]:
    """Sort by priority, highest first. Ties keep their source order."""
    return sorted(
        topics,
        key=lambda t: calculate_priority(t.performance_score, t.confidence_level),
        reverse=True,
    )


def build_study_plan(
    topics: Sequence[TopicSnapshot],
    start_date: date,
    max_sessions: int = MAX_PLAN_SESSIONS,
) -> List[PlannedSession]:
    """
    Turn topic state into a dated sequence of sessions.

    Selection index i is scheduled on start_date + i days, so every date is
    used exactly once with no gaps.
    """
    ranked = rank_topics(topics)
    selected = ranked[: min(len(ranked), max_sessions)]

    plan = []
    for index, topic in enumerate(selected):
        plan.append(
            PlannedSession(
                topic_id=topic.topic_id,
                session_type=classify_session_type(
                    topic.performance_score, topic.confidence_level
                ),
                scheduled_date=start_date + timedelta(days=index),
                priority_score=calculate_priority(
                    topic.performance_score, topic.confidence_level
                ),
            )
        )
    return plan


def calculate_assessment_xp(score: int) -> int:
    """50 + floor(score / 2), giving 50..100 for a valid score"""
    return ASSESSMENT_BASE_XP + math.floor(score / 2)
