from datetime import date

import pytest

from db import db
from errors import ConstraintViolation, NotFound
from models import StudySession, UserProfile, XpLog
from services.store import StudyStore

USER = "learner"


def test_list_topics_spans_subjects_in_source_order(make_topics):
    maths = make_topics(USER, [(0, 0), (10, 10)], subject_name="Maths")
    physics = make_topics(USER, [(20, 20)], subject_name="Physics")
    make_topics("other", [(30, 30)])

    topics = StudyStore().list_topics_for_user(USER)

    assert [t.id for t in topics] == maths + physics


def test_update_topic_fields(make_topics):
    topic_id = make_topics(USER, [(10, 10)])[0]
    store = StudyStore()

    store.update_topic(topic_id, performance_score=55, confidence_level=45)
    db.session.commit()

    topic = store.get_topic_for_user(USER, topic_id)
    assert (topic.performance_score, topic.confidence_level) == (55, 45)


def test_update_missing_topic(app):
    with pytest.raises(NotFound):
        StudyStore().update_topic(404, performance_score=1)


def test_update_profile_xp_sets_total(app):
    store = StudyStore()

    store.update_profile_xp(USER, 250)
    db.session.commit()

    assert UserProfile.query.filter_by(user_id=USER).one().xp == 250


def test_append_log_and_increment_profile(app):
    store = StudyStore()

    store.append_xp_log(XpLog(user_id=USER, amount=100, source="Task Completion"))
    total = store.increment_profile_xp(USER, 100)
    total = store.increment_profile_xp(USER, 60)
    db.session.commit()

    assert total == 160
    assert XpLog.query.count() == 1


def test_insert_session_violating_constraint(make_topics):
    topic_id = make_topics(USER, [(10, 10)])[0]

    with pytest.raises(ConstraintViolation):
        StudyStore().insert_sessions(
            [StudySession(topic_id=topic_id, session_type=None, scheduled_date=date(2024, 3, 4))]
        )
    db.session.rollback()


def test_mark_session_completed_is_conditional(make_topics):
    topic_id = make_topics(USER, [(10, 10)])[0]
    store = StudyStore()
    (study_session,) = store.insert_sessions(
        [StudySession(topic_id=topic_id, session_type="Intense", scheduled_date=date(2024, 3, 4))]
    )
    db.session.commit()

    assert store.mark_session_completed(study_session.id) is True
    assert store.mark_session_completed(study_session.id) is False
    with pytest.raises(NotFound):
        store.mark_session_completed(9999)
