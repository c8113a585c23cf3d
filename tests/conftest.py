import pytest

from app import create_app
from config import TestConfig
from db import db
from models import Subject, Topic


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"

    app = create_app(_Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_topics(app):
    """Seed one subject with topics given as (performance, confidence) pairs"""

    def _make(user_id, states, subject_name="Mathematics"):
        subject = Subject(user_id=user_id, name=subject_name)
        for index, (performance, confidence) in enumerate(states):
            subject.topics.append(
                Topic(
                    name=f"{subject_name} topic {index}",
                    performance_score=performance,
                    confidence_level=confidence,
                )
            )
        db.session.add(subject)
        db.session.commit()
        return [topic.id for topic in subject.topics]

    return _make
