import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from interview_analytics import create_app
from interview_analytics.extensions import db
from interview_analytics.models import QuestionAnswer


@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def qa(interview_id, accuracy, full_answer="an answer", reason="", id=None, question="q?"):
    """Transient QuestionAnswer for the pure aggregation tests."""
    return QuestionAnswer(id=id, interview_id=interview_id, question=question,
                          full_answer=full_answer, accuracy=accuracy, reason_unanswered=reason)


def item(accuracy, full_answer="an answer", reason="", question="What is a closure?"):
    """Ingestion payload for one question."""
    return {"question": question, "full_answer": full_answer,
            "accuracy": accuracy, "reason_unanswered": reason}
