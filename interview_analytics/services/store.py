# interview_analytics/services/store.py
"""Record store adapter over the Flask-SQLAlchemy session.

Connectivity failures from the driver surface as StoreUnavailable so the
recompute scheduler can retry them; everything else propagates unchanged.
"""
from contextlib import contextmanager
from datetime import timedelta
from functools import wraps

from sqlalchemy.exc import OperationalError, InterfaceError

from ..extensions import db
from ..models.interview import Interview, STATE_CLEAN
from ..models.question_answer import QuestionAnswer
from ..models.analytics import InterviewAnalytics, GlobalAnalytics, GLOBAL_ANALYTICS_ID
from ..utils.timestamps import day_start
from .errors import NotFound, StoreUnavailable

# columns copied onto an existing snapshot row when it is rewritten
_INTERVIEW_SNAPSHOT_FIELDS = (
    'total_questions', 'answered_questions', 'unanswered_questions',
    'answered_percentage', 'unanswered_percentage',
    'average_accuracy', 'average_answered_accuracy',
    'high_confidence_questions', 'medium_confidence_questions', 'low_confidence_questions',
    'questions_with_reason', 'accuracy_sum', 'answered_accuracy_sum', 'updated_at',
)
_GLOBAL_SNAPSHOT_FIELDS = (
    'total_interviews', 'total_questions', 'total_answered', 'total_unanswered',
    'global_answered_percent', 'global_average_accuracy', 'global_answered_accuracy',
    'best_interview_id', 'best_interview_score', 'worst_interview_id', 'worst_interview_score',
    'last_updated', 'published_seq',
)


@contextmanager
def store_errors():
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        db.session.rollback()
        raise StoreUnavailable(str(e.orig or e)) from e


def _translated(fn):
    @wraps(fn)
    def wrapped(*args, **kwargs):
        with store_errors():
            return fn(*args, **kwargs)
    return wrapped


@_translated
def get_interview(interview_id: int) -> Interview:
    interview = db.session.get(Interview, interview_id)
    if interview is None:
        raise NotFound(f"interview {interview_id} not found")
    return interview


@_translated
def get_question_answer(qa_id: int) -> QuestionAnswer:
    qa = db.session.get(QuestionAnswer, qa_id)
    if qa is None:
        raise NotFound(f"question_answer {qa_id} not found")
    return qa


@_translated
def get_question_answers(interview_id: int):
    return (QuestionAnswer.query
            .filter_by(interview_id=interview_id)
            .order_by(QuestionAnswer.id.asc())
            .all())


@_translated
def get_all_interview_ids():
    rows = db.session.query(Interview.id).order_by(Interview.id.asc()).all()
    return [r[0] for r in rows]


@_translated
def get_unclean_interview_ids():
    rows = (db.session.query(Interview.id)
            .filter(Interview.analytics_state != STATE_CLEAN)
            .order_by(Interview.id.asc())
            .all())
    return [r[0] for r in rows]


def iter_question_answers(page_size: int = 500):
    """Yield every QuestionAnswer ordered by id, one keyset page at a time."""
    last_id = 0
    while True:
        with store_errors():
            page = (QuestionAnswer.query
                    .filter(QuestionAnswer.id > last_id)
                    .order_by(QuestionAnswer.id.asc())
                    .limit(page_size)
                    .all())
        if not page:
            return
        yield from page
        last_id = page[-1].id
        if len(page) < page_size:
            return


def put_interview_analytics(snapshot: InterviewAnalytics) -> InterviewAnalytics:
    """Insert or overwrite the snapshot for ``snapshot.interview_id``.

    Adds to the session without committing: the scheduler commits it together
    with the interview's state change.
    """
    with store_errors():
        row = InterviewAnalytics.query.filter_by(interview_id=snapshot.interview_id).first()
        if row is None:
            db.session.add(snapshot)
            return snapshot
        for field in _INTERVIEW_SNAPSHOT_FIELDS:
            setattr(row, field, getattr(snapshot, field))
        return row


def put_global_analytics(snapshot: GlobalAnalytics) -> GlobalAnalytics:
    with store_errors():
        row = db.session.get(GlobalAnalytics, GLOBAL_ANALYTICS_ID)
        if row is None:
            snapshot.id = GLOBAL_ANALYTICS_ID
            db.session.add(snapshot)
            return snapshot
        for field in _GLOBAL_SNAPSHOT_FIELDS:
            setattr(row, field, getattr(snapshot, field))
        return row


def mark_global_dirty():
    """Record that the published global snapshot no longer reflects the
    store. Joins the caller's transaction; no-op before the first publish."""
    with store_errors():
        (GlobalAnalytics.query.filter_by(id=GLOBAL_ANALYTICS_ID)
         .update({GlobalAnalytics.change_seq: GlobalAnalytics.change_seq + 1},
                 synchronize_session=False))


@_translated
def get_global_change_seq() -> int:
    row = (db.session.query(GlobalAnalytics.change_seq)
           .filter(GlobalAnalytics.id == GLOBAL_ANALYTICS_ID)
           .first())
    return row[0] if row else 0


@_translated
def get_interview_analytics(interview_id: int) -> InterviewAnalytics:
    row = InterviewAnalytics.query.filter_by(interview_id=interview_id).first()
    if row is None:
        raise NotFound(f"no analytics for interview {interview_id}")
    return row


@_translated
def get_all_interview_analytics():
    return InterviewAnalytics.query.order_by(InterviewAnalytics.interview_id.asc()).all()


@_translated
def get_global_analytics() -> GlobalAnalytics:
    row = db.session.get(GlobalAnalytics, GLOBAL_ANALYTICS_ID)
    if row is None:
        raise NotFound("global analytics not computed yet")
    return row


@_translated
def list_interview_analytics(date_from=None, date_to=None):
    """Snapshots joined with their interviews, filtered on the interview's
    creation date (inclusive days), newest first."""
    query = (db.session.query(InterviewAnalytics, Interview)
             .join(Interview, Interview.id == InterviewAnalytics.interview_id))
    if date_from:
        query = query.filter(Interview.created_at >= day_start(date_from))
    if date_to:
        query = query.filter(Interview.created_at < day_start(date_to + timedelta(days=1)))
    return query.order_by(Interview.created_at.desc(), Interview.id.desc()).all()
