# interview_analytics/services/interviews.py
"""Ingestion and editing of interviews and their question/answer records.

Every write marks the owning interview dirty in the same transaction and then
hands over to the recompute scheduler.
"""
from ..extensions import db
from ..models.interview import Interview, STATE_DIRTY
from ..models.question_answer import QuestionAnswer
from ..models.call import Call
from ..jobs.recompute import mark_dirty, recompute_interview, recompute_global
from . import store
from .confidence import checked_accuracy
from .errors import InvalidInput

QA_FIELDS = ('question', 'full_answer', 'accuracy', 'reason_unanswered')


def _text(value, name, index):
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidInput(f"{name} at index {index} must be a string")
    return value


def validate_question(item: dict, index: int = 0) -> dict:
    if not isinstance(item, dict):
        raise InvalidInput(f"question at index {index} must be an object")
    question = _text(item.get('question'), 'question', index).strip()
    if not question:
        raise InvalidInput(f"question at index {index} cannot be empty")
    try:
        accuracy = checked_accuracy(item.get('accuracy'))
    except InvalidInput as e:
        raise InvalidInput(f"question at index {index}: {e}") from e
    return {
        'question': question,
        'full_answer': _text(item.get('full_answer'), 'full_answer', index),
        'accuracy': accuracy,
        'reason_unanswered': _text(item.get('reason_unanswered'), 'reason_unanswered', index),
    }


def save_interview(questions, transcript=None, analysis=None, recompute=True):
    """Persist a completed call and its extracted Q&A set atomically.

    Returns ``(interview, result)`` where ``result`` is the scheduler's
    RecomputeResult (None when ``recompute`` is False).
    """
    if not isinstance(questions, (list, tuple)) or not questions:
        raise InvalidInput("question answers list cannot be empty")
    items = [validate_question(q, i) for i, q in enumerate(questions)]
    if transcript is not None and (not isinstance(transcript, str) or not transcript.strip()):
        raise InvalidInput("transcript cannot be empty")

    interview = Interview(analytics_state=STATE_DIRTY, analytics_generation=1)
    interview.question_answers = [QuestionAnswer(**item) for item in items]
    if transcript is not None:
        interview.call = Call(transcript=transcript, analysis=analysis)
    with store.store_errors():
        db.session.add(interview)
        store.mark_global_dirty()
        db.session.commit()
    interview_id = interview.id

    result = recompute_interview(interview_id) if recompute else None
    return store.get_interview(interview_id), result


def add_question_answer(interview_id: int, item: dict, recompute=True):
    data = validate_question(item)
    store.get_interview(interview_id)
    qa = QuestionAnswer(interview_id=interview_id, **data)
    with store.store_errors():
        db.session.add(qa)
        mark_dirty(interview_id, commit=False)
        db.session.commit()
    result = recompute_interview(interview_id) if recompute else None
    return qa, result


def update_question_answer(qa_id: int, changes: dict, recompute=True):
    """Correct an existing record. Only the Q&A fields may change."""
    if not isinstance(changes, dict) or not changes:
        raise InvalidInput("no changes given")
    unknown = set(changes) - set(QA_FIELDS)
    if unknown:
        raise InvalidInput(f"unknown fields: {', '.join(sorted(unknown))}")
    qa = store.get_question_answer(qa_id)
    merged = {f: getattr(qa, f) for f in QA_FIELDS}
    merged.update(changes)
    data = validate_question(merged)

    interview_id = qa.interview_id
    for k, v in data.items():
        setattr(qa, k, v)
    with store.store_errors():
        mark_dirty(interview_id, commit=False)
        db.session.commit()
    result = recompute_interview(interview_id) if recompute else None
    return qa, result


def delete_question_answer(qa_id: int, recompute=True):
    qa = store.get_question_answer(qa_id)
    interview_id = qa.interview_id
    with store.store_errors():
        db.session.delete(qa)
        mark_dirty(interview_id, commit=False)
        db.session.commit()
    return recompute_interview(interview_id) if recompute else None


def delete_interview(interview_id: int, recompute=True):
    interview = store.get_interview(interview_id)
    with store.store_errors():
        db.session.delete(interview)
        store.mark_global_dirty()
        db.session.commit()
    return recompute_global() if recompute else None
