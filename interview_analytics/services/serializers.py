# interview_analytics/services/serializers.py
"""JSON shapes for the API. Timestamps leave as ISO-8601 UTC."""
from ..utils.timestamps import isoformat_utc
from .confidence import outcome_of, Answered

# camelCase request keys accepted for a question item
_QUESTION_KEYS = {
    'question': 'question',
    'fullAnswer': 'full_answer',
    'full_answer': 'full_answer',
    'accuracy': 'accuracy',
    'reasonUnanswered': 'reason_unanswered',
    'reason_unanswered': 'reason_unanswered',
}


def question_from_payload(data):
    """Map a request object onto QuestionAnswer field names. Unknown keys are
    kept as-is so validation can reject them."""
    if not isinstance(data, dict):
        return data
    return {_QUESTION_KEYS.get(k, k): v for k, v in data.items()}


def question_answer_to_dict(qa):
    outcome = outcome_of(qa)
    return {
        'id': qa.id,
        'interviewId': qa.interview_id,
        'question': qa.question,
        'fullAnswer': qa.full_answer,
        'accuracy': qa.accuracy,
        'reasonUnanswered': qa.reason_unanswered,
        'answered': isinstance(outcome, Answered),
        'createdAt': isoformat_utc(qa.created_at),
        'updatedAt': isoformat_utc(qa.updated_at),
    }


def interview_to_dict(interview, with_questions=True):
    out = {
        'id': interview.id,
        'analyticsState': interview.analytics_state,
        'analyticsError': interview.analytics_error,
        'hasTranscript': interview.call is not None,
        'createdAt': isoformat_utc(interview.created_at),
        'updatedAt': isoformat_utc(interview.updated_at),
    }
    if with_questions:
        out['questions'] = [question_answer_to_dict(qa) for qa in interview.question_answers]
    return out


def interview_analytics_to_dict(row, interview=None):
    interview = interview if interview is not None else row.interview
    return {
        'id': row.id,
        'interviewId': row.interview_id,
        'totalQuestions': row.total_questions,
        'answeredQuestions': row.answered_questions,
        'unansweredQuestions': row.unanswered_questions,
        'answeredPercentage': row.answered_percentage,
        'unansweredPercentage': row.unanswered_percentage,
        'averageAccuracy': row.average_accuracy,
        'averageAnsweredAccuracy': row.average_answered_accuracy,
        'highConfidenceQuestions': row.high_confidence_questions,
        'mediumConfidenceQuestions': row.medium_confidence_questions,
        'lowConfidenceQuestions': row.low_confidence_questions,
        'questionsWithReason': row.questions_with_reason,
        'createdAt': isoformat_utc(row.created_at),
        'updatedAt': isoformat_utc(row.updated_at),
        'stale': bool(interview is not None and not interview.is_clean),
    }


def global_analytics_to_dict(row, pending=()):
    return {
        'totalInterviews': row.total_interviews,
        'totalQuestions': row.total_questions,
        'totalAnswered': row.total_answered,
        'totalUnanswered': row.total_unanswered,
        'globalAnsweredPercent': row.global_answered_percent,
        'globalAverageAccuracy': row.global_average_accuracy,
        'globalAnsweredAccuracy': row.global_answered_accuracy,
        'bestInterviewID': row.best_interview_id,
        'bestInterviewScore': row.best_interview_score,
        'worstInterviewID': row.worst_interview_id,
        'worstInterviewScore': row.worst_interview_score,
        'lastUpdated': isoformat_utc(row.last_updated),
        # pending interviews, or a change the last publish did not include
        'stale': bool(pending) or row.needs_publish,
        'pendingInterviewIds': list(pending),
    }


def recompute_result_to_dict(result):
    if result is None:
        return None
    return {
        'interviewId': result.interview_id,
        'ok': result.ok,
        'stale': result.stale,
        'globalPublished': result.global_published,
        'pendingInterviewIds': list(result.pending),
        'error': result.error,
        'rescanMatches': result.rescan_matches,
    }
