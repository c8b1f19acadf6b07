# interview_analytics/services/aggregation.py
"""Pure aggregation of question/answer records into analytics snapshots.

Nothing here touches the session: the functions build transient
InterviewAnalytics / GlobalAnalytics rows and the recompute scheduler decides
what to persist.
"""
import logging
from typing import Iterable, Optional, Sequence

from ..models.analytics import InterviewAnalytics, GlobalAnalytics, GLOBAL_ANALYTICS_ID
from ..utils.timestamps import utcnow
from .confidence import Confidence, checked_accuracy, classify, is_answered, has_reason
from .errors import InvalidInput, Inconsistent

logger = logging.getLogger(__name__)


def _percent(count, total) -> float:
    if not total:
        return 0.0
    return count / total * 100


def _mean(total_sum, count) -> float:
    if not count:
        return 0.0
    return total_sum / count


class _Tally:
    """Running counts and sums for one interview."""

    __slots__ = ('total', 'answered', 'with_reason', 'high', 'medium', 'low',
                 'accuracy_sum', 'answered_accuracy_sum')

    def __init__(self):
        self.total = 0
        self.answered = 0
        self.with_reason = 0
        self.high = 0
        self.medium = 0
        self.low = 0
        self.accuracy_sum = 0.0
        self.answered_accuracy_sum = 0.0

    def add(self, qa):
        acc = checked_accuracy(qa.accuracy)
        self.total += 1
        self.accuracy_sum += acc
        if is_answered(qa):
            self.answered += 1
            self.answered_accuracy_sum += acc
        if has_reason(qa):
            self.with_reason += 1
        bucket = classify(acc)
        if bucket is Confidence.HIGH:
            self.high += 1
        elif bucket is Confidence.MEDIUM:
            self.medium += 1
        else:
            self.low += 1

    def to_snapshot(self, interview_id, now) -> InterviewAnalytics:
        unanswered = self.total - self.answered
        return InterviewAnalytics(
            interview_id=interview_id,
            total_questions=self.total,
            answered_questions=self.answered,
            unanswered_questions=unanswered,
            answered_percentage=_percent(self.answered, self.total),
            unanswered_percentage=_percent(unanswered, self.total),
            average_accuracy=_mean(self.accuracy_sum, self.total),
            average_answered_accuracy=_mean(self.answered_accuracy_sum, self.answered),
            high_confidence_questions=self.high,
            medium_confidence_questions=self.medium,
            low_confidence_questions=self.low,
            questions_with_reason=self.with_reason,
            accuracy_sum=self.accuracy_sum,
            answered_accuracy_sum=self.answered_accuracy_sum,
            created_at=now,
            updated_at=now,
        )


def aggregate_interview(interview_id: int, question_answers: Iterable, now=None) -> InterviewAnalytics:
    """Compute one interview's snapshot in a single pass.

    Every record must belong to ``interview_id``; a stray record means the
    caller mixed interviews and raises InvalidInput. An empty sequence is
    valid and yields zeros everywhere.
    """
    tally = _Tally()
    for qa in question_answers:
        if qa.interview_id != interview_id:
            raise InvalidInput(
                f"question_answer {qa.id} belongs to interview {qa.interview_id}, not {interview_id}")
        tally.add(qa)
    return tally.to_snapshot(interview_id, now or utcnow())


def _pick_best_worst(snapshots: Sequence[InterviewAnalytics]):
    eligible = [s for s in snapshots if s.total_questions > 0]
    if not eligible:
        return None, None
    # ties go to the lower interview id in both directions
    best = max(eligible, key=lambda s: (s.average_accuracy, -s.interview_id))
    worst = min(eligible, key=lambda s: (s.average_accuracy, s.interview_id))
    return best, worst


def aggregate_global(snapshots: Iterable[InterviewAnalytics], now=None) -> GlobalAnalytics:
    """Fold per-interview snapshots into the global rollup.

    Averages are weighted by question count through the carried raw sums, so
    a one-question interview does not weigh as much as a hundred-question one.
    """
    ordered = sorted(snapshots, key=lambda s: s.interview_id)
    seen = set()
    for s in ordered:
        if s.interview_id in seen:
            raise InvalidInput(f"duplicate snapshot for interview {s.interview_id}")
        seen.add(s.interview_id)

    total_questions = 0
    total_answered = 0
    total_unanswered = 0
    accuracy_sum = 0.0
    answered_accuracy_sum = 0.0
    for s in ordered:
        total_questions += s.total_questions
        total_answered += s.answered_questions
        total_unanswered += s.unanswered_questions
        accuracy_sum += s.accuracy_sum
        answered_accuracy_sum += s.answered_accuracy_sum

    best, worst = _pick_best_worst(ordered)
    return GlobalAnalytics(
        id=GLOBAL_ANALYTICS_ID,
        total_interviews=len(ordered),
        total_questions=total_questions,
        total_answered=total_answered,
        total_unanswered=total_unanswered,
        global_answered_percent=_percent(total_answered, total_questions),
        global_average_accuracy=_mean(accuracy_sum, total_questions),
        global_answered_accuracy=_mean(answered_accuracy_sum, total_answered),
        best_interview_id=best.interview_id if best else None,
        best_interview_score=best.average_accuracy if best else 0.0,
        worst_interview_id=worst.interview_id if worst else None,
        worst_interview_score=worst.average_accuracy if worst else 0.0,
        last_updated=now or utcnow(),
    )


def aggregate_global_from_records(interview_ids: Iterable[int], question_answers: Iterable,
                                  now=None) -> GlobalAnalytics:
    """Build the global rollup straight from raw records, skipping the
    per-interview snapshots. ``question_answers`` may be a paginated iterator.

    Records pointing at an interview outside ``interview_ids`` are logged and
    skipped rather than failing the pass.
    """
    now = now or utcnow()
    tallies = {iid: _Tally() for iid in interview_ids}
    skipped = 0
    for qa in question_answers:
        tally = tallies.get(qa.interview_id)
        if tally is None:
            skipped += 1
            logger.error('%s', Inconsistent(
                f"question_answer {qa.id} references unknown interview {qa.interview_id}; skipped"))
            continue
        tally.add(qa)
    if skipped:
        logger.error('global rescan skipped %d orphan question_answers', skipped)
    return aggregate_global((t.to_snapshot(iid, now) for iid, t in tallies.items()), now=now)


def summarize(snapshot: Optional[InterviewAnalytics]) -> dict:
    """Counts and percentages only; used to compare two computations while
    ignoring their timestamps."""
    if snapshot is None:
        return {}
    return {
        'total_questions': snapshot.total_questions,
        'answered_questions': snapshot.answered_questions,
        'unanswered_questions': snapshot.unanswered_questions,
        'answered_percentage': snapshot.answered_percentage,
        'unanswered_percentage': snapshot.unanswered_percentage,
        'average_accuracy': snapshot.average_accuracy,
        'average_answered_accuracy': snapshot.average_answered_accuracy,
        'high_confidence_questions': snapshot.high_confidence_questions,
        'medium_confidence_questions': snapshot.medium_confidence_questions,
        'low_confidence_questions': snapshot.low_confidence_questions,
        'questions_with_reason': snapshot.questions_with_reason,
    }


def global_summary(snapshot: Optional[GlobalAnalytics]) -> dict:
    if snapshot is None:
        return {}
    return {
        'total_interviews': snapshot.total_interviews,
        'total_questions': snapshot.total_questions,
        'total_answered': snapshot.total_answered,
        'total_unanswered': snapshot.total_unanswered,
        'global_answered_percent': snapshot.global_answered_percent,
        'global_average_accuracy': snapshot.global_average_accuracy,
        'global_answered_accuracy': snapshot.global_answered_accuracy,
        'best_interview_id': snapshot.best_interview_id,
        'best_interview_score': snapshot.best_interview_score,
        'worst_interview_id': snapshot.worst_interview_id,
        'worst_interview_score': snapshot.worst_interview_score,
    }
