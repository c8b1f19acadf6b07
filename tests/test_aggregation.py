import logging
import math
import random

import pytest

from interview_analytics.services.aggregation import (
    aggregate_interview, aggregate_global, aggregate_global_from_records, summarize, global_summary,
)
from interview_analytics.services.errors import InvalidInput
from conftest import qa


def test_interview_scenario_one_answered_one_off_topic():
    snap = aggregate_interview(1, [qa(1, 90), qa(1, 40, reason="off-topic")])
    assert snap.total_questions == 2
    assert snap.answered_questions == 1
    assert snap.unanswered_questions == 1
    assert snap.average_accuracy == 65
    assert snap.average_answered_accuracy == 90
    assert snap.answered_percentage == 50
    assert snap.unanswered_percentage == 50
    assert snap.questions_with_reason == 1
    assert snap.high_confidence_questions == 1
    assert snap.low_confidence_questions == 1
    assert snap.medium_confidence_questions == 0
    assert snap.accuracy_sum == 130
    assert snap.answered_accuracy_sum == 90


def test_empty_interview_is_all_zero():
    snap = aggregate_interview(7, [])
    values = summarize(snap)
    assert all(v == 0 for v in values.values())
    assert not any(isinstance(v, float) and math.isnan(v) for v in values.values())
    assert snap.interview_id == 7
    assert snap.updated_at is not None


def test_no_answered_questions_has_zero_answered_average():
    snap = aggregate_interview(1, [qa(1, 20, full_answer=""), qa(1, 60, reason="silence")])
    assert snap.answered_questions == 0
    assert snap.average_answered_accuracy == 0
    assert snap.average_accuracy == 40
    assert snap.unanswered_percentage == 100


def test_mismatched_interview_id_is_rejected():
    with pytest.raises(InvalidInput):
        aggregate_interview(1, [qa(1, 90), qa(2, 80)])


def test_out_of_range_accuracy_is_rejected():
    with pytest.raises(InvalidInput):
        aggregate_interview(1, [qa(1, 120)])


def test_counts_always_add_up():
    rng = random.Random(42)
    for _ in range(50):
        records = [
            qa(1, round(rng.uniform(0, 100), 2),
               full_answer=rng.choice(["", "some answer"]),
               reason=rng.choice(["", "", "off-topic"]))
            for _ in range(rng.randint(0, 25))
        ]
        snap = aggregate_interview(1, records)
        assert snap.answered_questions + snap.unanswered_questions == snap.total_questions
        assert (snap.high_confidence_questions + snap.medium_confidence_questions
                + snap.low_confidence_questions) == snap.total_questions


def test_global_is_weighted_by_question_count():
    a = aggregate_interview(1, [qa(1, 70), qa(1, 80), qa(1, 90)])
    b = aggregate_interview(2, [qa(2, 95)])
    assert a.average_accuracy == 80
    g = aggregate_global([a, b])
    assert g.total_interviews == 2
    assert g.total_questions == 4
    assert g.global_average_accuracy == 83.75
    assert g.best_interview_id == 2
    assert g.best_interview_score == 95
    assert g.worst_interview_id == 1
    assert g.worst_interview_score == 80


def test_empty_interview_counts_but_is_not_eligible():
    a = aggregate_interview(1, [qa(1, 60)])
    empty = aggregate_interview(2, [])
    g = aggregate_global([a, empty])
    assert g.total_interviews == 2
    assert g.best_interview_id == 1
    assert g.worst_interview_id == 1


def test_no_eligible_interviews_leaves_best_worst_unset():
    g = aggregate_global([aggregate_interview(1, []), aggregate_interview(2, [])])
    assert g.total_interviews == 2
    assert g.best_interview_id is None and g.worst_interview_id is None
    assert g.best_interview_score == 0 and g.worst_interview_score == 0
    assert g.global_answered_percent == 0
    assert g.global_average_accuracy == 0

    g = aggregate_global([])
    assert g.total_interviews == 0
    assert g.best_interview_id is None


def test_ties_go_to_lower_id_regardless_of_input_order():
    snaps = [
        aggregate_interview(5, [qa(5, 70)]),
        aggregate_interview(3, [qa(3, 70)]),
        aggregate_interview(9, [qa(9, 70), qa(9, 70)]),
    ]
    first = aggregate_global(snaps)
    second = aggregate_global(list(reversed(snaps)))
    assert first.best_interview_id == 3
    assert first.worst_interview_id == 3
    assert global_summary(first) == global_summary(second)


def test_duplicate_snapshots_are_rejected():
    a = aggregate_interview(1, [qa(1, 60)])
    with pytest.raises(InvalidInput):
        aggregate_global([a, aggregate_interview(1, [qa(1, 70)])])


def _corpus(seed):
    rng = random.Random(seed)
    interview_ids = list(range(1, 9))
    records = []
    next_id = 1
    for _ in range(60):
        records.append(qa(rng.choice(interview_ids[:-1]),  # last interview stays empty
                          round(rng.uniform(0, 100), 3),
                          full_answer=rng.choice(["", "answer"]),
                          reason=rng.choice(["", "", "vague"]),
                          id=next_id))
        next_id += 1
    return interview_ids, records


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_carry_through_matches_full_rescan(seed):
    interview_ids, records = _corpus(seed)
    snapshots = [aggregate_interview(iid, [r for r in records if r.interview_id == iid])
                 for iid in interview_ids]
    carried = aggregate_global(snapshots)
    scanned = aggregate_global_from_records(interview_ids, iter(records))
    assert global_summary(carried) == global_summary(scanned)
    assert carried.total_interviews == len(interview_ids)


def test_rescan_skips_orphan_records(caplog):
    records = [qa(1, 80, id=1), qa(99, 10, id=2), qa(1, 60, id=3)]
    with caplog.at_level(logging.ERROR):
        g = aggregate_global_from_records([1], records)
    assert g.total_questions == 2
    assert g.global_average_accuracy == 70
    assert "unknown interview 99" in caplog.text


def test_aggregation_is_deterministic():
    records = [qa(1, 55.5), qa(1, 81, reason="partial"), qa(1, 12, full_answer="")]
    assert summarize(aggregate_interview(1, records)) == summarize(aggregate_interview(1, records))
