import pytest
from sqlalchemy.exc import IntegrityError

from interview_analytics.extensions import db
from interview_analytics.jobs import recompute as scheduler
from interview_analytics.jobs.recompute import (
    mark_dirty, recompute_interview, recompute_global, recompute_pending, recompute_all,
    recompute_interview_job,
)
from interview_analytics.models import Interview
from interview_analytics.models.interview import STATE_CLEAN, STATE_DIRTY
from interview_analytics.services import interviews as ingest
from interview_analytics.services import store
from interview_analytics.services.aggregation import summarize, global_summary
from interview_analytics.services.errors import NotFound, StoreUnavailable, InvalidInput
from conftest import item


def _state(interview_id):
    db.session.expire_all()
    return db.session.get(Interview, interview_id).analytics_state


def test_ingestion_publishes_both_snapshots(app):
    interview, result = ingest.save_interview(
        [item(90), item(40, reason="off-topic")], transcript="Q: ... A: ...")
    assert result.ok and result.global_published and not result.stale
    assert _state(interview.id) == STATE_CLEAN

    snap = store.get_interview_analytics(interview.id)
    assert snap.total_questions == 2
    assert snap.average_accuracy == 65
    assert snap.average_answered_accuracy == 90

    g = store.get_global_analytics()
    assert g.total_interviews == 1
    assert g.best_interview_id == interview.id
    assert interview.call.transcript == "Q: ... A: ..."


def test_global_is_not_found_before_first_ingestion(app):
    with pytest.raises(NotFound):
        store.get_global_analytics()


def test_weighted_global_over_two_interviews(app):
    a, _ = ingest.save_interview([item(70), item(80), item(90)])
    b, _ = ingest.save_interview([item(95)])
    g = store.get_global_analytics()
    assert g.total_questions == 4
    assert g.global_average_accuracy == 83.75
    assert g.best_interview_id == b.id
    assert g.worst_interview_id == a.id


def test_recompute_is_idempotent(app):
    interview, _ = ingest.save_interview([item(55.5), item(81, reason="partial"), item(12, full_answer="")])
    before = summarize(store.get_interview_analytics(interview.id))
    global_before = global_summary(store.get_global_analytics())

    recompute_interview(interview.id)
    recompute_interview(interview.id)

    assert summarize(store.get_interview_analytics(interview.id)) == before
    assert global_summary(store.get_global_analytics()) == global_before


def test_snapshot_created_at_survives_recompute(app):
    interview, _ = ingest.save_interview([item(60)])
    first = store.get_interview_analytics(interview.id)
    created, row_id = first.created_at, first.id
    ingest.add_question_answer(interview.id, item(100))
    db.session.expire_all()
    second = store.get_interview_analytics(interview.id)
    assert second.id == row_id
    assert second.created_at == created
    assert second.total_questions == 2


def test_edit_invalidates_and_recomputes(app):
    interview, _ = ingest.save_interview([item(90), item(40, reason="off-topic")])
    qa_id = interview.question_answers[1].id
    _, result = ingest.update_question_answer(qa_id, {"reason_unanswered": "", "accuracy": 70})
    assert result.ok
    snap = store.get_interview_analytics(interview.id)
    assert snap.answered_questions == 2
    assert snap.average_answered_accuracy == 80
    assert snap.questions_with_reason == 0
    assert store.get_global_analytics().global_answered_percent == 100


def test_edit_rejects_invalid_values(app):
    interview, _ = ingest.save_interview([item(90)])
    qa_id = interview.question_answers[0].id
    with pytest.raises(InvalidInput):
        ingest.update_question_answer(qa_id, {"accuracy": -5})
    with pytest.raises(InvalidInput):
        ingest.update_question_answer(qa_id, {"interview_id": 3})
    assert store.get_question_answer(qa_id).accuracy == 90


def test_save_rejects_bad_batches(app):
    with pytest.raises(InvalidInput):
        ingest.save_interview([])
    with pytest.raises(InvalidInput):
        ingest.save_interview([item(90, question="  ")])
    with pytest.raises(InvalidInput):
        ingest.save_interview([item(90), item(101)])
    with pytest.raises(InvalidInput):
        ingest.save_interview([item(90)], transcript="")
    assert store.get_all_interview_ids() == []


def test_store_failure_leaves_interview_dirty_and_global_untouched(app, monkeypatch):
    first, _ = ingest.save_interview([item(80)])
    published = global_summary(store.get_global_analytics())

    calls = []

    def unavailable(interview_id):
        calls.append(interview_id)
        raise StoreUnavailable("database is locked")

    monkeypatch.setattr(store, "get_question_answers", unavailable)
    second, result = ingest.save_interview([item(20)])

    assert not result.ok
    assert result.stale
    assert result.pending == [second.id]
    assert "database is locked" in result.error
    assert len(calls) == app.config["RECOMPUTE_MAX_RETRIES"] + 1
    assert _state(second.id) == STATE_DIRTY
    assert db.session.get(Interview, second.id).analytics_error
    assert global_summary(store.get_global_analytics()) == published
    assert _state(first.id) == STATE_CLEAN

    monkeypatch.undo()
    result = recompute_pending()
    assert result.ok and result.global_published
    assert _state(second.id) == STATE_CLEAN
    g = store.get_global_analytics()
    assert g.total_interviews == 2
    assert g.global_average_accuracy == 50


def test_transient_failure_is_retried(app, monkeypatch):
    real = store.get_question_answers
    failures = {"left": 1}

    def flaky(interview_id):
        if failures["left"]:
            failures["left"] -= 1
            raise StoreUnavailable("connection reset")
        return real(interview_id)

    monkeypatch.setattr(store, "get_question_answers", flaky)
    interview, result = ingest.save_interview([item(75)])
    assert result.ok and result.global_published
    assert _state(interview.id) == STATE_CLEAN


def test_edit_during_recompute_is_not_lost(app, monkeypatch):
    interview, _ = ingest.save_interview([item(50)])
    real = store.get_question_answers
    edited = {"done": False}

    def edit_mid_flight(interview_id):
        rows = real(interview_id)
        if not edited["done"]:
            edited["done"] = True
            # a concurrent writer changes the data after we read it
            qa = rows[0]
            qa.accuracy = 100
            mark_dirty(interview_id, commit=False)
            db.session.commit()
            return [type(r)(id=r.id, interview_id=r.interview_id, question=r.question,
                            full_answer=r.full_answer, accuracy=50, reason_unanswered=r.reason_unanswered)
                    for r in rows]
        return rows

    monkeypatch.setattr(store, "get_question_answers", edit_mid_flight)
    result = recompute_interview(interview.id)
    assert result.ok
    assert _state(interview.id) == STATE_CLEAN
    assert store.get_interview_analytics(interview.id).average_accuracy == 100


def test_global_waits_for_dirty_interviews(app):
    a, _ = ingest.save_interview([item(90)])
    b, _ = ingest.save_interview([item(30)])
    published = global_summary(store.get_global_analytics())

    mark_dirty(b.id)
    result = recompute_global()
    assert result.stale and not result.global_published
    assert result.pending == [b.id]
    assert global_summary(store.get_global_analytics()) == published

    result = recompute_pending()
    assert result.global_published and not result.pending


def test_mark_dirty_unknown_interview(app):
    with pytest.raises(NotFound):
        mark_dirty(12345)


def test_deleting_last_question_keeps_interview_counted(app):
    a, _ = ingest.save_interview([item(70)])
    b, _ = ingest.save_interview([item(40)])
    ingest.delete_question_answer(b.question_answers[0].id)

    snap = store.get_interview_analytics(b.id)
    assert snap.total_questions == 0
    assert snap.answered_percentage == 0
    g = store.get_global_analytics()
    assert g.total_interviews == 2
    assert g.best_interview_id == a.id
    assert g.worst_interview_id == a.id


def test_deleting_interview_removes_its_contribution(app):
    a, _ = ingest.save_interview([item(70)])
    b, _ = ingest.save_interview([item(40)])
    result = ingest.delete_interview(b.id)
    assert result.global_published
    g = store.get_global_analytics()
    assert g.total_interviews == 1
    assert g.worst_interview_id == a.id
    with pytest.raises(NotFound):
        store.get_interview_analytics(b.id)


def test_full_rebuild_matches_rescan(app):
    ingest.save_interview([item(33.3), item(66.7, full_answer=""), item(12.5, reason="noise")])
    ingest.save_interview([item(99.9), item(0)])
    ingest.save_interview([item(45.45, reason="timeout")])
    result = recompute_all(rescan=True)
    assert result.ok and result.global_published
    assert result.rescan_matches is True


def test_global_lock_timeout_is_reported_as_stale(app, monkeypatch):
    ingest.save_interview([item(70)])
    app.config["GLOBAL_LOCK_TIMEOUT_SEC"] = 0.01
    assert scheduler._global_lock.acquire()
    try:
        result = recompute_global()
    finally:
        scheduler._global_lock.release()
    assert not result.ok and result.stale
    assert "lock" in result.error


def test_job_entrypoint_handles_deleted_interview(app):
    a, _ = ingest.save_interview([item(70)])
    b, _ = ingest.save_interview([item(40)])
    # delete without recompute: the job must still publish a consistent global
    ingest.delete_interview(b.id, recompute=False)
    result = recompute_interview_job(b.id)
    assert result.global_published
    assert store.get_global_analytics().total_interviews == 1


def test_failed_global_publish_is_flagged_and_deferred(app, monkeypatch):
    ingest.save_interview([item(70)])
    scheduled = []
    monkeypatch.setattr(scheduler.rq, "enqueue_in",
                        lambda delay, func, *args, **kwargs: scheduled.append(func) or "job")
    app.config["GLOBAL_LOCK_TIMEOUT_SEC"] = 0.01
    assert scheduler._global_lock.acquire()
    try:
        b, result = ingest.save_interview([item(30)])
    finally:
        scheduler._global_lock.release()

    assert result.stale and not result.global_published
    assert _state(b.id) == STATE_CLEAN
    assert store.get_unclean_interview_ids() == []
    g = store.get_global_analytics()
    assert g.total_interviews == 1
    assert g.needs_publish
    assert scheduled == [scheduler.recompute_pending_job]

    result = recompute_pending()
    assert result.ok and result.global_published
    g = store.get_global_analytics()
    assert g.total_interviews == 2
    assert not g.needs_publish


def test_corrupt_record_does_not_block_other_interviews(app):
    a, _ = ingest.save_interview([item(60)])
    b, _ = ingest.save_interview([item(40)])
    a.question_answers[0].accuracy = 150
    db.session.commit()
    mark_dirty(a.id)
    mark_dirty(b.id)

    result = recompute_pending()
    assert not result.ok and result.stale
    assert result.pending == [a.id]
    assert "accuracy" in result.error
    assert _state(b.id) == STATE_CLEAN
    assert _state(a.id) == STATE_DIRTY
    assert "accuracy" in db.session.get(Interview, a.id).analytics_error


def test_concurrent_first_snapshot_insert_is_retried(app, monkeypatch):
    interview, _ = ingest.save_interview([item(65)], recompute=False)
    real = store.put_interview_analytics
    calls = []

    def racing(snapshot):
        calls.append(snapshot.interview_id)
        if len(calls) == 1:
            raise IntegrityError("INSERT INTO interview_analytics", {},
                                 Exception("UNIQUE constraint failed: interview_analytics.interview_id"))
        return real(snapshot)

    monkeypatch.setattr(store, "put_interview_analytics", racing)
    result = recompute_interview(interview.id)
    assert result.ok and result.global_published
    assert len(calls) == 2
    assert _state(interview.id) == STATE_CLEAN
    assert store.get_interview_analytics(interview.id).average_accuracy == 65
