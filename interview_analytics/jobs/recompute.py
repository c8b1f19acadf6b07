import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from flask import current_app, has_app_context
from redis.exceptions import RedisError, LockError
from sqlalchemy.exc import IntegrityError

from ..extensions import db, rq
from ..models.interview import Interview, STATE_DIRTY, STATE_RECOMPUTING, STATE_CLEAN
from ..services import store
from ..services.aggregation import (
    aggregate_interview, aggregate_global, aggregate_global_from_records, global_summary,
)
from ..services.errors import InvalidInput, NotFound, StoreUnavailable

GLOBAL_LOCK_NAME = "interview_analytics:global_recompute"

# single writer for the global snapshot when no Redis lock is available
_global_lock = threading.Lock()


@dataclass
class RecomputeResult:
    interview_id: Optional[int] = None
    ok: bool = True
    # True when the published global snapshot does not reflect every interview yet
    stale: bool = False
    global_published: bool = False
    pending: List[int] = field(default_factory=list)
    error: Optional[str] = None
    rescan_matches: Optional[bool] = None


def mark_dirty(interview_id: int, commit: bool = True):
    """Invalidate an interview's snapshot. Bumps the generation so an
    in-flight recompute of older data cannot flip it back to clean."""
    with store.store_errors():
        n = (Interview.query.filter_by(id=interview_id)
             .update({Interview.analytics_state: STATE_DIRTY,
                      Interview.analytics_generation: Interview.analytics_generation + 1},
                     synchronize_session='fetch'))
        if not n:
            raise NotFound(f"interview {interview_id} not found")
        store.mark_global_dirty()
        if commit:
            db.session.commit()


def mark_all_dirty():
    with store.store_errors():
        n = (Interview.query
             .update({Interview.analytics_state: STATE_DIRTY,
                      Interview.analytics_generation: Interview.analytics_generation + 1},
                     synchronize_session='fetch'))
        store.mark_global_dirty()
        db.session.commit()
    return n


def _run_recompute_interview(interview_id: int):
    """One dirty -> recomputing -> clean pass.

    Returns the persisted snapshot, or None when the interview was edited
    while we were computing (it stays dirty and the caller goes again).
    """
    with store.store_errors():
        interview = store.get_interview(interview_id)
        generation = interview.analytics_generation
        claimed = (Interview.query.filter_by(id=interview_id, analytics_generation=generation)
                   .update({Interview.analytics_state: STATE_RECOMPUTING}, synchronize_session=False))
        db.session.commit()
        if not claimed:
            return None

        qas = store.get_question_answers(interview_id)
        snapshot = aggregate_interview(interview_id, qas)
        try:
            row = store.put_interview_analytics(snapshot)
            done = (Interview.query.filter_by(id=interview_id, analytics_generation=generation)
                    .update({Interview.analytics_state: STATE_CLEAN, Interview.analytics_error: None},
                            synchronize_session=False))
            if not done:
                db.session.rollback()
                return None
            db.session.commit()
        except IntegrityError:
            # another worker inserted the first snapshot row concurrently
            db.session.rollback()
            current_app.logger.info('Concurrent snapshot insert for interview %s; retrying', interview_id)
            return None
        return row


def _release_claim(interview_id: int, error: str):
    # back to dirty so the next trigger retries; generation untouched
    try:
        with store.store_errors():
            (Interview.query.filter_by(id=interview_id, analytics_state=STATE_RECOMPUTING)
             .update({Interview.analytics_state: STATE_DIRTY, Interview.analytics_error: error[:2000]},
                     synchronize_session=False))
            db.session.commit()
    except StoreUnavailable:
        # still non-clean (recomputing) in the store, which recompute_pending also picks up
        current_app.logger.exception('Failed to release recompute claim on interview %s', interview_id)


def _defer(interview_id: int):
    delay = timedelta(seconds=current_app.config.get('RECOMPUTE_DEFER_SEC', 60))
    job = rq.enqueue_in(delay, recompute_interview_job, interview_id)
    if job is not None:
        current_app.logger.info('Deferred recompute of interview %s by %s', interview_id, delay)
    return job


def _defer_global():
    delay = timedelta(seconds=current_app.config.get('RECOMPUTE_DEFER_SEC', 60))
    job = rq.enqueue_in(delay, recompute_pending_job)
    if job is not None:
        current_app.logger.info('Deferred global analytics publish by %s', delay)
    return job


def _recompute_with_retries(interview_id: int) -> RecomputeResult:
    cfg = current_app.config
    max_retries = int(cfg.get('RECOMPUTE_MAX_RETRIES', 3))
    delay = float(cfg.get('RECOMPUTE_RETRY_DELAY_SEC', 0.5))
    deadline = time.monotonic() + float(cfg.get('RECOMPUTE_TIMEOUT_SEC', 30))

    attempt = 0
    last_error = None
    while True:
        try:
            snapshot = _run_recompute_interview(interview_id)
        except StoreUnavailable as e:
            last_error = str(e)
            _release_claim(interview_id, last_error)
            snapshot = None
        except InvalidInput as e:
            _release_claim(interview_id, str(e))
            current_app.logger.exception('Interview %s has invalid question data', interview_id)
            raise
        if snapshot is not None:
            return RecomputeResult(interview_id=interview_id)

        attempt += 1
        if attempt > max_retries or time.monotonic() + delay * attempt > deadline:
            break
        if last_error:
            current_app.logger.info('Recompute of interview %s failed (attempt %d/%d): %s',
                                    interview_id, attempt, max_retries, last_error)
        time.sleep(delay * attempt)

    reason = last_error or 'interview kept changing during recompute'
    current_app.logger.warning('Analytics degraded: interview %s left dirty after %d attempts: %s',
                               interview_id, attempt, reason)
    _defer(interview_id)
    return RecomputeResult(interview_id=interview_id, ok=False, stale=True,
                           pending=[interview_id], error=reason)


@contextmanager
def _global_writer():
    timeout = float(current_app.config.get('GLOBAL_LOCK_TIMEOUT_SEC', 30))
    if rq.redis is not None:
        lock = rq.redis.lock(GLOBAL_LOCK_NAME, timeout=timeout, blocking_timeout=timeout)
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise StoreUnavailable(f"global recompute lock unavailable: {e}") from e
        if not acquired:
            raise StoreUnavailable("timed out waiting for the global recompute lock")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                current_app.logger.warning('Global recompute lock expired before release')
        return

    if not _global_lock.acquire(timeout=timeout):
        raise StoreUnavailable("timed out waiting for the global recompute lock")
    try:
        yield
    finally:
        _global_lock.release()


def recompute_global() -> RecomputeResult:
    """Rebuild the global snapshot from the current per-interview snapshots.

    Refuses to publish while any interview is dirty or mid-recompute, so the
    rollup never mixes an interview's old and new contribution.
    """
    try:
        with _global_writer():
            # read before anything else: invalidations after this point keep the snapshot stale
            seq = store.get_global_change_seq()
            pending = store.get_unclean_interview_ids()
            if pending:
                current_app.logger.warning('Global analytics not published: %d interview(s) pending recompute %s',
                                           len(pending), pending)
                return RecomputeResult(stale=True, pending=pending)

            ids = store.get_all_interview_ids()
            known = set(ids)
            snapshots = [s for s in store.get_all_interview_analytics() if s.interview_id in known]
            missing = sorted(known - {s.interview_id for s in snapshots})
            if missing:
                current_app.logger.error('Clean interviews without a snapshot: %s; marking dirty', missing)
                for iid in missing:
                    mark_dirty(iid, commit=False)
                with store.store_errors():
                    db.session.commit()
                return RecomputeResult(stale=True, pending=missing)

            snapshot = aggregate_global(snapshots)
            snapshot.published_seq = seq
            with store.store_errors():
                store.put_global_analytics(snapshot)
                db.session.commit()
            current_app.logger.info('Global analytics published: %d interviews, %d questions',
                                    snapshot.total_interviews, snapshot.total_questions)
            return RecomputeResult(global_published=True)
    except StoreUnavailable as e:
        current_app.logger.warning('Analytics degraded: global recompute failed: %s', e)
        _defer_global()
        return RecomputeResult(ok=False, stale=True, error=str(e))


def recompute_interview(interview_id: int) -> RecomputeResult:
    """Synchronous recompute after ingestion or edit: the interview's own
    snapshot first, then the global rollup."""
    result = _recompute_with_retries(interview_id)
    if not result.ok:
        return result
    glob = recompute_global()
    glob.interview_id = interview_id
    return glob


def recompute_pending() -> RecomputeResult:
    """Recompute every interview that is not clean, then the global rollup."""
    failed = []
    errors = []
    try:
        pending = store.get_unclean_interview_ids()
    except StoreUnavailable as e:
        current_app.logger.warning('Analytics degraded: cannot list pending interviews: %s', e)
        _defer_global()
        return RecomputeResult(ok=False, stale=True, error=str(e))
    for iid in pending:
        try:
            r = _recompute_with_retries(iid)
        except NotFound:
            continue
        except InvalidInput as e:
            # already logged and released; the rest of the pass still runs
            failed.append(iid)
            errors.append(f"interview {iid}: {e}")
            continue
        if not r.ok:
            failed.append(iid)
            errors.append(r.error)
    glob = recompute_global()
    if failed:
        glob.ok = False
        glob.stale = True
        glob.pending = sorted(set(glob.pending) | set(failed))
        glob.error = '; '.join(e for e in errors if e)
    return glob


def recompute_all(rescan: bool = False) -> RecomputeResult:
    """Rebuild every snapshot from scratch. With ``rescan`` the published
    global rollup is checked against a direct scan of all records."""
    n = mark_all_dirty()
    current_app.logger.info('Full analytics rebuild: %d interviews marked dirty', n)
    result = recompute_pending()
    if rescan and result.global_published:
        page_size = int(current_app.config.get('RESCAN_PAGE_SIZE', 500))
        scanned = aggregate_global_from_records(store.get_all_interview_ids(),
                                                store.iter_question_answers(page_size))
        published = store.get_global_analytics()
        result.rescan_matches = global_summary(scanned) == global_summary(published)
        if not result.rescan_matches:
            current_app.logger.error('Global analytics mismatch: carried %s, rescanned %s',
                                     global_summary(published), global_summary(scanned))
    return result


def _with_app_context(func, *args):
    if has_app_context():
        return func(*args)
    # lazy import to avoid circular imports at module import time
    from interview_analytics import create_app
    app = create_app()
    with app.app_context():
        return func(*args)


def recompute_interview_job(interview_id: int):
    """Entrypoint that ensures execution inside a Flask app context for workers."""
    def run(iid):
        try:
            return recompute_interview(iid)
        except NotFound:
            current_app.logger.info('Interview %s deleted before its recompute ran', iid)
            return recompute_global()
    return _with_app_context(run, interview_id)


def recompute_pending_job():
    """Entrypoint that ensures execution inside a Flask app context for workers."""
    return _with_app_context(recompute_pending)


def recompute_all_job(rescan: bool = False):
    """Entrypoint that ensures execution inside a Flask app context for workers."""
    return _with_app_context(recompute_all, rescan)
