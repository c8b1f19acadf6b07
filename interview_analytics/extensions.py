from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from redis import Redis
from rq import Queue
from flask import current_app

class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        url = app.config.get("REDIS_URL")
        if not url:
            # no Redis configured (tests, single-process dev): recompute stays synchronous
            self.redis = None
            self.queue = None
            return
        try:
            self.redis = Redis.from_url(url)
            self.queue = Queue(app.config.get("RQ_QUEUE", "analytics"), connection=self.redis)
        except Exception:
            app.logger.exception('Redis/RQ init failed, deferred recompute disabled')
            self.redis = None
            self.queue = None

    def enqueue(self, func, *args, **kwargs):
        # Prefer enqueueing to RQ if available, otherwise run the job inline.
        if not self.queue:
            rq_keys = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description'}
            safe_kwargs = {k: v for k, v in kwargs.items() if k not in rq_keys}
            return func(*args, **safe_kwargs)
        return self.queue.enqueue(func, *args, **kwargs)

    def enqueue_in(self, delay, func, *args, **kwargs):
        """Schedule a job after ``delay`` (a timedelta). Returns None when no
        queue is configured; the next scheduling trigger picks the work up."""
        if not self.queue:
            return None
        try:
            return self.queue.enqueue_in(delay, func, *args, **kwargs)
        except Exception:
            current_app.logger.exception('RQ enqueue_in failed for %s', getattr(func, '__name__', func))
            return None


db = SQLAlchemy()
migrate = Migrate()
rq = RQWrapper()
