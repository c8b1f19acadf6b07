from ..extensions import db

GLOBAL_ANALYTICS_ID = 1


class InterviewAnalytics(db.Model):
    """Derived per-interview snapshot. Rewritten by the recompute scheduler only."""
    __tablename__ = "interview_analytics"

    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, unique=True)

    total_questions = db.Column(db.Integer, nullable=False, default=0)
    answered_questions = db.Column(db.Integer, nullable=False, default=0)
    unanswered_questions = db.Column(db.Integer, nullable=False, default=0)
    answered_percentage = db.Column(db.Float, nullable=False, default=0.0)
    unanswered_percentage = db.Column(db.Float, nullable=False, default=0.0)
    average_accuracy = db.Column(db.Float, nullable=False, default=0.0)
    average_answered_accuracy = db.Column(db.Float, nullable=False, default=0.0)
    high_confidence_questions = db.Column(db.Integer, nullable=False, default=0)
    medium_confidence_questions = db.Column(db.Integer, nullable=False, default=0)
    low_confidence_questions = db.Column(db.Integer, nullable=False, default=0)
    questions_with_reason = db.Column(db.Integer, nullable=False, default=0)

    # raw sums carried through to the global rollup (weighted averages)
    accuracy_sum = db.Column(db.Float, nullable=False, default=0.0)
    answered_accuracy_sum = db.Column(db.Float, nullable=False, default=0.0)

    # snapshot computation times, not interview times
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self) -> str:
        return (f"<InterviewAnalytics interview_id={self.interview_id} "
                f"total={self.total_questions} avg={self.average_accuracy}>")


class GlobalAnalytics(db.Model):
    """Singleton rollup across all interviews (row id is always GLOBAL_ANALYTICS_ID)."""
    __tablename__ = "global_analytics"

    id = db.Column(db.Integer, primary_key=True, default=GLOBAL_ANALYTICS_ID)
    total_interviews = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    total_answered = db.Column(db.Integer, nullable=False, default=0)
    total_unanswered = db.Column(db.Integer, nullable=False, default=0)
    global_answered_percent = db.Column(db.Float, nullable=False, default=0.0)
    global_average_accuracy = db.Column(db.Float, nullable=False, default=0.0)
    global_answered_accuracy = db.Column(db.Float, nullable=False, default=0.0)
    # no FK: the ids outlive deleted interviews until the next recompute
    best_interview_id = db.Column(db.Integer, nullable=True)
    best_interview_score = db.Column(db.Float, nullable=False, default=0.0)
    worst_interview_id = db.Column(db.Integer, nullable=True)
    worst_interview_score = db.Column(db.Float, nullable=False, default=0.0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False)
    # bumped on every invalidation; published_seq records the value the last
    # successful publish started from
    change_seq = db.Column(db.Integer, nullable=False, default=0)
    published_seq = db.Column(db.Integer, nullable=False, default=0)

    @property
    def needs_publish(self) -> bool:
        return (self.change_seq or 0) > (self.published_seq or 0)

    def __repr__(self) -> str:
        return (f"<GlobalAnalytics interviews={self.total_interviews} "
                f"best={self.best_interview_id} worst={self.worst_interview_id}>")
