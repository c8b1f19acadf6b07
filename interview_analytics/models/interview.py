from ..extensions import db
from .base import TimestampMixin

# scheduler states
STATE_DIRTY = "dirty"
STATE_RECOMPUTING = "recomputing"
STATE_CLEAN = "clean"


class Interview(db.Model, TimestampMixin):
    __tablename__ = "interviews"

    id = db.Column(db.Integer, primary_key=True)

    # recompute bookkeeping: dirty -> recomputing -> clean
    analytics_state = db.Column(db.String(20), nullable=False, default=STATE_DIRTY, index=True)
    # bumped on every invalidation so an in-flight recompute can detect edits
    analytics_generation = db.Column(db.Integer, nullable=False, default=0)
    analytics_error = db.Column(db.Text, nullable=True)

    question_answers = db.relationship(
        "QuestionAnswer",
        backref="interview",
        cascade="all, delete-orphan",
        order_by="QuestionAnswer.id",
        lazy="select",
    )
    analytics = db.relationship(
        "InterviewAnalytics",
        backref="interview",
        cascade="all, delete-orphan",
        uselist=False,
    )
    call = db.relationship("Call", backref="interview", cascade="all, delete-orphan", uselist=False)

    @property
    def is_clean(self) -> bool:
        return self.analytics_state == STATE_CLEAN

    def __repr__(self) -> str:
        return f"<Interview id={self.id} state={self.analytics_state}>"
