from ..extensions import db
from .base import TimestampMixin

class QuestionAnswer(db.Model, TimestampMixin):
    __tablename__ = "question_answers"
    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    full_answer = db.Column(db.Text, nullable=False, default="")
    # 0-100, assigned by the analysis pipeline
    accuracy = db.Column(db.Float, nullable=False, default=0.0)
    reason_unanswered = db.Column(db.Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<QuestionAnswer id={self.id} interview_id={self.interview_id} accuracy={self.accuracy}>"
