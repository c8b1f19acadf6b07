from ..extensions import db
from .base import TimestampMixin

class Call(db.Model, TimestampMixin):
    __tablename__ = "calls"
    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, unique=True)
    transcript = db.Column(db.Text, nullable=False)
    # raw analysis payload as delivered by the analysis pipeline
    analysis = db.Column(db.JSON, nullable=True)
