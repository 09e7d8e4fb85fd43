from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func

from hangout.core.db import Base


class FeedbackRequest(Base):
    __tablename__ = "feedback_request"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    gathering_id = Column(String, nullable=False)

    # snapshot, the gathering may be gone by the time the link is opened
    gathering_name = Column(String, nullable=True)
    gathering_address = Column(String, nullable=True)

    token = Column(String, nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)

    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime, nullable=True)

    rating = Column(Integer, nullable=True)
    comment = Column(String, nullable=True)
    submitted = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "gathering_id", name="uq_feedback_user_gathering"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="feedback_rating_check"),
    )
