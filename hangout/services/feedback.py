from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hangout.core import config
from hangout.core.checkin_config import FEEDBACK_TTL_DAYS
from hangout.core.errors import BadRequestError, ExpiredError, NotFoundError
from hangout.core.time import utcnow
from hangout.models.feedback import FeedbackRequest
from hangout.models.profile import Profile
from hangout.services.notifier import Notifier, feedback_email


def feedback_url(token: str) -> str:
    return f"{config.FRONTEND_URL}/event-feedback?token={token}"


def request_feedback(
    session_factory: Callable[[], Session],
    notifier: Notifier,
    user_id: str,
    gathering_id: str,
    gathering_name: Optional[str] = None,
    gathering_address: Optional[str] = None,
    ttl_days: int = FEEDBACK_TTL_DAYS,
    now: Optional[datetime] = None,
) -> Optional[FeedbackRequest]:
    """
    Runs on the background worker after a check-out. Creates at most one
    request per (user, gathering); returns None when one already exists.
    """
    now = now or utcnow()

    with session_factory() as db:
        existing = (
            db.query(FeedbackRequest)
            .filter(FeedbackRequest.user_id == user_id, FeedbackRequest.gathering_id == gathering_id)
            .first()
        )
        if existing is not None:
            logger.debug(f"Feedback already requested | user={user_id} gathering={gathering_id}")
            return None

        req = FeedbackRequest(
            user_id=user_id,
            gathering_id=gathering_id,
            gathering_name=gathering_name,
            gathering_address=gathering_address,
            token=secrets.token_hex(32),
            expires_at=now + timedelta(days=ttl_days),
            email_sent=False,
            created_at=now,
        )
        db.add(req)
        try:
            db.commit()
        except IntegrityError:
            # a concurrent check-out won the unique (user_id, gathering_id) race
            db.rollback()
            logger.debug(f"Feedback request raced | user={user_id} gathering={gathering_id}")
            return None
        db.refresh(req)
        logger.info(f"Feedback request created | user={user_id} gathering={gathering_id}")

        profile = db.get(Profile, user_id)
        if profile is None or not profile.email:
            logger.debug(f"No email on file for user={user_id}, feedback email skipped")
            return req

        mail = feedback_email(
            gathering_name or "your night out",
            gathering_address,
            feedback_url(req.token),
            ttl_days=ttl_days,
        )
        if notifier.send_email(profile.email, mail["subject"], mail["html"]):
            req.email_sent = True
            req.email_sent_at = utcnow()
            db.commit()
            db.refresh(req)

        return req


def get_feedback_request(db: Session, token: str, now: Optional[datetime] = None) -> FeedbackRequest:
    req = db.query(FeedbackRequest).filter(FeedbackRequest.token == token).first()
    if req is None:
        raise NotFoundError("Feedback request not found or expired")

    if req.submitted:
        raise BadRequestError("Thank you! You have already submitted feedback for this event.")

    if req.expires_at < (now or utcnow()):
        raise ExpiredError("This feedback link has expired.")

    return req


def submit_feedback(
    db: Session,
    token: str,
    rating: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FeedbackRequest:
    now = now or utcnow()
    req = get_feedback_request(db, token, now=now)

    req.rating = rating
    req.comment = comment.strip() if comment else None
    req.submitted = True
    req.submitted_at = now
    db.commit()
    db.refresh(req)

    logger.info(f"Feedback submitted | gathering={req.gathering_id} rating={rating}")
    return req
