from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hangout.core.db import get_db
from hangout.schemas.feedback import FeedbackRequestOut, FeedbackSubmitRequest, FeedbackSubmitResponse
from hangout.services.feedback import get_feedback_request, submit_feedback

router = APIRouter()


# the token in the emailed link is the only credential here
@router.get("/{token}", response_model=FeedbackRequestOut)
def read_feedback_request(token: str, db: Session = Depends(get_db)):
    return FeedbackRequestOut.model_validate(get_feedback_request(db, token))


@router.post("/{token}", response_model=FeedbackSubmitResponse)
def submit_feedback_request(token: str, payload: FeedbackSubmitRequest, db: Session = Depends(get_db)):
    req = submit_feedback(db, token, payload.rating, payload.comment)
    return FeedbackSubmitResponse(message="Thank you for your feedback!", rating=req.rating)
