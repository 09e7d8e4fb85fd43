from datetime import datetime
from typing import Optional

from pydantic import Field

from hangout.schemas.base import BaseSchema


class FeedbackRequestOut(BaseSchema):
    gathering_id: str
    gathering_name: Optional[str] = None
    gathering_address: Optional[str] = None
    created_at: datetime
    expires_at: datetime


class FeedbackSubmitRequest(BaseSchema):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class FeedbackSubmitResponse(BaseSchema):
    message: str
    rating: int
