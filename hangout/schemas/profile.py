from typing import List, Optional

from pydantic import field_validator

from hangout.schemas.base import BaseSchema
from hangout.schemas.enums import Gender, Orientation


class ProfileView(BaseSchema):
    """What other users see in a presence listing. Contact channels are left out."""

    user_id: str
    name: str
    age: Optional[int] = None
    gender: Gender
    orientation: Orientation
    profession: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = []
    convo_starter: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("interests", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return v or []
