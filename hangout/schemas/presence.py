from datetime import datetime
from typing import List, Optional

from pydantic import Field

from hangout.schemas.base import BaseSchema
from hangout.schemas.enums import CheckinStatus
from hangout.schemas.gathering import GatheringOut
from hangout.schemas.profile import ProfileView


# ---------- requests ----------
class CheckinRequest(BaseSchema):
    # optional so a missing coordinate surfaces as MissingInput, not a 422
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class PlaceCheckinRequest(BaseSchema):
    place_id: Optional[str] = None
    place_name: Optional[str] = None
    place_address: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class PlaceCheckoutRequest(BaseSchema):
    place_id: Optional[str] = None


# ---------- responses ----------
class PresenceOut(BaseSchema):
    user_id: str
    gathering_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    updated_at: datetime


class CheckinResponse(BaseSchema):
    status: CheckinStatus
    presence: Optional[PresenceOut] = None
    users: List[ProfileView] = []
    gathering: Optional[GatheringOut] = None
    message: Optional[str] = None


class CheckoutResponse(BaseSchema):
    message: str


class PlaceCountResponse(BaseSchema):
    place_id: str
    count: int


class Coordinates(BaseSchema):
    lat: float
    lng: float


class NearbyPlace(BaseSchema):
    place_id: str
    name: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    types: List[str] = []
    location: Coordinates
    open_now: Optional[bool] = None
    user_count: int = 0
