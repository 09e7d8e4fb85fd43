from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from hangout.schemas.base import BaseSchema, TimestampedSchema
from hangout.schemas.enums import GatheringKind


class GatheringOut(TimestampedSchema):
    id: str
    kind: GatheringKind
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    description: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class EventSummary(GatheringOut):
    going_count: int = 0
    checked_in_count: int = 0
    is_user_going: bool = False


class NearbyEvent(GatheringOut):
    distance_km: float


class EventCreateRequest(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    start_time: datetime
    end_time: datetime
    city: Optional[str] = None
    state: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _coordinates_come_in_pairs(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


class EventCreatedResponse(BaseSchema):
    message: str
    event: GatheringOut


class GoingResponse(BaseSchema):
    is_going: bool
    going_count: int
