from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hangout.api.deps import get_checkin_service
from hangout.api.responses import checkin_response
from hangout.core.auth import get_current_user_id
from hangout.core.db import get_db
from hangout.core.errors import MissingInputError
from hangout.schemas.presence import (
    CheckinResponse,
    CheckoutResponse,
    NearbyPlace,
    PlaceCheckinRequest,
    PlaceCheckoutRequest,
    PlaceCountResponse,
)
from hangout.schemas.profile import ProfileView
from hangout.services.checkin import CheckinService
from hangout.services.places import nearby_places

router = APIRouter()


@router.get("/nearby", response_model=List[NearbyPlace])
def places_nearby(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    db: Session = Depends(get_db),
):
    if lat is None or lng is None:
        raise MissingInputError("Missing lat or lng")
    return [NearbyPlace.model_validate(p) for p in nearby_places(db, lat, lng)]


@router.post("/checkin", response_model=CheckinResponse)
def checkin_place(
    payload: PlaceCheckinRequest,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    result = service.check_in_place(
        user_id,
        payload.place_id,
        place_name=payload.place_name,
        place_address=payload.place_address,
        lat=payload.lat,
        lng=payload.lng,
    )
    return checkin_response(result)


@router.post("/checkout", response_model=CheckoutResponse)
def checkout_place(
    payload: PlaceCheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    service.check_out(user_id, payload.place_id)
    return CheckoutResponse(message="Checked out successfully")


@router.get("/users", response_model=List[ProfileView])
def users_at_place(
    place_id: Optional[str] = Query(None, alias="placeId"),
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    if not place_id:
        raise MissingInputError("Missing placeId")
    return [ProfileView.model_validate(p) for p in service.list_compatible(user_id, place_id)]


@router.get("/{place_id}/count", response_model=PlaceCountResponse)
def place_user_count(
    place_id: str,
    service: CheckinService = Depends(get_checkin_service),
):
    return PlaceCountResponse(place_id=place_id, count=service.count_at_place(place_id))
