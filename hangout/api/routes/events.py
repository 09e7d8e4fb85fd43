from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from hangout.api.deps import get_checkin_service, get_lifecycle
from hangout.api.responses import checkin_response
from hangout.core.auth import get_current_user_id, require_user_or_passphrase
from hangout.core.checkin_config import NEARBY_EVENTS_RADIUS_KM
from hangout.core.errors import MissingInputError
from hangout.schemas.gathering import (
    EventCreateRequest,
    EventCreatedResponse,
    EventSummary,
    GatheringOut,
    GoingResponse,
    NearbyEvent,
)
from hangout.schemas.presence import CheckinRequest, CheckinResponse, CheckoutResponse
from hangout.schemas.profile import ProfileView
from hangout.services.checkin import CheckinService
from hangout.services.lifecycle import GatheringLifecycle

router = APIRouter()


# ------------------------------------------------------------------
# Discovery / management
# ------------------------------------------------------------------

@router.get("", response_model=List[EventSummary])
def list_events(
    user_id: str = Depends(get_current_user_id),
    lifecycle: GatheringLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list_active_events(user_id)


@router.get("/nearby", response_model=List[NearbyEvent])
def nearby_events(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: float = Query(NEARBY_EVENTS_RADIUS_KM, alias="radiusKm", gt=0),
    lifecycle: GatheringLifecycle = Depends(get_lifecycle),
):
    if lat is None or lng is None:
        raise MissingInputError("Latitude and longitude are required")

    return [
        NearbyEvent(**GatheringOut.model_validate(e).model_dump(), distance_km=round(d, 3))
        for e, d in lifecycle.nearby_events(lat, lng, radius_km)
    ]


@router.post("", response_model=EventCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreateRequest,
    creator_id: Optional[str] = Depends(require_user_or_passphrase),
    lifecycle: GatheringLifecycle = Depends(get_lifecycle),
):
    event = lifecycle.create_event(payload)
    logger.info(f"Event {event.id} created by {creator_id or 'passphrase'}")
    return EventCreatedResponse(message="Event created successfully", event=GatheringOut.model_validate(event))


@router.delete("/{event_id}", response_model=CheckoutResponse)
def delete_event(
    event_id: str,
    _: Optional[str] = Depends(require_user_or_passphrase),
    lifecycle: GatheringLifecycle = Depends(get_lifecycle),
):
    lifecycle.delete_event(event_id)
    return CheckoutResponse(message="Event deleted")


# ------------------------------------------------------------------
# Presence
# ------------------------------------------------------------------

@router.post("/{event_id}/checkin", response_model=CheckinResponse)
def checkin_event(
    event_id: str,
    payload: Optional[CheckinRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    payload = payload or CheckinRequest()
    result = service.check_in_event(user_id, event_id, payload.lat, payload.lng)
    return checkin_response(result)


@router.post("/{event_id}/checkout", response_model=CheckoutResponse)
def checkout_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    service.check_out(user_id, event_id)
    return CheckoutResponse(message="Checked out successfully")


@router.get("/{event_id}/users", response_model=List[ProfileView])
def users_at_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    return [ProfileView.model_validate(p) for p in service.list_compatible(user_id, event_id)]


@router.post("/{event_id}/going", response_model=GoingResponse)
def toggle_going(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    is_going, count = service.toggle_interest(user_id, event_id)
    return GoingResponse(is_going=is_going, going_count=count)
