from typing import Optional

from fastapi import APIRouter, Depends

from hangout.api.deps import get_checkin_service
from hangout.core.auth import get_current_user_id
from hangout.schemas.presence import PresenceOut
from hangout.services.checkin import CheckinService

router = APIRouter()


@router.get("/me", response_model=Optional[PresenceOut])
def my_presence(
    user_id: str = Depends(get_current_user_id),
    service: CheckinService = Depends(get_checkin_service),
):
    """Where the caller is checked in right now. Clients call this to resync after reconnecting."""
    record = service.get_presence(user_id)
    return PresenceOut.model_validate(record) if record else None
