from hangout.schemas.gathering import GatheringOut
from hangout.schemas.presence import CheckinResponse, PresenceOut
from hangout.schemas.profile import ProfileView
from hangout.services.checkin import CheckinResult


def checkin_response(result: CheckinResult) -> CheckinResponse:
    # too_far is a normal 200 carrying the rejection; only checked_in has presence/users
    return CheckinResponse(
        status=result.status,
        presence=PresenceOut.model_validate(result.presence) if result.presence else None,
        users=[ProfileView.model_validate(p) for p in result.users],
        gathering=GatheringOut.model_validate(result.gathering),
        message=result.message,
    )
