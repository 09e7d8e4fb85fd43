from fastapi import APIRouter

from hangout.api.routes import events
from hangout.api.routes import feedback
from hangout.api.routes import places
from hangout.api.routes import presence

api_router = APIRouter(prefix="/v1")

api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(places.router, prefix="/places", tags=["places"])
api_router.include_router(presence.router, prefix="/presence", tags=["presence"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
