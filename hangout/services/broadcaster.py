from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from loguru import logger


class Transport(Protocol):
    def emit(self, event: str, data: Dict[str, Any], room: Optional[str] = None) -> None: ...


USER_CHECKED_IN = "user-checked-in"
USER_CHECKED_OUT = "user-checked-out"
FORCE_CHECKOUT = "force-checkout"
EVENT_EXPIRED = "event-expired"
EVENT_GOING_UPDATED = "event-going-updated"


def gathering_room(gathering_id: str) -> str:
    return f"gathering:{gathering_id}"


class PresenceBroadcaster:
    """
    Best-effort publisher of presence changes. Nothing here is durable:
    clients resync from the registry on reconnect, so a lost message only
    delays convergence.
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    def _emit(self, event: str, data: Dict[str, Any], room: Optional[str] = None) -> None:
        try:
            self.transport.emit(event, data, room=room)
            logger.debug(f"Broadcast {event} -> {room or 'all'}")
        except Exception:
            logger.exception(f"Broadcast failed | event={event} room={room}")

    # ---------------------------
    # Room scoped
    # ---------------------------

    def user_checked_in(self, gathering_id: str, user: Dict[str, Any]) -> None:
        self._emit(
            USER_CHECKED_IN,
            {"user": user, "gatheringId": gathering_id},
            room=gathering_room(gathering_id),
        )

    def user_checked_out(self, gathering_id: str, user_id: str) -> None:
        self._emit(
            USER_CHECKED_OUT,
            {"userId": user_id, "gatheringId": gathering_id},
            room=gathering_room(gathering_id),
        )

    def force_checkout(self, gathering_id: str, user_id: str, message: str) -> None:
        self._emit(
            FORCE_CHECKOUT,
            {"message": message, "gatheringId": gathering_id, "userId": user_id},
            room=gathering_room(gathering_id),
        )

    # ---------------------------
    # Global
    # ---------------------------

    def event_expired(self, gathering_id: str) -> None:
        self._emit(EVENT_EXPIRED, {"gatheringId": gathering_id})

    def going_updated(self, gathering_id: str, count: int, user_id: str) -> None:
        self._emit(
            EVENT_GOING_UPDATED,
            {"gatheringId": gathering_id, "count": count, "userId": user_id},
        )
