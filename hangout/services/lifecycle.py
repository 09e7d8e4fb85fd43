"""
Event lifecycle: creation and discovery, the expiry sweep and the nightly
blanket reset. The sweep and the reset are independent; both go through
the presence registry.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from hangout.core.checkin_config import (
    AUTO_CHECKOUT_MESSAGE,
    EXPIRY_SWEEP_SECONDS,
    FORCE_CHECKOUT_MESSAGE,
    NEARBY_EVENTS_RADIUS_KM,
)
from hangout.core.errors import BadRequestError, NotFoundError
from hangout.core.time import to_naive_utc, utcnow
from hangout.models.gathering import Gathering, GatheringInterest, GatheringPresence
from hangout.schemas.enums import GatheringKind
from hangout.schemas.gathering import EventCreateRequest, EventSummary, GatheringOut
from hangout.services.broadcaster import PresenceBroadcaster
from hangout.services.geo import haversine_km
from hangout.services.geocoding import geocode_address
from hangout.services.presence_registry import PresenceRegistry

EVENT_REMOVED_MESSAGE = "This event has been removed"


class GatheringLifecycle:
    def __init__(
        self,
        db: Session,
        broadcaster: PresenceBroadcaster,
        geocoder: Callable[[str], Tuple[float, float]] = geocode_address,
    ):
        self.db = db
        self.broadcaster = broadcaster
        self.geocoder = geocoder
        self.registry = PresenceRegistry(db)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, payload: EventCreateRequest) -> Gathering:
        start = to_naive_utc(payload.start_time)
        end = to_naive_utc(payload.end_time)
        if end <= start:
            raise BadRequestError("End time must be after start time")

        lat, lng = payload.lat, payload.lng
        if lat is None or lng is None:
            lat, lng = self.geocoder(payload.address)

        event = Gathering(
            kind=GatheringKind.event,
            name=payload.name.strip(),
            address=payload.address.strip(),
            city=payload.city,
            state=payload.state,
            description=payload.description,
            lat=lat,
            lng=lng,
            start_time=start,
            end_time=end,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        logger.info(f"Event created | id={event.id} name={event.name!r} ends={event.end_time}")
        return event

    def delete_event(self, gathering_id: str, now: Optional[datetime] = None) -> List[str]:
        event = self.db.get(Gathering, gathering_id)
        if event is None or not event.is_event:
            raise NotFoundError("Event not found")

        evicted = self.registry.clear_gathering(gathering_id, now=now)
        for user_id in evicted:
            self.broadcaster.force_checkout(gathering_id, user_id, EVENT_REMOVED_MESSAGE)

        self.db.query(GatheringInterest).filter(GatheringInterest.gathering_id == gathering_id).delete()
        self.db.query(GatheringPresence).filter(GatheringPresence.gathering_id == gathering_id).delete()
        self.db.delete(event)
        self.db.commit()

        self.broadcaster.event_expired(gathering_id)
        logger.info(f"Event deleted | id={gathering_id} evicted={len(evicted)}")
        return evicted

    def list_active_events(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> List[EventSummary]:
        now = now or utcnow()
        events = (
            self.db.query(Gathering)
            .filter(Gathering.kind == GatheringKind.event, Gathering.end_time > now)
            .order_by(Gathering.start_time.asc())
            .all()
        )
        if not events:
            return []

        ids = [e.id for e in events]
        going = dict(
            self.db.query(GatheringInterest.gathering_id, func.count())
            .filter(GatheringInterest.gathering_id.in_(ids))
            .group_by(GatheringInterest.gathering_id)
            .all()
        )
        present = dict(
            self.db.query(GatheringPresence.gathering_id, func.count())
            .filter(GatheringPresence.gathering_id.in_(ids))
            .group_by(GatheringPresence.gathering_id)
            .all()
        )
        mine = set()
        if user_id:
            mine = {
                gid for (gid,) in self.db.query(GatheringInterest.gathering_id)
                .filter(GatheringInterest.user_id == user_id, GatheringInterest.gathering_id.in_(ids))
                .all()
            }

        return [
            EventSummary(
                **GatheringOut.model_validate(e).model_dump(),
                going_count=going.get(e.id, 0),
                checked_in_count=present.get(e.id, 0),
                is_user_going=e.id in mine,
            )
            for e in events
        ]

    def nearby_events(
        self,
        lat: float,
        lng: float,
        radius_km: float = NEARBY_EVENTS_RADIUS_KM,
        now: Optional[datetime] = None,
    ) -> List[Tuple[Gathering, float]]:
        """Events running right now within radius_km, nearest first."""
        now = now or utcnow()
        events = (
            self.db.query(Gathering)
            .filter(
                Gathering.kind == GatheringKind.event,
                Gathering.start_time <= now,
                Gathering.end_time > now,
                Gathering.lat.isnot(None),
                Gathering.lng.isnot(None),
            )
            .all()
        )

        hits = []
        for e in events:
            d = haversine_km(lat, lng, e.lat, e.lng)
            if d <= radius_km:
                hits.append((e, d))

        hits.sort(key=lambda pair: pair[1])
        return hits

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    def sweep_expired(self, now: Optional[datetime] = None, window_seconds: float = EXPIRY_SWEEP_SECONDS) -> List[str]:
        """
        Expire events that ended within the last window, plus any ended event
        that still has people checked in (a missed tick, or a failed pass).
        Returns the ids that were processed.
        """
        now = now or utcnow()
        since = now - timedelta(seconds=window_seconds)

        just_ended = {
            gid for (gid,) in self.db.query(Gathering.id)
            .filter(
                Gathering.kind == GatheringKind.event,
                Gathering.end_time <= now,
                Gathering.end_time > since,
            )
            .all()
        }
        lingering = {
            gid for (gid,) in self.db.query(Gathering.id)
            .join(GatheringPresence, GatheringPresence.gathering_id == Gathering.id)
            .filter(Gathering.kind == GatheringKind.event, Gathering.end_time <= now)
            .distinct()
            .all()
        }

        processed = []
        for gathering_id in sorted(just_ended | lingering):
            try:
                self._expire(gathering_id, now)
                processed.append(gathering_id)
            except Exception:
                self.db.rollback()
                logger.exception(f"Expiry failed for event={gathering_id}, will retry next sweep")

        if processed:
            logger.info(f"Expiry sweep processed {len(processed)} event(s)")
        return processed

    def _expire(self, gathering_id: str, now: datetime) -> None:
        self.broadcaster.event_expired(gathering_id)

        evicted = self.registry.clear_gathering(gathering_id, now=now)
        for user_id in evicted:
            self.broadcaster.force_checkout(gathering_id, user_id, FORCE_CHECKOUT_MESSAGE)

        logger.info(f"Event expired | id={gathering_id} evicted={len(evicted)}")

    # ------------------------------------------------------------------
    # Nightly reset
    # ------------------------------------------------------------------

    def auto_checkout_all(self, now: Optional[datetime] = None) -> Dict[str, List[str]]:
        evicted = self.registry.clear_all(now=now)
        for gathering_id, user_ids in evicted.items():
            for user_id in user_ids:
                self.broadcaster.force_checkout(gathering_id, user_id, AUTO_CHECKOUT_MESSAGE)

        logger.info(f"Auto-checkout cleared {sum(len(u) for u in evicted.values())} user(s)")
        return evicted
