"""
Check-in / check-out orchestration.

A user moves NotPresent -> Present on a successful check-in and back on
check-out, a newer check-in elsewhere, an expiry sweep or the nightly reset.
Only the registry writes presence state; this module validates, broadcasts
and hands slow side effects to the background worker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.orm import Session

from hangout.core.checkin_config import CHECKIN_RADIUS_KM, GEOFENCE_MODE, GEOFENCE_MODES
from hangout.core.db import SessionLocal
from hangout.core.errors import ExpiredError, MissingInputError, MissingLocationError, NotFoundError
from hangout.core.time import utcnow
from hangout.models.gathering import Gathering, GatheringInterest
from hangout.models.presence import PresenceRecord
from hangout.models.profile import Profile
from hangout.schemas.enums import CheckinStatus, GatheringKind
from hangout.schemas.profile import ProfileView
from hangout.services.broadcaster import PresenceBroadcaster
from hangout.services.compatibility import filter_compatible
from hangout.services.feedback import request_feedback
from hangout.services.geo import haversine_km, km_to_miles, within_degree_box
from hangout.services.notifier import Notifier, checkin_sms_text
from hangout.services.presence_registry import PresenceRegistry
from hangout.services.profiles import ProfileStore
from hangout.services.worker import BackgroundWorker


@dataclass
class CheckinResult:
    status: CheckinStatus
    gathering: Gathering
    presence: Optional[PresenceRecord] = None
    users: List[Profile] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def checked_in(self) -> bool:
        return self.status == CheckinStatus.checked_in


def too_far_message(distance_km: float, gathering_name: str) -> str:
    return f"You are {km_to_miles(distance_km):.2f} miles away from {gathering_name}. Move closer to check in."


class CheckinService:
    def __init__(
        self,
        db: Session,
        broadcaster: PresenceBroadcaster,
        worker: BackgroundWorker,
        notifier: Notifier,
        radius_km: float = CHECKIN_RADIUS_KM,
        session_factory: Callable[[], Session] = SessionLocal,
        geofence: str = GEOFENCE_MODE,
    ):
        if geofence not in GEOFENCE_MODES:
            raise ValueError(f"Unknown geofence mode: {geofence}")

        self.db = db
        self.broadcaster = broadcaster
        self.worker = worker
        self.notifier = notifier
        self.radius_km = radius_km
        self.geofence = geofence
        self.session_factory = session_factory

        self.registry = PresenceRegistry(db)
        self.profiles = ProfileStore(db)

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------

    def check_in_event(
        self,
        user_id: str,
        gathering_id: str,
        lat: Optional[float],
        lng: Optional[float],
        now: Optional[datetime] = None,
    ) -> CheckinResult:
        gathering = self._get_event(gathering_id)

        now = now or utcnow()
        if gathering.end_time is not None and now >= gathering.end_time:
            raise ExpiredError("This event has ended")

        if lat is None or lng is None:
            raise MissingInputError("Location is required to check in")

        if gathering.lat is not None and gathering.lng is not None:
            distance_km = haversine_km(lat, lng, gathering.lat, gathering.lng)
            if not self._within_geofence(lat, lng, gathering, distance_km):
                logger.info(
                    f"Check-in too far | user={user_id} gathering={gathering_id} distance_km={distance_km:.3f}"
                )
                return CheckinResult(
                    status=CheckinStatus.too_far,
                    gathering=gathering,
                    message=too_far_message(distance_km, gathering.name),
                )
        else:
            logger.warning(f"Event {gathering_id} has no anchor, skipping geofence")

        return self._admit(user_id, gathering, lat, lng, now)

    def check_in_place(
        self,
        user_id: str,
        place_id: Optional[str],
        place_name: Optional[str] = None,
        place_address: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> CheckinResult:
        if not place_id:
            raise MissingInputError("Missing required field: placeId")

        gathering = self._ensure_place(place_id, place_name, place_address, lat, lng)
        return self._admit(user_id, gathering, lat, lng, now or utcnow())

    def _admit(
        self,
        user_id: str,
        gathering: Gathering,
        lat: Optional[float],
        lng: Optional[float],
        now: datetime,
    ) -> CheckinResult:
        viewer = self.profiles.get_profile(user_id)
        if viewer is None:
            raise MissingLocationError("Create a profile before checking in")

        previous = self.registry.get_record(user_id)
        previous_gathering_id = previous.gathering_id if previous else None

        record, joined = self.registry.check_in(user_id, gathering.id, lat=lat, lng=lng, now=now)

        if previous_gathering_id and previous_gathering_id != gathering.id:
            self.broadcaster.user_checked_out(previous_gathering_id, user_id)

        present = self.registry.list_present(gathering.id, excluding=user_id)
        compatible = filter_compatible(viewer, self.profiles.find_by_ids(present))

        # a repeat check-in only refreshes the record; the room already knows
        if joined:
            self.broadcaster.user_checked_in(gathering.id, _public_view(viewer))
            self._notify_present(viewer, gathering, compatible)
        else:
            logger.debug(f"Repeat check-in | user={user_id} gathering={gathering.id}")

        return CheckinResult(
            status=CheckinStatus.checked_in,
            gathering=gathering,
            presence=record,
            users=compatible,
        )

    def _notify_present(self, viewer: Profile, gathering: Gathering, compatible: List[Profile]) -> None:
        body = checkin_sms_text(viewer.name, gathering.name)
        for other in compatible:
            if not other.phone_number:
                continue
            self.worker.submit(
                f"checkin-sms user={other.user_id} gathering={gathering.id}",
                self.notifier.send_sms,
                other.phone_number,
                body,
            )

    # ------------------------------------------------------------------
    # Check-out
    # ------------------------------------------------------------------

    def check_out(self, user_id: str, gathering_id: Optional[str], now: Optional[datetime] = None) -> bool:
        if not gathering_id:
            raise MissingInputError("Missing gathering id")

        gathering = self.db.get(Gathering, gathering_id)
        if gathering is None:
            raise NotFoundError("Gathering not found")

        removed = self.registry.check_out(user_id, gathering_id, now=now)
        if not removed:
            return False

        self.broadcaster.user_checked_out(gathering_id, user_id)
        self.worker.submit(
            f"feedback-request user={user_id} gathering={gathering_id}",
            request_feedback,
            self.session_factory,
            self.notifier,
            user_id,
            gathering_id,
            gathering.name,
            gathering.address,
        )
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_compatible(self, user_id: str, gathering_id: str) -> List[Profile]:
        if self.db.get(Gathering, gathering_id) is None:
            raise NotFoundError("Gathering not found")

        viewer = self.profiles.get_profile(user_id)
        if viewer is None:
            raise NotFoundError("Profile not found")

        present = self.registry.list_present(gathering_id, excluding=user_id)
        return filter_compatible(viewer, self.profiles.find_by_ids(present))

    def get_presence(self, user_id: str) -> Optional[PresenceRecord]:
        return self.registry.get_record(user_id)

    def count_at_place(self, place_id: str) -> int:
        return self.registry.count_present(place_id)

    # ------------------------------------------------------------------
    # Going
    # ------------------------------------------------------------------

    def toggle_interest(self, user_id: str, gathering_id: str) -> tuple[bool, int]:
        self._get_event(gathering_id)
        params = {"gathering_id": gathering_id, "user_id": user_id}

        removed = self.db.execute(
            text(
                """
                DELETE FROM gathering_interest
                WHERE gathering_id = :gathering_id AND user_id = :user_id
                """
            ),
            params,
        ).rowcount

        if not removed:
            self.db.execute(
                text(
                    """
                    INSERT INTO gathering_interest (gathering_id, user_id, created_at)
                    VALUES (:gathering_id, :user_id, CURRENT_TIMESTAMP)
                    ON CONFLICT (gathering_id, user_id) DO NOTHING
                    """
                ),
                params,
            )
        self.db.commit()

        is_going = not removed
        count = (
            self.db.query(GatheringInterest)
            .filter(GatheringInterest.gathering_id == gathering_id)
            .count()
        )

        logger.info(f"Going toggled | user={user_id} event={gathering_id} going={is_going} count={count}")
        self.broadcaster.going_updated(gathering_id, count, user_id)
        return is_going, count

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _within_geofence(self, lat: float, lng: float, gathering: Gathering, distance_km: float) -> bool:
        if self.geofence == "degree_box":
            return within_degree_box(lat, lng, gathering.lat, gathering.lng)
        return distance_km <= self.radius_km

    def _get_event(self, gathering_id: str) -> Gathering:
        gathering = self.db.get(Gathering, gathering_id)
        if gathering is None or not gathering.is_event:
            raise NotFoundError("Event not found")
        return gathering

    def _ensure_place(
        self,
        place_id: str,
        name: Optional[str],
        address: Optional[str],
        lat: Optional[float],
        lng: Optional[float],
    ) -> Gathering:
        # places are created on first check-in and keep their first-seen details
        self.db.execute(
            text(
                """
                INSERT INTO gathering (id, kind, name, address, lat, lng, created_at)
                VALUES (:id, 'place', :name, :address, :lat, :lng, CURRENT_TIMESTAMP)
                ON CONFLICT (id) DO NOTHING
                """
            ),
            {"id": place_id, "name": name or place_id, "address": address, "lat": lat, "lng": lng},
        )
        self.db.commit()

        gathering = self.db.get(Gathering, place_id)
        if gathering is None or gathering.kind != GatheringKind.place:
            raise NotFoundError("Place not found")
        return gathering


def _public_view(profile: Profile) -> dict:
    return ProfileView.model_validate(profile).model_dump(mode="json", by_alias=True)
