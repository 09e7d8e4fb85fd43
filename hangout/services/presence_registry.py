from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from loguru import logger
from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.orm import Session

from hangout.core.errors import NotFoundError
from hangout.core.time import utcnow
from hangout.models.gathering import Gathering
from hangout.models.presence import PresenceRecord

_NOW = bindparam("now", type_=DateTime)


class PresenceRegistry:
    """
    Authoritative user -> gathering mapping.

    Two views of the same relation are kept in step inside one transaction:
    the per-user `presence` row and the per-gathering `gathering_presence`
    present-set. Every mutation starts by writing the user's presence row so
    that concurrent requests for the same user serialize on that row lock.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def check_in(
        self,
        user_id: str,
        gathering_id: str,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[PresenceRecord, bool]:
        """
        Returns the refreshed record and whether the user newly joined the
        gathering (False for a repeat check-in where they already were).
        """
        if self.db.get(Gathering, gathering_id) is None:
            raise NotFoundError("Gathering not found")

        now = now or utcnow()
        params = {
            "user_id": user_id,
            "gathering_id": gathering_id,
            "lat": lat,
            "lng": lng,
            "now": now,
        }

        self.db.execute(
            text(
                """
                INSERT INTO presence (user_id, gathering_id, lat, lng, updated_at)
                VALUES (:user_id, :gathering_id, :lat, :lng, :now)
                ON CONFLICT(user_id) DO UPDATE SET
                    gathering_id = excluded.gathering_id,
                    lat = COALESCE(excluded.lat, presence.lat),
                    lng = COALESCE(excluded.lng, presence.lng),
                    updated_at = excluded.updated_at
                """
            ).bindparams(_NOW),
            params,
        )

        # at most one location: leave wherever else the user was
        self.db.execute(
            text(
                """
                DELETE FROM gathering_presence
                WHERE user_id = :user_id AND gathering_id != :gathering_id
                """
            ),
            params,
        )

        joined = self.db.execute(
            text(
                """
                INSERT INTO gathering_presence (gathering_id, user_id, checked_in_at)
                VALUES (:gathering_id, :user_id, :now)
                ON CONFLICT (gathering_id, user_id) DO NOTHING
                """
            ).bindparams(_NOW),
            params,
        ).rowcount == 1

        self.db.commit()
        logger.info(f"Presence check-in | user={user_id} gathering={gathering_id} joined={joined}")

        return self.get_record(user_id), joined

    def check_out(self, user_id: str, gathering_id: str, now: Optional[datetime] = None) -> bool:
        """Returns False when the user was not present (not an error)."""
        params = {"user_id": user_id, "gathering_id": gathering_id, "now": now or utcnow()}

        # only clear the record if it still points here; a newer check-in elsewhere wins
        self.db.execute(
            text(
                """
                UPDATE presence
                SET gathering_id = NULL, updated_at = :now
                WHERE user_id = :user_id AND gathering_id = :gathering_id
                """
            ).bindparams(_NOW),
            params,
        )

        removed = self.db.execute(
            text(
                """
                DELETE FROM gathering_presence
                WHERE gathering_id = :gathering_id AND user_id = :user_id
                """
            ),
            params,
        ).rowcount

        self.db.commit()

        if removed:
            logger.info(f"Presence check-out | user={user_id} gathering={gathering_id}")
        else:
            logger.debug(f"Check-out no-op, user not present | user={user_id} gathering={gathering_id}")

        return bool(removed)

    def clear_gathering(self, gathering_id: str, now: Optional[datetime] = None) -> List[str]:
        """
        Evict everyone currently present. Only the users seen in the snapshot
        are removed, so a check-in that lands after the snapshot survives.
        """
        user_ids = sorted(self.list_present(gathering_id))
        if not user_ids:
            return []

        now = now or utcnow()
        for user_id in user_ids:
            params = {"user_id": user_id, "gathering_id": gathering_id, "now": now}
            self.db.execute(
                text(
                    """
                    UPDATE presence
                    SET gathering_id = NULL, updated_at = :now
                    WHERE user_id = :user_id AND gathering_id = :gathering_id
                    """
                ).bindparams(_NOW),
                params,
            )
            self.db.execute(
                text(
                    """
                    DELETE FROM gathering_presence
                    WHERE gathering_id = :gathering_id AND user_id = :user_id
                    """
                ),
                params,
            )

        self.db.commit()
        logger.info(f"Cleared {len(user_ids)} users from gathering={gathering_id}")
        return user_ids

    def clear_all(self, now: Optional[datetime] = None) -> Dict[str, List[str]]:
        """Blanket reset of every present-set and every presence record."""
        rows = self.db.execute(
            text("SELECT gathering_id, user_id FROM gathering_presence")
        ).mappings().all()

        evicted: Dict[str, List[str]] = defaultdict(list)
        for r in rows:
            evicted[str(r["gathering_id"])].append(str(r["user_id"]))

        self.db.execute(text("DELETE FROM gathering_presence"))
        self.db.execute(
            text(
                """
                UPDATE presence
                SET gathering_id = NULL, updated_at = :now
                WHERE gathering_id IS NOT NULL
                """
            ).bindparams(_NOW),
            {"now": now or utcnow()},
        )
        self.db.commit()

        logger.info(f"Cleared all presence | users={len(rows)} gatherings={len(evicted)}")
        return dict(evicted)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, user_id: str) -> Optional[PresenceRecord]:
        record = self.db.get(PresenceRecord, user_id)
        if record is not None:
            self.db.refresh(record)
        return record

    def list_present(self, gathering_id: str, excluding: Optional[str] = None) -> Set[str]:
        rows = self.db.execute(
            text(
                """
                SELECT user_id
                FROM gathering_presence
                WHERE gathering_id = :gathering_id
                """
            ),
            {"gathering_id": gathering_id},
        ).mappings().all()

        return {str(r["user_id"]) for r in rows if str(r["user_id"]) != excluding}

    def count_present(self, gathering_id: str) -> int:
        row = self.db.execute(
            text(
                """
                SELECT count(*) AS c
                FROM gathering_presence
                WHERE gathering_id = :gathering_id
                """
            ),
            {"gathering_id": gathering_id},
        ).mappings().first()
        return int(row["c"] if row and row.get("c") is not None else 0)
