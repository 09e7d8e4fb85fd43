from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from hangout.models.profile import Profile


class ProfileStore:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.db.get(Profile, user_id)

    def find_by_ids(self, user_ids: Iterable[str]) -> List[Profile]:
        ids = list(user_ids)
        if not ids:
            return []

        return self.db.query(Profile).filter(Profile.user_id.in_(ids)).order_by(Profile.user_id).all()
