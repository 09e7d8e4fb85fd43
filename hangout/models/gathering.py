import uuid
from sqlalchemy import Column, String, Float, DateTime, Enum, ForeignKey, Index, CheckConstraint
from sqlalchemy.sql import func

from hangout.core.db import Base
from hangout.schemas.enums import GatheringKind


class Gathering(Base):
    __tablename__ = "gathering"

    # events get a uuid; places reuse the external place id
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(Enum(GatheringKind, name="gathering_kind_enum"), nullable=False)

    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    description = Column(String, nullable=True)

    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    # events only
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "end_time IS NULL OR start_time IS NULL OR end_time > start_time",
            name="gathering_window_check",
        ),
        Index("idx_gathering_end_time", "end_time"),
    )

    @property
    def is_event(self) -> bool:
        return self.kind == GatheringKind.event


class GatheringPresence(Base):
    """Present-set row. The composite key makes "add if absent" a single insert."""

    __tablename__ = "gathering_presence"

    gathering_id = Column(String, ForeignKey("gathering.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String, primary_key=True, index=True)
    checked_in_at = Column(DateTime, nullable=False, server_default=func.now())


class GatheringInterest(Base):
    """Users who marked an event as "going"."""

    __tablename__ = "gathering_interest"

    gathering_id = Column(String, ForeignKey("gathering.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String, primary_key=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
