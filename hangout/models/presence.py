from sqlalchemy import Column, String, Float, DateTime, Index
from sqlalchemy.sql import func

from hangout.core.db import Base

class PresenceRecord(Base):
    __tablename__ = "presence"

    user_id = Column(String, primary_key=True, index=True)

    # null means "not checked in anywhere"
    gathering_id = Column(String, nullable=True)

    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_presence_gathering", "gathering_id"),
    )
