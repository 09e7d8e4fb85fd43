from sqlalchemy import Column, String, Integer, Enum, DateTime, func, JSON
from hangout.core.db import Base
from hangout.schemas.enums import Gender, Orientation


class Profile(Base):
    __tablename__ = "profile"

    user_id = Column(String, primary_key=True)

    name = Column(String, nullable=False)
    age = Column(Integer, nullable=True)

    gender = Column(Enum(Gender, name="gender_enum"), nullable=False)
    orientation = Column(Enum(Orientation, name="orientation_enum"), nullable=False)

    profession = Column(String, nullable=True)
    bio = Column(String, nullable=True)

    # up to three tags like ["gaming","travel"]
    interests = Column(JSON, nullable=True)

    convo_starter = Column(String, nullable=True)
    profile_picture = Column(String, nullable=True)

    # contact channels, never exposed in listings
    phone_number = Column(String, nullable=True)
    email = Column(String, nullable=True)

    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
