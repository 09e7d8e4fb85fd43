from loguru import logger
from hangout.core.db import engine, Base

# Import all models so SQLAlchemy registers them
from hangout.models.gathering import Gathering, GatheringPresence, GatheringInterest
from hangout.models.presence import PresenceRecord
from hangout.models.profile import Profile
from hangout.models.feedback import FeedbackRequest

def init_db():
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
