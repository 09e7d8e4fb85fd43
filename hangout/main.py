import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from hangout.api.deps import get_broadcaster, get_worker
from hangout.api.router import api_router
from hangout.api.routes import realtime
from hangout.core import config
from hangout.core.db import SessionLocal
from hangout.core.errors import HangoutError, hangout_error_handler
from hangout.core.init_db import init_db
from hangout.core.logging import setup_logging
from hangout.realtime.hub import hub
from hangout.services.scheduler import ScheduledSweeper

setup_logging()
logger.info("Starting Hangout backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    hub.bind_loop(asyncio.get_running_loop())

    sweeper = None
    if config.SCHEDULER_ENABLED:
        sweeper = ScheduledSweeper(SessionLocal, get_broadcaster(), tz_name=config.APP_TIMEZONE)
        sweeper.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")

    yield

    if sweeper is not None:
        sweeper.stop()
    get_worker().shutdown(wait=True)
    logger.info("Hangout backend stopped")


app = FastAPI(
    title="Hangout Backend",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(HangoutError, hangout_error_handler)

# All API routes
app.include_router(api_router)

# Realtime presence feed
app.include_router(realtime.router)


@app.get("/health")
def health():
    logger.debug("Health check hit")
    return {"status": "ok"}
