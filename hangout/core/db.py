from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from hangout.core.config import DATABASE_URL, SQL_DEBUG

Base = declarative_base()


def make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, pool_pre_ping=True)

    options = {"connect_args": {"check_same_thread": False}}
    # an in-memory database lives and dies with its connection, so share one
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return create_engine(url, future=True, **options)


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@event.listens_for(engine, "before_cursor_execute")
def _log_statement(conn, cursor, statement, parameters, context, executemany):
    if SQL_DEBUG:
        logger.debug(f"SQL: {statement} | params={parameters}")


def get_db():
    """Request-scoped session for FastAPI routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
