import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from brightpath.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def engine_options(database_url: str, log_level: str) -> dict:
    is_sqlite = database_url.startswith("sqlite")
    logger.debug(f"Database connection: {'SQLite' if is_sqlite else 'PostgreSQL'}")
    return {
        "connect_args": {"check_same_thread": False} if is_sqlite else {},
        "echo": log_level.upper() == "DEBUG",
        "pool_pre_ping": not is_sqlite,
    }


engine = create_engine(
    settings.database_url,
    **engine_options(settings.database_url, settings.log_level),
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
