import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings
from app.db.base import Base

logger = logging.getLogger(__name__)

settings = get_settings()

is_sqlite = settings.database_url.startswith("sqlite")
connect_args = {"check_same_thread": False} if is_sqlite else {}
logger.debug(f"Planner database: {'SQLite' if is_sqlite else 'PostgreSQL'}")
engine = create_engine(settings.database_url, connect_args=connect_args)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def init_db() -> None:
    """Create any missing planner tables."""
    import app.models  # noqa: F401  (registers every mapper on Base)

    Base.metadata.create_all(bind=engine)
    logger.info("Planner tables ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
