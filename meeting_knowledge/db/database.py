"""
Database configuration and session management.
PostgreSQL in production; SQLite is supported for local runs and tests.
"""

from typing import Any, Dict, Generator

from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from meeting_knowledge.config import get_settings
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Build create_engine keyword arguments appropriate for the backend."""
    if database_url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live per connection, so every session must share one
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 300,  # Recycle connections every 5 minutes
    }


def build_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine for the given URL."""
    return create_engine(database_url, echo=False, **_engine_options(database_url))


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Yields:
        Database session that is automatically closed after use
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    This should be called during application startup.
    """
    # Register every model on Base.metadata before create_all
    from meeting_knowledge.models import knowledge, participant, transcript  # noqa: F401

    try:
        logger.info("Initializing database tables")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise
