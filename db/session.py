# WORKFLOW: Database client construction and session management.
# Used by: API app factory, routers, offline import/export entry points
# Functions:
# 1. Database - engine + session factory, built once per process
# 2. get_database() / get_db() - FastAPI dependencies reading app.state
# 3. init_db() - Idempotent table creation
# 4. check_db_connection() - Health check for database connectivity
#
# Database lifecycle:
# Startup: Database(url) -> init_db() -> app.state.database
# Runtime: get_db() -> Session -> Query -> Close session
# Shutdown: Database.close() -> engine.dispose()

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request
import logging

from core.errors import StorageError

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the SQLAlchemy engine for ``database_url``."""
    if database_url.startswith("sqlite"):
        # A single shared connection keeps in-memory databases alive across threads.
        return create_engine(
            database_url,
            poolclass=StaticPool,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        connect_args={
            "options": "-c timezone=utc"
        }
    )


class Database:
    """Explicitly constructed storage client shared by the pipelines."""

    def __init__(self, database_url: str, echo: bool = False):
        self.url = database_url
        self.engine = build_engine(database_url, echo=echo)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        """Open a new session; use it as a context manager to close it."""
        return self.session_factory()

    def close(self) -> None:
        """Dispose of the engine and every pooled connection."""
        self.engine.dispose()
        logger.info("Database connection closed")


def get_database(request: Request) -> Database:
    """Dependency returning the app's Database client."""
    return request.app.state.database


def get_db(request: Request):
    """
    Dependency to get database session.
    Yields a database session and ensures it's closed after use.
    """
    db = get_database(request).session()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db(database: Database) -> None:
    """
    Create the prices table if it does not exist yet.

    Safe to call on every startup: existing tables and their rows are left alone.
    """
    from db.models import Base

    try:
        Base.metadata.create_all(bind=database.engine)
        logger.info("Database connected and table ensured")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        raise StorageError("Failed to initialize database") from e


def check_db_connection(database: Database) -> bool:
    """
    Check if database connection is working.
    """
    try:
        with database.engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
