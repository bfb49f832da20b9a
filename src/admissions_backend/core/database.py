"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .base import Base
import structlog

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Manages database connections with connection pooling."""

    def __init__(self, database_url: str) -> None:
        """Initialize database manager.

        Args:
            database_url: SQLAlchemy connection URL
        """
        self.database_url = database_url
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self.engine is not None:
            logger.warning("Database engine already initialized")
            return

        if self.database_url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if self.database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_size": 10,  # Number of connections to maintain
                "max_overflow": 20,  # Additional connections when pool is full
                "pool_timeout": 30,  # Timeout for getting connection from pool
                "pool_recycle": 3600,  # Recycle connections after 1 hour
                "pool_pre_ping": True,  # Verify connections before using
            }

        self.engine = create_engine(
            self.database_url,
            echo=settings.log_level == "DEBUG",
            **engine_kwargs
        )

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

        logger.info("Database engine initialized", dialect=self.engine.dialect.name)

    def close(self) -> None:
        """Close database engine and dispose of connection pool."""
        if self.engine:
            self.engine.dispose()
            logger.info("Database engine closed")
            self.engine = None
            self.SessionLocal = None

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get database session with automatic cleanup.

        Yields:
            Database session

        Raises:
            RuntimeError: If database is not initialized
        """
        if self.SessionLocal is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self.SessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all database tables."""
        if self.engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        # Register ORM models on the metadata before creating tables
        from admissions_backend import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is accessible, False otherwise
        """
        try:
            if self.engine is None:
                return False

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False


# Global database manager instance
db_manager = DatabaseManager(settings.database_url)


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI to get database session.

    Yields:
        Database session
    """
    with db_manager.get_session() as session:
        yield session


def init_db() -> None:
    """Initialize database connection and create tables."""
    db_manager.initialize()
    db_manager.create_tables()


def close_db() -> None:
    """Close database connections."""
    db_manager.close()
