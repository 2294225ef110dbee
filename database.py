from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import os
import logging
from models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./card_scanner.db"


def resolve_database_url(database_url=None):
    """Normalize DATABASE_URL for SQLAlchemy, falling back to local SQLite"""
    if not database_url:
        logger.info("Using SQLite for local development")
        return DEFAULT_DATABASE_URL

    # Fix PostgreSQL URL format for SQLAlchemy
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+psycopg2://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return database_url


class DatabaseManager:
    """Manage database connections and operations"""

    def __init__(self, database_url=None):
        self.engine = None
        self.SessionLocal = None
        try:
            self._initialize_database(database_url or os.getenv("DATABASE_URL"))
        except Exception as e:
            logger.warning(f"Database initialization failed, will retry later: {str(e)}")
            # Don't fail the entire app startup

    def _initialize_database(self, database_url):
        """Initialize database connection"""
        try:
            database_url = resolve_database_url(database_url)

            if database_url.startswith("sqlite"):
                self.engine = create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
            else:
                self.engine = create_engine(database_url, pool_pre_ping=True)

            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

            Base.metadata.create_all(bind=self.engine)
            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            raise Exception(f"Database initialization failed: {str(e)}")

    def get_session(self):
        """Get database session"""
        return self.SessionLocal()

    def close(self):
        """Close database connection"""
        if self.engine:
            self.engine.dispose()


# Global database manager instance
db_manager = DatabaseManager()


def get_db():
    """Dependency to get database session"""
    if not db_manager.SessionLocal:
        from fastapi import HTTPException
        raise HTTPException(status_code=503, detail="Database not available")

    db = db_manager.get_session()
    try:
        yield db
    finally:
        db.close()
