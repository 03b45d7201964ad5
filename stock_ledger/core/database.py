"""
Stock Ledger Database Configuration
SQLAlchemy setup for the ledger, summary view and reorder policy tables
"""
from typing import Generator
import logging

from sqlalchemy import create_engine, MetaData, text
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

# Create SQLAlchemy engine with connection pooling
engine = create_engine(
    settings.DATABASE_URL,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_recycle=3600,  # Recycle connections after 1 hour
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Metadata with naming convention for constraints
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))


def get_db() -> Generator:
    """
    Request-scoped session for the ledger stores

    The stores only read, so a failed request is rolled back and nothing is
    written on its behalf.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(
            f"Rolling back ledger read session after {type(e).__name__}: {e}"
        )
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize database tables

    Creates the ledger, summary and policy tables if they do not exist
    """
    try:
        # Import models so they are registered with Base
        from stock_ledger.models import stock  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Ledger, summary and reorder policy tables ready")

    except Exception as e:
        logger.error(f"Could not create stock ledger tables: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Stock ledger database unreachable: {e}")
        return False
