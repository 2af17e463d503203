import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from config import settings

from utils.structured_logging import get_logger, LogCategory

logger = get_logger("database")

# Test-friendly engine: use SQLite when NODE_ENV=test
if os.getenv("NODE_ENV") == "test":
    test_db_url = os.getenv("SQLALCHEMY_TEST_DATABASE_URL", "sqlite:///./test.db")
    engine = create_engine(test_db_url, connect_args={"check_same_thread": False})

    from models import Base  # Local import to avoid circular during prod startup

    Base.metadata.create_all(bind=engine)
else:
    engine = create_engine(
        settings.POSTGRES_URL,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,
        pool_timeout=30,
        echo=False,
        connect_args={
            "connect_timeout": 10,
            "application_name": "ailearning_api",
        },
    )


@event.listens_for(engine, "connect")
def set_postgresql_settings(dbapi_connection, connection_record):
    """Configure connection-level settings"""
    if os.getenv("NODE_ENV") == "test":
        return
    try:
        with dbapi_connection.cursor() as cursor:
            # Prevent runaway queries
            cursor.execute("SET statement_timeout = '30s'")
    except Exception as e:
        # Log but don't fail if PostgreSQL-specific settings can't be applied
        logger.warning(f"Could not apply PostgreSQL settings: {e}", category=LogCategory.DATABASE)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
