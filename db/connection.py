# db/connection.py - SQLAlchemy 2.0 engine, session factory and FastAPI dependency

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from urllib.parse import quote_plus
import logging

from config import DATABASE_URL, DB_HOST, DB_PORT, DB_NAME, DB_USERNAME, DB_PASSWORD

logger = logging.getLogger(__name__)


def build_database_url() -> str:
    """DATABASE_URL wins; otherwise assemble the PostgreSQL URL from DB_* settings."""
    if DATABASE_URL:
        return DATABASE_URL

    password = DB_PASSWORD
    if isinstance(password, (bytes, bytearray)):
        password = password.decode("utf-8")
    pw_quoted = quote_plus(str(password))
    return (
        f"postgresql://{DB_USERNAME}:{pw_quoted}"
        f"@{DB_HOST}:{DB_PORT}/{DB_NAME}?sslmode=disable"
    )


SQLALCHEMY_DATABASE_URL = build_database_url()

if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # Single shared connection so an in-memory database survives across sessions
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        """SQLite ignores ON DELETE rules unless foreign keys are switched on per connection"""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    logger.info(f"Database URL constructed for: {DB_USERNAME}@{DB_HOST}:{DB_PORT}/{DB_NAME}")
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,   # Recycle connections every hour
        connect_args={
            "application_name": "WorkHub_CRM_Backend",
            "connect_timeout": 10,
        }
    )

    @event.listens_for(engine, "connect")
    def set_connection_settings(dbapi_connection, connection_record):
        """Pin every pooled connection to UTC"""
        try:
            with dbapi_connection.cursor() as cursor:
                cursor.execute("SET timezone TO 'UTC'")
            dbapi_connection.commit()
        except Exception as e:
            logger.warning(f"Could not set timezone: {e}")


# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models
Base = declarative_base()


def get_db():
    """
    Database dependency with proper error handling
    """
    db = None
    try:
        db = SessionLocal()
        yield db
    except Exception as e:
        if isinstance(e, SQLAlchemyError):
            logger.error(f"Database session error: {e}")
        if db:
            db.rollback()
        raise
    finally:
        if db:
            db.close()


def check_database_connection():
    """
    Check if database connection is working
    """
    try:
        with engine.connect() as conn:
            test_value = conn.execute(text("SELECT 1 as test")).fetchone()

        if test_value and test_value[0] == 1:
            logger.info("✅ Database connection successful")
            return True
        logger.error("❌ Database query returned unexpected result")
        return False

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
