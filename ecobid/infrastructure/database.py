"""
Database Connection
"""
import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ecobid.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def create_db_engine(database_url: str, settings: Optional[Settings] = None) -> Engine:
    """Create an engine; SQLite gets thread-shared connections instead of a sized pool"""
    settings = settings or get_settings()

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=settings.DEBUG,
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_engine() -> Engine:
    """Process-wide engine built from settings (singleton)"""
    global _engine

    if _engine is None:
        _engine = create_db_engine(get_settings().DATABASE_URL)

    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory

    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())

    return _session_factory


def init_db(engine: Optional[Engine] = None):
    """Initialize database tables"""
    from ecobid.models import Base
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("✅ Database tables created")


def check_db_connection(engine: Optional[Engine] = None) -> bool:
    """Test database connection"""
    from sqlalchemy import text

    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False
