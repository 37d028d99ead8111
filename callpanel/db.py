"""
Database configuration and session management
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger("callpanel.db")


def make_engine(url: str = DATABASE_URL, **kwargs):
    # SQLite needs special connect args; Postgres does not
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args, **kwargs)


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create tables for every registered model"""
    import callpanel.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")

