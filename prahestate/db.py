# prahestate/db.py
"""Database engine and session utilities.

Centralized SQLAlchemy engine creation and the session dependency helper for FastAPI.
The sync engine and the read API share the same `SessionLocal` factory.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .config import settings

Base = declarative_base()


def make_engine(url: str, pool_size: int = 5, max_overflow: int = 10):
    if url.startswith("sqlite"):
        # single shared connection so in-memory databases survive across sessions and threads
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    # tuned pool settings for cloud DB
    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True
    )


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = make_engine(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
SessionLocal = make_session_factory(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
