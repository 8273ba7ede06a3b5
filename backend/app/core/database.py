"""
Focus Watch Database
SQLAlchemy engine, session factory and declarative base.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger("focuswatch.database")

_connect_args = {}
_engine_kwargs = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Sessions are written from the websocket handler thread and read from REST
    _connect_args["check_same_thread"] = False
    if ":memory:" in settings.DATABASE_URL or settings.DATABASE_URL == "sqlite://":
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db():
    """Create all tables for the registered models"""
    from app.models import session  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.debug("Tables ensured: %s", ", ".join(Base.metadata.tables))


def get_db():
    """FastAPI dependency yielding a scoped DB session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
