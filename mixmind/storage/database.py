from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Optional

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from mixmind.storage.models import Base


@lru_cache(maxsize=8)
def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get (and cache) the engine for a database URL."""
    settings = get_settings()
    url = database_url or settings.database_url
    return create_engine(url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables initialized on {engine.url.render_as_string(hide_password=True)}")


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
