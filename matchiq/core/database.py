"""SQLAlchemy declarative base and the shared sync session factory.

The matching engine runs inside Celery workers and scripts, so it only needs
a SYNC engine. The pool is created lazily, once per process.
"""

from collections.abc import Generator
from contextlib import contextmanager
from decimal import Decimal

import structlog
from sqlalchemy import JSON, Engine, Numeric, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from matchiq.core.config import settings

logger = structlog.get_logger()

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    type_annotation_map = {
        Decimal: Numeric(19, 4),
    }


_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.DATABASE_URL_SYNC,
            echo=settings.APP_DEBUG,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,        # Drop stale connections before reuse
            pool_recycle=1800,         # Recycle connections every 30 min
        )
        logger.info("db_engine_created", echo=settings.APP_DEBUG)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _SessionFactory


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager that yields a sync SQLAlchemy session.

    Commits on clean exit, rolls back on exception, and always closes.

    Usage::

        with get_db_session() as session:
            count = MatchingService(session).rescan_all()
    """
    session: Session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
