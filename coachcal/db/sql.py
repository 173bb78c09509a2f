# coachcal/db/sql.py
from __future__ import annotations

import logging
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coachcal.core.config import settings
from coachcal.core.errors import Unavailable
from coachcal.db.base import Base

logger = logging.getLogger(__name__)


def make_engine(dsn: str | None = None) -> AsyncEngine:
    dsn = dsn or settings.SQL_DSN
    if dsn.startswith("sqlite"):
        # SQLite pools do not accept size/overflow arguments
        return create_async_engine(dsn, echo=settings.DB_ECHO)
    return create_async_engine(
        dsn,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


engine = make_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commit on success, rollback on any error.
    Driver-level failures surface as Unavailable so callers never read them as "no slots".
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise
        except DBAPIError as exc:
            await session.rollback()
            logger.exception("Database failure, rolling back")
            raise Unavailable("database_unavailable") from exc
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Create all tables that are not there yet.
    """
    # Import all models so they get registered on Base.metadata
    from coachcal.modules.users import models as _users  # noqa: F401
    from coachcal.modules.calendars import models as _calendars  # noqa: F401
    from coachcal.modules.appointments import models as _appointments  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
