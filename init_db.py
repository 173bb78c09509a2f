# init_db.py
import asyncio
import logging

from coachcal.core.logging import configure_logging
from coachcal.db.base import Base
from coachcal.db.sql import engine

# import all models so that Base.metadata knows them
from coachcal.modules.users import models as users_models  # noqa: F401
from coachcal.modules.calendars import models as calendars_models  # noqa: F401
from coachcal.modules.appointments import models as appointments_models  # noqa: F401

logger = logging.getLogger("init_db")


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

    logger.info("Database schema recreated successfully")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_models())
