# coachcal/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from coachcal.core.config import settings
from coachcal.core.errors import Conflict, NotFound, SchedulingError, Unavailable, ValidationError
from coachcal.core.logging import configure_logging
from coachcal.db.sql import init_db
from coachcal.routers import auth, availability, bookings, calendars, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    The lifespan function is used to manage the FastAPI application lifecycle.
    """
    configure_logging()
    # Create tables if they don't exist; production schemas go through Alembic
    if settings.APP_ENV != "prod":
        await init_db()
    logger.info("coachcal started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="Coaching Appointment Scheduling",
    lifespan=lifespan,
)

# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(calendars.router, prefix=settings.API_PREFIX, tags=["calendars"])
app.include_router(availability.router, prefix=settings.API_PREFIX, tags=["availability"])
app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["bookings"])


# Fallback for taxonomy errors a router did not translate itself
_STATUS_BY_KIND = (
    (Unavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Conflict, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    code = next(
        (sc for kind, sc in _STATUS_BY_KIND if isinstance(exc, kind)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=code, content={"detail": exc.code})


@app.get("/")
def root():
    return {"message": "Coaching scheduling API running"}
