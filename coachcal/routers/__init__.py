# coachcal/routers/__init__.py
from . import health
from . import auth
from . import calendars
from . import availability
from . import bookings

__all__ = ["health", "auth", "calendars", "availability", "bookings"]
