# coachcal/modules/events.py
from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from coachcal.db.base import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentEvent:
    appointment_id: uuid.UUID
    calendar_id: uuid.UUID
    coach_id: uuid.UUID
    booker_id: uuid.UUID
    appointment_date: dt.date
    start_time: dt.time
    occurred_at: dt.datetime = field(default_factory=utcnow)

    @classmethod
    def from_appointment(cls, appt, **extra):
        return cls(
            appointment_id=appt.id,
            calendar_id=appt.calendar_id,
            coach_id=appt.coach_id,
            booker_id=appt.booker_id,
            appointment_date=appt.appointment_date,
            start_time=appt.start_time,
            **extra,
        )


@dataclass(frozen=True)
class AppointmentRequested(AppointmentEvent):
    pass


@dataclass(frozen=True)
class AppointmentConfirmed(AppointmentEvent):
    pass


@dataclass(frozen=True)
class AppointmentCancelled(AppointmentEvent):
    reason: Optional[str] = None


Handler = Callable[[AppointmentEvent], Union[None, Awaitable[None]]]


class EventBus:
    """
    In-process publish/subscribe for booking events.

    Mailers and push senders subscribe at startup. A failing handler is logged
    and does not affect other handlers or the already committed booking.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: AppointmentEvent) -> None:
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in handlers:
                try:
                    result = handler(event)
                    if result is not None:
                        await result
                except Exception:
                    logger.exception(
                        "Event handler %r failed for %s", handler, type(event).__name__
                    )


def log_event(event: AppointmentEvent) -> None:
    logger.info(
        "%s appointment=%s coach=%s date=%s time=%s",
        type(event).__name__,
        event.appointment_id,
        event.coach_id,
        event.appointment_date,
        event.start_time.strftime("%H:%M"),
    )


event_bus = EventBus()
event_bus.subscribe(AppointmentEvent, log_event)
