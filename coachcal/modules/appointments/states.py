# coachcal/modules/appointments/states.py
from __future__ import annotations

from enum import Enum

from coachcal.core.errors import InvalidTransition


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Actor(str, Enum):
    COACH = "coach"
    BOOKER = "booker"


# (from, to) -> actors allowed to perform it
TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], frozenset[Actor]] = {
    (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED): frozenset({Actor.COACH}),
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED): frozenset({Actor.COACH, Actor.BOOKER}),
    (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED): frozenset({Actor.COACH}),
}

INITIAL_STATUS = AppointmentStatus.PENDING

# Statuses that hold the slot
OCCUPYING_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


def occupies_slot(status: AppointmentStatus | str) -> bool:
    return AppointmentStatus(status) in OCCUPYING_STATUSES


def check_transition(
    current: AppointmentStatus | str,
    target: AppointmentStatus | str,
    actor: Actor,
) -> AppointmentStatus:
    """
    Return the target status if `actor` may move an appointment from `current`
    to `target`; raise InvalidTransition otherwise.
    """
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)
    allowed = TRANSITIONS.get((current, target))
    if allowed is None:
        raise InvalidTransition(f"cannot move appointment from {current.value} to {target.value}")
    if actor not in allowed:
        raise InvalidTransition(
            f"{actor.value} may not move appointment from {current.value} to {target.value}"
        )
    return target
