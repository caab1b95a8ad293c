"""Capacity, double-booking and status-transition checks.

Everything here runs before a write and raises instead of writing.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from coachbook.core.exceptions import CapacityExceeded, InvalidStatusTransition, SchedulingConflict
from coachbook.schemas.academy import CourtIn
from coachbook.schemas.appointment import Appointment, AppointmentStatus
from coachbook.services import timewindow
from coachbook.services.sports import max_clients_per_court

logger = logging.getLogger(__name__)


# ============================================================================
# COURT CAPACITY
# ============================================================================

def validate_courts(sport_type: str, courts: Iterable[CourtIn]) -> None:
    """Raise CapacityExceeded for the first court whose roster is over the sport's limit."""
    limit = max_clients_per_court(sport_type)
    for court in courts:
        if len(court.roster) > limit:
            raise CapacityExceeded(court.court_number, limit)


# ============================================================================
# DOUBLE BOOKING
# ============================================================================

def _minute_range(appointment: Appointment, origin: date) -> Tuple[int, int]:
    return timewindow.absolute_span(appointment.date, appointment.start_time, appointment.end_time, origin)


def find_conflicts(candidate: Appointment, existing: Iterable[Appointment]) -> List[Appointment]:
    """Active appointments on the candidate's resource whose time overlaps it.

    Times are compared as absolute minute ranges, so an appointment running past
    midnight also blocks the start of the next day. The candidate itself (same
    id) is never reported, so updates can re-check freely.
    """
    if not candidate.is_active:
        return []
    origin = timewindow.parse_date(candidate.date)
    first, last = _minute_range(candidate, origin)
    conflicts = []
    for appt in existing:
        if appt.id == candidate.id or not appt.is_active or appt.resource_key != candidate.resource_key:
            continue
        appt_first, appt_last = _minute_range(appt, origin)
        if first < appt_last and appt_first < last:
            conflicts.append(appt)
    return conflicts


def ensure_no_conflicts(candidate: Appointment, existing: Sequence[Appointment]) -> None:
    conflicts = find_conflicts(candidate, existing)
    if conflicts:
        logger.warning(
            "Rejected %s %s-%s on %s: overlaps %s",
            candidate.client_id or "appointment",
            candidate.start_time,
            candidate.end_time,
            candidate.date,
            [c.id for c in conflicts],
        )
        raise SchedulingConflict(
            candidate.date,
            candidate.start_time,
            candidate.end_time,
            [c.id for c in conflicts],
        )


# ============================================================================
# STATUS LIFECYCLE
# ============================================================================

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}


def can_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    return current == requested or requested in ALLOWED_TRANSITIONS[current]


def validate_transition(current: AppointmentStatus, requested: Optional[AppointmentStatus]) -> None:
    if requested is None:
        return
    current = AppointmentStatus(current)
    requested = AppointmentStatus(requested)
    if not can_transition(current, requested):
        raise InvalidStatusTransition(current.value, requested.value)
