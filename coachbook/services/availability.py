"""Availability resolution: which weekly rules apply to a date, and which slots are bookable."""

from datetime import date, timedelta
from typing import Iterable, List, Sequence

from coachbook.schemas.appointment import Appointment
from coachbook.schemas.availability import AvailabilityRule, BookableSlot
from coachbook.services import timewindow


def rules_for_day(rules: Iterable[AvailabilityRule], day_of_week: int) -> List[AvailabilityRule]:
    """Active rules for a weekday (0=Sunday)."""
    return [rule for rule in rules if rule.day_of_week == day_of_week and rule.is_active]


def rules_for_date(rules: Iterable[AvailabilityRule], target_date: date) -> List[AvailabilityRule]:
    return rules_for_day(rules, timewindow.day_of_week(target_date))


def is_time_slot_available(
    rules: Iterable[AvailabilityRule],
    day_of_week: int,
    start_time: str,
    end_time: str,
) -> bool:
    """True if a single active rule for the day contains [start_time, end_time).

    Rules are checked one by one; a slot spanning two adjacent rules is rejected
    even when they jointly cover it.
    """
    return any(
        timewindow.contains(rule.start_time, rule.end_time, start_time, end_time)
        for rule in rules_for_day(rules, day_of_week)
    )


def bookable_slots(
    rules: Iterable[AvailabilityRule],
    target_date: date,
    appointments: Sequence[Appointment] = (),
) -> List[BookableSlot]:
    """Slot candidates for one date.

    Each matching rule is cut into consecutive slots of the rule's duration;
    slots overlapping an active appointment are dropped. Appointments are
    placed on an absolute minute axis from ``target_date``, so one running past
    midnight the day before still blocks the early slots.
    """
    day = timewindow.format_date(target_date)
    busy = [
        timewindow.absolute_span(appt.date, appt.start_time, appt.end_time, target_date)
        for appt in appointments
        if appt.is_active
    ]

    slots = []
    for rule in rules_for_date(rules, target_date):
        if rule.duration <= 0:
            continue
        window_end = timewindow.to_minutes(rule.end_time)
        current = timewindow.to_minutes(rule.start_time)

        while current + rule.duration <= window_end:
            start = timewindow.from_minutes(current)
            end = timewindow.from_minutes(current + rule.duration)
            if not any(current < b_last and b_first < current + rule.duration for b_first, b_last in busy):
                slots.append(
                    BookableSlot(
                        date=day,
                        start_time=start,
                        end_time=end,
                        duration=rule.duration,
                        price_type=rule.price_type,
                    )
                )
            current += rule.duration

    slots.sort(key=lambda slot: (slot.start_time, slot.end_time))
    return slots


def bookable_slots_for_range(
    rules: Sequence[AvailabilityRule],
    start_date: date,
    end_date: date,
    appointments: Sequence[Appointment] = (),
) -> List[BookableSlot]:
    """Slot candidates for every day of an inclusive date range."""
    slots = []
    current = start_date
    while current <= end_date:
        slots.extend(bookable_slots(rules, current, appointments))
        current += timedelta(days=1)
    return slots
