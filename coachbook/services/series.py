"""Recurring series expansion.

A weekly rule (day of week + start/end date) becomes one appointment per
matching date. Writes are best-effort: the first failed write stops the
series, the error is logged and returned, and nothing already written is
rolled back.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional

from coachbook.schemas.academy import Academy, AcademySchedule
from coachbook.schemas.appointment import AppointmentStatus
from coachbook.services import timewindow
from coachbook.services.document_store import DocumentStore, tenant_collection

logger = logging.getLogger(__name__)


@dataclass
class SeriesResult:
    created_ids: List[str] = field(default_factory=list)
    recurring_group_id: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def created_count(self) -> int:
        return len(self.created_ids)

    @property
    def complete(self) -> bool:
        return self.error is None


def expand_dates(
    day_of_week: int,
    start_date: date,
    end_date: Optional[date],
    horizon_weeks: int,
) -> List[date]:
    """Dates on ``day_of_week`` from ``start_date`` through ``end_date`` inclusive.

    The first occurrence is the first matching weekday on or after ``start_date``;
    then one calendar week at a time. Without an end date the series stops
    ``horizon_weeks`` weeks after ``start_date``.
    """
    if end_date is None:
        end_date = start_date + timedelta(weeks=horizon_weeks)

    offset = (day_of_week - timewindow.day_of_week(start_date)) % 7
    current = start_date + timedelta(days=offset)

    dates = []
    while current <= end_date:
        dates.append(current)
        current += timedelta(weeks=1)
    return dates


def expand_schedule(schedule: AcademySchedule, horizon_weeks: int) -> List[date]:
    end_date = timewindow.parse_date(schedule.end_date) if schedule.end_date else None
    return expand_dates(
        schedule.day_of_week,
        timewindow.parse_date(schedule.start_date),
        end_date,
        horizon_weeks,
    )


async def materialize(
    items: Iterable[dict],
    create: Callable[[dict], Awaitable[str]],
    recurring_group_id: Optional[str] = None,
) -> SeriesResult:
    """Create items one by one. Stops at the first failure and reports what was created."""
    result = SeriesResult(recurring_group_id=recurring_group_id)
    for item in items:
        try:
            result.created_ids.append(await create(item))
        except Exception as e:
            logger.error(
                "Series generation stopped after %d appointment(s) at %s: %s",
                result.created_count,
                item.get("date"),
                e,
            )
            result.error = e
            break
    return result


def academy_appointments(academy: Academy, horizon_weeks: int) -> List[dict]:
    """Appointment documents for every schedule date and every court of an academy.

    An academy without courts gets one appointment per date.
    """
    now = datetime.utcnow().isoformat()
    courts = academy.courts or [None]
    documents = []

    for schedule in academy.schedules:
        end_time = timewindow.add_minutes(schedule.start_time, schedule.duration)
        for day in expand_schedule(schedule, horizon_weeks):
            for court in courts:
                label = f"{academy.name} - Court {court.court_number}" if court else academy.name
                coach_id = (court.assigned_coach_id if court else "") or academy.head_coach_id
                documents.append({
                    "client_id": "",
                    "client_name": label,
                    "instructor_id": coach_id or None,
                    "sport_type": academy.sport_type,
                    "date": timewindow.format_date(day),
                    "start_time": schedule.start_time,
                    "end_time": end_time,
                    "duration": schedule.duration,
                    "status": AppointmentStatus.SCHEDULED.value,
                    "is_paid": False,
                    "notes": "",
                    "recurring_group_id": None,
                    "exercise_ids": list(academy.exercise_ids),
                    "academy_id": academy.id,
                    "court_id": court.id if court else None,
                    "created_at": now,
                    "updated_at": now,
                })

    documents.sort(key=lambda d: (d["date"], d["start_time"]))
    return documents


async def generate_appointments_from_academy(
    store: DocumentStore,
    tenant_id: str,
    academy: Academy,
    horizon_weeks: int,
) -> SeriesResult:
    """Write the academy's appointments. Not idempotent: each call writes a new set."""
    path = tenant_collection(tenant_id, "appointments")

    async def create(document: dict) -> str:
        return await store.add(path, document)

    result = await materialize(academy_appointments(academy, horizon_weeks), create)
    logger.info("Generated %d appointments for academy %s", result.created_count, academy.id)
    return result
