"""Scheduling service.

Entry point for every scheduling intent of a tenant: availability rules,
appointments (single and recurring) and academies. Validation happens before
any write; multi-document work (series generation, cascades) is best-effort
or batched as documented on each method.
"""

import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from coachbook.core.config import Settings, settings as default_settings
from coachbook.core.exceptions import CapacityExceeded, NotFound, ValidationFailed
from coachbook.schemas.academy import (
    Academy,
    AcademyCreate,
    AcademySchedule,
    AcademyStatus,
    AcademyUpdate,
    Court,
    CourtIn,
    CourtMember,
)
from coachbook.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    RecurringSeriesCreate,
)
from coachbook.schemas.availability import (
    AvailabilityRule,
    AvailabilityRuleCreate,
    AvailabilityRuleUpdate,
    BookableSlot,
)
from coachbook.services import availability, series, timewindow, validation
from coachbook.services.document_store import DocumentStore, tenant_collection
from coachbook.services.sports import max_clients_per_court

logger = logging.getLogger(__name__)

# Fields that change when or where an appointment takes place.
_TIMING_FIELDS = {"date", "start_time", "duration", "court_id", "instructor_id"}
# Text fields stored as "" rather than null.
_BLANK_WHEN_NONE = {"client_id", "client_name", "sport_type", "notes"}


def _now() -> str:
    return datetime.utcnow().isoformat()


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise ValidationFailed(
            f"Missing required field(s): {', '.join(missing)}",
            details={"missing": missing},
        )


def _validate_duration(duration: int) -> None:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise ValidationFailed(f"Duration must be a positive number of minutes, got {duration!r}")


def _validate_day_of_week(day_of_week: int) -> None:
    if isinstance(day_of_week, bool) or not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValidationFailed(f"day_of_week must be between 0 (Sunday) and 6 (Saturday), got {day_of_week!r}")


def _validate_range(start_time: str, end_time: str) -> None:
    if timewindow.to_minutes(start_time) >= timewindow.to_minutes(end_time):
        raise ValidationFailed(
            f"End time {end_time} must be after start time {start_time}",
            details={"start_time": start_time, "end_time": end_time},
        )


def _validate_date_range(start_date: str, end_date: Optional[str]) -> None:
    start = timewindow.parse_date(start_date)
    if end_date is not None and timewindow.parse_date(end_date) < start:
        raise ValidationFailed(
            f"End date {end_date} is before start date {start_date}",
            details={"start_date": start_date, "end_date": end_date},
        )


def _shift(day: str, days: int) -> str:
    return timewindow.format_date(timewindow.parse_date(day) + timedelta(days=days))


def _validate_not_past(day: str) -> None:
    if timewindow.format_date(timewindow.parse_date(day)) < timewindow.today():
        raise ValidationFailed(f"Date {day} is in the past", details={"date": day})


class SchedulingService:
    """Scheduling operations for one tenant."""

    def __init__(self, store: DocumentStore, tenant_id: str, config: Settings = default_settings):
        _require(tenant_id=tenant_id)
        self.store = store
        self.tenant_id = tenant_id
        self.config = config
        self.availability_path = tenant_collection(tenant_id, "availability")
        self.appointments_path = tenant_collection(tenant_id, "appointments")
        self.academies_path = tenant_collection(tenant_id, "academies")

    def _end_time(self, start_time: str, duration: int) -> str:
        _validate_duration(duration)
        if not self.config.ALLOW_MIDNIGHT_ROLLOVER and timewindow.wraps_midnight(start_time, duration):
            raise ValidationFailed(
                f"Appointment starting at {start_time} for {duration} minutes ends past midnight",
                details={"start_time": start_time, "duration": duration},
            )
        return timewindow.add_minutes(start_time, duration)

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    @staticmethod
    def _validate_rule(rule: AvailabilityRuleCreate) -> None:
        _validate_day_of_week(rule.day_of_week)
        _validate_range(rule.start_time, rule.end_time)
        _validate_duration(rule.duration)

    async def list_availability(self) -> List[AvailabilityRule]:
        docs = await self.store.query(self.availability_path, order=("day_of_week", "asc"))
        rules = [AvailabilityRule.model_validate(doc) for doc in docs]
        rules.sort(key=lambda rule: (rule.day_of_week, rule.start_time))
        return rules

    async def get_availability(self, rule_id: str) -> AvailabilityRule:
        doc = await self.store.get(self.availability_path, rule_id)
        if not doc:
            raise NotFound("Availability", rule_id)
        return AvailabilityRule.model_validate(doc)

    async def add_availability(self, data: AvailabilityRuleCreate) -> str:
        self._validate_rule(data)
        now = _now()
        rule_id = await self.store.add(
            self.availability_path,
            {**data.model_dump(mode="json"), "created_at": now, "updated_at": now},
        )
        logger.info(
            "Availability %s added for tenant %s: day %d %s-%s",
            rule_id, self.tenant_id, data.day_of_week, data.start_time, data.end_time,
        )
        return rule_id

    async def update_availability(self, rule_id: str, updates: AvailabilityRuleUpdate) -> None:
        rule = await self.get_availability(rule_id)
        changes = {
            key: value
            for key, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or key == "price_type"
        }
        merged = rule.model_copy(update=changes)
        self._validate_rule(merged)
        await self.store.set(
            self.availability_path,
            rule_id,
            {**merged.model_dump(mode="json", exclude={"id"}), "updated_at": _now()},
        )

    async def delete_availability(self, rule_id: str) -> None:
        if not await self.store.delete(self.availability_path, rule_id):
            raise NotFound("Availability", rule_id)

    async def availabilities_for_day(self, day_of_week: int) -> List[AvailabilityRule]:
        return availability.rules_for_day(await self.list_availability(), day_of_week)

    async def is_time_slot_available(self, day_of_week: int, start_time: str, end_time: str) -> bool:
        timewindow.to_minutes(start_time)
        timewindow.to_minutes(end_time)
        return availability.is_time_slot_available(
            await self.list_availability(), day_of_week, start_time, end_time
        )

    async def bookable_slots(self, day: str) -> List[BookableSlot]:
        target = timewindow.parse_date(day)
        return availability.bookable_slots(
            await self.list_availability(),
            target,
            # the previous day can run past midnight into this one
            await self.list_appointments(start_date=_shift(day, -1), end_date=day),
        )

    async def bookable_slots_for_range(self, start_date: str, end_date: str) -> List[BookableSlot]:
        _validate_date_range(start_date, end_date)
        return availability.bookable_slots_for_range(
            await self.list_availability(),
            timewindow.parse_date(start_date),
            timewindow.parse_date(end_date),
            await self.list_appointments(start_date=_shift(start_date, -1), end_date=end_date),
        )

    # ========================================================================
    # APPOINTMENTS
    # ========================================================================

    async def get_appointment(self, appointment_id: str) -> Appointment:
        doc = await self.store.get(self.appointments_path, appointment_id)
        if not doc:
            raise NotFound("Appointment", appointment_id)
        return Appointment.model_validate(doc)

    async def list_appointments(
        self,
        date: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        academy_id: Optional[str] = None,
        recurring_group_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Appointments ordered by date and start time, optionally filtered."""
        filters = []
        if date:
            filters.append(("date", "==", timewindow.format_date(timewindow.parse_date(date))))
        if start_date:
            filters.append(("date", ">=", timewindow.format_date(timewindow.parse_date(start_date))))
        if end_date:
            filters.append(("date", "<=", timewindow.format_date(timewindow.parse_date(end_date))))
        if client_id:
            filters.append(("client_id", "==", client_id))
        if status:
            filters.append(("status", "==", AppointmentStatus(status).value))
        if academy_id:
            filters.append(("academy_id", "==", academy_id))
        if recurring_group_id:
            filters.append(("recurring_group_id", "==", recurring_group_id))

        docs = await self.store.query(self.appointments_path, filters)
        appointments = [Appointment.model_validate(doc) for doc in docs]
        appointments.sort(key=lambda a: (a.date, a.start_time))
        return appointments

    async def _check_bookable(self, candidate: Appointment) -> None:
        """Availability window (individual bookings only) and double-booking checks."""
        if self.config.ENFORCE_AVAILABILITY and not candidate.academy_id:
            day = timewindow.day_of_week(timewindow.parse_date(candidate.date))
            rules = await self.list_availability()
            if not availability.is_time_slot_available(rules, day, candidate.start_time, candidate.end_time):
                raise ValidationFailed(
                    f"{candidate.date} {candidate.start_time}-{candidate.end_time} "
                    "is outside the configured availability",
                    code="OUTSIDE_AVAILABILITY",
                    details={
                        "date": candidate.date,
                        "start_time": candidate.start_time,
                        "end_time": candidate.end_time,
                    },
                )
        neighbours = await self.list_appointments(
            start_date=_shift(candidate.date, -1), end_date=_shift(candidate.date, 1)
        )
        validation.ensure_no_conflicts(candidate, neighbours)

    async def create_appointment(self, data: AppointmentCreate) -> str:
        """Validate, check availability and conflicts, then persist a scheduled appointment."""
        _require(
            client_id=data.client_id,
            sport_type=data.sport_type,
            date=data.date,
            start_time=data.start_time,
        )
        day = timewindow.format_date(timewindow.parse_date(data.date))
        _validate_not_past(day)
        end_time = self._end_time(data.start_time, data.duration)

        now = _now()
        candidate = Appointment(
            id="",
            **data.model_dump(exclude={"date"}),
            date=day,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED,
            is_paid=False,
        )
        await self._check_bookable(candidate)

        appointment_id = await self.store.add(
            self.appointments_path,
            {**candidate.model_dump(mode="json", exclude={"id"}), "created_at": now, "updated_at": now},
        )
        logger.info(
            "Appointment %s booked for client %s on %s %s-%s",
            appointment_id, data.client_id, day, data.start_time, end_time,
        )
        return appointment_id

    async def update_appointment(self, appointment_id: str, updates: AppointmentUpdate) -> None:
        """Merge the set fields into the stored appointment.

        end_time is recomputed when start_time or duration change; status
        changes must follow the lifecycle; moved appointments are re-checked.
        """
        current = await self.get_appointment(appointment_id)

        changes = {}
        for key, value in updates.model_dump(exclude_unset=True).items():
            if value is None:
                if key in _BLANK_WHEN_NONE:
                    value = ""
                elif key == "exercise_ids":
                    value = []
                elif key not in ("instructor_id", "recurring_group_id", "academy_id", "court_id"):
                    continue
            changes[key] = value

        if "status" in changes:
            validation.validate_transition(current.status, changes["status"])
        if "date" in changes:
            changes["date"] = timewindow.format_date(timewindow.parse_date(changes["date"]))

        merged = current.model_copy(update=changes)
        if "start_time" in changes or "duration" in changes:
            merged = merged.model_copy(update={"end_time": self._end_time(merged.start_time, merged.duration)})
        merged = Appointment.model_validate(merged.model_dump())

        moved = any(key in changes and changes[key] != getattr(current, key) for key in _TIMING_FIELDS)
        if moved:
            await self._check_bookable(merged)

        await self.store.set(
            self.appointments_path,
            appointment_id,
            {**merged.model_dump(mode="json", exclude={"id"}), "updated_at": _now()},
        )

    async def set_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        await self.update_appointment(appointment_id, AppointmentUpdate(status=status))
        return await self.get_appointment(appointment_id)

    async def set_paid(self, appointment_id: str, is_paid: bool = True) -> None:
        await self.update_appointment(appointment_id, AppointmentUpdate(is_paid=is_paid))

    async def assign_exercises(self, appointment_id: str, exercise_ids: List[str]) -> None:
        await self.update_appointment(appointment_id, AppointmentUpdate(exercise_ids=list(dict.fromkeys(exercise_ids))))

    async def delete_appointment(self, appointment_id: str) -> None:
        if not await self.store.delete(self.appointments_path, appointment_id):
            raise NotFound("Appointment", appointment_id)

    # ========================================================================
    # RECURRING SERIES
    # ========================================================================

    async def create_recurring_series(self, data: RecurringSeriesCreate) -> series.SeriesResult:
        """Book one client into the same weekly slot.

        Each instance goes through create_appointment (availability and conflict
        checks included). The first rejected instance stops the series; the
        instances already booked are kept.
        """
        _require(client_id=data.client_id, sport_type=data.sport_type, start_date=data.start_date)
        _validate_day_of_week(data.day_of_week)
        _validate_date_range(data.start_date, data.end_date)
        _validate_not_past(data.start_date)
        self._end_time(data.start_time, data.duration)

        group_id = uuid.uuid4().hex
        dates = series.expand_dates(
            data.day_of_week,
            timewindow.parse_date(data.start_date),
            timewindow.parse_date(data.end_date) if data.end_date else None,
            self.config.SERIES_HORIZON_WEEKS,
        )
        items = [
            AppointmentCreate(
                client_id=data.client_id,
                client_name=data.client_name,
                instructor_id=data.instructor_id,
                sport_type=data.sport_type,
                date=timewindow.format_date(day),
                start_time=data.start_time,
                duration=data.duration,
                notes=data.notes,
                recurring_group_id=group_id,
                exercise_ids=data.exercise_ids,
            ).model_dump()
            for day in dates
        ]

        async def create(item: dict) -> str:
            return await self.create_appointment(AppointmentCreate(**item))

        result = await series.materialize(items, create, recurring_group_id=group_id)
        logger.info(
            "Recurring group %s: %d of %d appointments created",
            group_id, result.created_count, len(items),
        )
        return result

    async def delete_recurring_group(self, recurring_group_id: str, future_only: bool = True) -> int:
        """Delete a recurring group's appointments (from today on when ``future_only``)."""
        members = await self.list_appointments(recurring_group_id=recurring_group_id)
        if not members:
            raise NotFound("Recurring group", recurring_group_id)

        today = timewindow.today()
        targets = [a for a in members if not future_only or a.date >= today]
        async with self.store.batch():
            for appointment in targets:
                await self.store.delete(self.appointments_path, appointment.id)

        logger.info("Deleted %d appointments of recurring group %s", len(targets), recurring_group_id)
        return len(targets)

    # ========================================================================
    # ACADEMIES
    # ========================================================================

    async def get_academy(self, academy_id: str) -> Academy:
        doc = await self.store.get(self.academies_path, academy_id)
        if not doc:
            raise NotFound("Academy", academy_id)
        return Academy.model_validate(doc)

    async def list_academies(
        self,
        status: Optional[AcademyStatus] = None,
        sport_type: Optional[str] = None,
    ) -> List[Academy]:
        """Newest first."""
        filters = []
        if status:
            filters.append(("status", "==", AcademyStatus(status).value))
        if sport_type:
            filters.append(("sport_type", "==", sport_type))
        docs = await self.store.query(self.academies_path, filters, order=("created_at", "desc"))
        return [Academy.model_validate(doc) for doc in docs]

    async def academies_for_coach(self, coach_id: str) -> List[Academy]:
        return [academy for academy in await self.list_academies() if academy.has_coach(coach_id)]

    def _prepare_schedules(self, schedules: Iterable[AcademySchedule]) -> List[AcademySchedule]:
        prepared = []
        for schedule in schedules:
            _validate_day_of_week(schedule.day_of_week)
            _validate_date_range(schedule.start_date, schedule.end_date)
            end_time = self._end_time(schedule.start_time, schedule.duration)
            if schedule.end_time is not None and timewindow.to_minutes(schedule.end_time) != timewindow.to_minutes(end_time):
                raise ValidationFailed(
                    f"Schedule end time {schedule.end_time} does not match "
                    f"{schedule.start_time} + {schedule.duration} minutes",
                    details={"start_time": schedule.start_time, "end_time": schedule.end_time},
                )
            prepared.append(schedule.model_copy(update={"end_time": end_time}))
        return prepared

    @staticmethod
    def _prepare_courts(courts: Iterable[CourtIn]) -> List[Court]:
        """Give every court an id; keeps existing ids."""
        stamp = int(time.time() * 1000)
        prepared = []
        for index, court in enumerate(courts):
            roster = list({m.client_id: m for m in court.roster}.values())
            prepared.append(Court(
                **court.model_dump(exclude={"id", "roster"}),
                id=court.id or f"court_{stamp}_{index}",
                roster=roster,
            ))
        return prepared

    async def create_academy(self, data: AcademyCreate, created_by: str = "") -> str:
        """Persist the academy, then generate its appointments. Returns the academy id."""
        academy_id, _ = await self.create_academy_with_appointments(data, created_by)
        return academy_id

    async def create_academy_with_appointments(
        self, data: AcademyCreate, created_by: str = ""
    ) -> Tuple[str, series.SeriesResult]:
        """Persist the academy, then generate its appointments.

        Appointment generation is best-effort: a failure there is logged and the
        academy is kept. The returned result says how many appointments were
        written and what stopped generation, if anything.
        """
        _require(name=data.name, sport_type=data.sport_type)
        validation.validate_courts(data.sport_type, data.courts)
        schedules = self._prepare_schedules(data.schedules)
        courts = self._prepare_courts(data.courts)

        now = _now()
        document = {
            **data.model_dump(mode="json", exclude={"courts", "schedules", "number_of_courts"}),
            "number_of_courts": data.number_of_courts or len(courts) or 1,
            "courts": [court.model_dump(mode="json") for court in courts],
            "schedules": [schedule.model_dump(mode="json") for schedule in schedules],
            "status": AcademyStatus.ACTIVE.value,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }
        academy_id = await self.store.add(self.academies_path, document)
        logger.info("Academy %s created for tenant %s", academy_id, self.tenant_id)

        try:
            academy = Academy.model_validate({**document, "id": academy_id})
            result = await series.generate_appointments_from_academy(
                self.store, self.tenant_id, academy, self.config.SERIES_HORIZON_WEEKS
            )
        except Exception as e:
            result = series.SeriesResult(error=e)
        if result.error is not None:
            logger.error(
                "Error generating appointments for academy %s after %d created: %s",
                academy_id, result.created_count, result.error,
            )

        return academy_id, result

    async def update_academy(self, academy_id: str, updates: AcademyUpdate) -> None:
        """Merge the set fields. Already generated appointments are left as they are."""
        academy = await self.get_academy(academy_id)
        changes = {k: v for k, v in updates.model_dump(exclude_unset=True).items() if v is not None}

        sport_type = changes.get("sport_type", academy.sport_type)
        courts = updates.courts if updates.courts is not None else academy.courts
        validation.validate_courts(sport_type, courts)

        if updates.courts is not None:
            changes["courts"] = self._prepare_courts(updates.courts)
        if updates.schedules is not None:
            changes["schedules"] = self._prepare_schedules(updates.schedules)

        merged = Academy.model_validate({**academy.model_dump(), **changes})
        await self.store.set(
            self.academies_path,
            academy_id,
            {**merged.model_dump(mode="json", exclude={"id"}), "updated_at": _now()},
        )

    async def _save_courts(self, academy: Academy, courts: List[Court]) -> Academy:
        await self.store.set(
            self.academies_path,
            academy.id,
            {"courts": [court.model_dump(mode="json") for court in courts], "updated_at": _now()},
            merge=True,
        )
        return await self.get_academy(academy.id)

    async def add_client_to_court(
        self, academy_id: str, court_id: str, client_id: str, client_name: str = ""
    ) -> Academy:
        _require(client_id=client_id)
        academy = await self.get_academy(academy_id)
        court = academy.court(court_id)
        if court is None:
            raise NotFound("Court", court_id)
        if client_id in court.client_ids:
            return academy

        limit = max_clients_per_court(academy.sport_type)
        if len(court.roster) + 1 > limit:
            raise CapacityExceeded(court.court_number, limit)

        updated = court.model_copy(update={"roster": court.roster + [CourtMember(client_id=client_id, client_name=client_name)]})
        return await self._save_courts(academy, [updated if c.id == court_id else c for c in academy.courts])

    async def remove_client_from_court(self, academy_id: str, court_id: str, client_id: str) -> Academy:
        academy = await self.get_academy(academy_id)
        court = academy.court(court_id)
        if court is None:
            raise NotFound("Court", court_id)

        updated = court.model_copy(update={"roster": [m for m in court.roster if m.client_id != client_id]})
        return await self._save_courts(academy, [updated if c.id == court_id else c for c in academy.courts])

    async def generate_appointments_from_academy(self, academy_id: str) -> series.SeriesResult:
        """Write another full set of the academy's appointments (no deduplication)."""
        academy = await self.get_academy(academy_id)
        return await series.generate_appointments_from_academy(
            self.store, self.tenant_id, academy, self.config.SERIES_HORIZON_WEEKS
        )

    async def delete_academy(self, academy_id: str, cascade_future_appointments: bool = True) -> int:
        """Delete an academy, and with ``cascade_future_appointments`` its appointments
        dated today or later. Past appointments are kept as history.

        The academy is first marked inactive; the cascade and the academy delete
        then commit together in one batch. Returns the number of appointments deleted.
        """
        await self.get_academy(academy_id)

        if cascade_future_appointments:
            await self.store.set(
                self.academies_path,
                academy_id,
                {"status": AcademyStatus.INACTIVE.value, "updated_at": _now()},
                merge=True,
            )

        deleted = 0
        async with self.store.batch():
            if cascade_future_appointments:
                future = await self.store.query(
                    self.appointments_path,
                    [("academy_id", "==", academy_id), ("date", ">=", timewindow.today())],
                )
                for doc in future:
                    await self.store.delete(self.appointments_path, doc["id"])
                    deleted += 1
            await self.store.delete(self.academies_path, academy_id)

        logger.info("Academy %s deleted with %d future appointments", academy_id, deleted)
        return deleted
