"""Tests for recurring series expansion."""

from datetime import date

import pytest

from coachbook.schemas.academy import Academy, AcademySchedule, Court
from coachbook.services import series


def monday_schedule(**overrides):
    data = dict(
        day_of_week=1,
        start_time="09:00",
        duration=60,
        start_date="2024-01-01",
        end_date="2024-01-22",
    )
    data.update(overrides)
    return AcademySchedule(**data)


def test_weekly_expansion_includes_both_ends():
    dates = series.expand_schedule(monday_schedule(), horizon_weeks=52)
    assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]


def test_expansion_starts_at_first_matching_weekday():
    # 2024-01-03 is a Wednesday; the first Monday after it is the 8th
    dates = series.expand_schedule(monday_schedule(start_date="2024-01-03"), horizon_weeks=52)
    assert dates == [date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]


def test_open_ended_schedule_stops_at_horizon():
    dates = series.expand_schedule(monday_schedule(end_date=None), horizon_weeks=4)
    assert dates[0] == date(2024, 1, 1)
    assert dates[-1] == date(2024, 1, 29)
    assert len(dates) == 5


def test_end_before_start_expands_to_nothing():
    assert series.expand_dates(1, date(2024, 1, 22), date(2024, 1, 1), horizon_weeks=52) == []


def test_academy_appointments_one_per_court_and_date():
    academy = Academy(
        id="acad-1",
        name="Morning Padel",
        sport_type="padel",
        courts=[
            Court(id="court_a", court_number=1, assigned_coach_id="coach-1"),
            Court(id="court_b", court_number=2),
        ],
        schedules=[monday_schedule()],
        exercise_ids=["ex-1"],
        head_coach_id="head-1",
    )
    docs = series.academy_appointments(academy, horizon_weeks=52)

    assert len(docs) == 8
    assert {d["date"] for d in docs} == {"2024-01-01", "2024-01-08", "2024-01-15", "2024-01-22"}
    assert all(d["end_time"] == "10:00" for d in docs)
    assert all(d["status"] == "scheduled" for d in docs)
    assert all(d["academy_id"] == "acad-1" for d in docs)
    assert {d["court_id"] for d in docs} == {"court_a", "court_b"}
    assert {d["instructor_id"] for d in docs} == {"coach-1", "head-1"}
    assert docs[0]["client_name"] == "Morning Padel - Court 1"
    assert [c.id for c in academy.courts_for_coach("coach-1")] == ["court_a"]
    assert academy.has_coach("head-1")


def test_academy_without_courts_gets_one_appointment_per_date():
    academy = Academy(id="acad-2", name="Yoga", sport_type="yoga", schedules=[monday_schedule()])
    docs = series.academy_appointments(academy, horizon_weeks=52)
    assert len(docs) == 4
    assert all(d["court_id"] is None for d in docs)


@pytest.mark.asyncio
async def test_materialize_stops_at_first_failure_and_keeps_created():
    items = [{"date": f"2024-01-0{i}"} for i in range(1, 6)]
    written = []

    async def create(item):
        if len(written) == 2:
            raise RuntimeError("store unavailable")
        written.append(item)
        return f"id-{len(written)}"

    result = await series.materialize(items, create, recurring_group_id="group-1")

    assert result.created_ids == ["id-1", "id-2"]
    assert result.created_count == 2
    assert isinstance(result.error, RuntimeError)
    assert not result.complete
    assert result.recurring_group_id == "group-1"


@pytest.mark.asyncio
async def test_materialize_complete_series():
    async def create(item):
        return item["date"]

    result = await series.materialize([{"date": "a"}, {"date": "b"}], create)
    assert result.complete
    assert result.created_ids == ["a", "b"]
