"""Availability rule endpoints and bookable slot lookup."""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from coachbook.core.deps import get_scheduler
from coachbook.schemas.availability import (
    AvailabilityRule,
    AvailabilityRuleCreate,
    AvailabilityRuleUpdate,
    BookableSlotsResponse,
)
from coachbook.services.scheduling import SchedulingService

router = APIRouter()


@router.get("/", response_model=list[AvailabilityRule])
async def list_availability(
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """List availability rules ordered by weekday (only active ones when a day is given)."""
    if day_of_week is not None:
        return await scheduler.availabilities_for_day(day_of_week)
    return await scheduler.list_availability()


@router.post("/", response_model=AvailabilityRule, status_code=201)
async def add_availability(
    rule: AvailabilityRuleCreate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    rule_id = await scheduler.add_availability(rule)
    return await scheduler.get_availability(rule_id)


@router.get("/slots", response_model=BookableSlotsResponse)
async def get_bookable_slots(
    date: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Bookable slots for one date, or for an inclusive start/end date range."""
    if date:
        slots = await scheduler.bookable_slots(date)
        return BookableSlotsResponse(start_date=date, end_date=date, slots=slots)

    if not (start_date and end_date):
        raise HTTPException(status_code=400, detail="Provide either date or start_date and end_date")

    slots = await scheduler.bookable_slots_for_range(start_date, end_date)
    return BookableSlotsResponse(start_date=start_date, end_date=end_date, slots=slots)


@router.get("/check")
async def check_time_slot(
    day_of_week: int = Query(..., ge=0, le=6),
    start_time: str = Query(...),
    end_time: str = Query(...),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Whether a single availability rule covers the given window."""
    available = await scheduler.is_time_slot_available(day_of_week, start_time, end_time)
    return {"day_of_week": day_of_week, "start_time": start_time, "end_time": end_time, "available": available}


@router.patch("/{rule_id}", response_model=AvailabilityRule)
async def update_availability(
    rule_id: str,
    updates: AvailabilityRuleUpdate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.update_availability(rule_id, updates)
    return await scheduler.get_availability(rule_id)


@router.delete("/{rule_id}", status_code=204)
async def delete_availability(
    rule_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.delete_availability(rule_id)
    return Response(status_code=204)
