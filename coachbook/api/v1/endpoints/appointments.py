"""Appointment booking endpoints: single, recurring, status changes and deletion."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from coachbook.core.deps import get_scheduler
from coachbook.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    RecurringSeriesCreate,
    SeriesResultOut,
    StatusUpdate,
)
from coachbook.services.scheduling import SchedulingService

router = APIRouter()


@router.get("/", response_model=list[Appointment])
async def list_appointments(
    date: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    academy_id: Optional[str] = Query(None),
    recurring_group_id: Optional[str] = Query(None),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """List appointments ordered by date and time, with optional filters."""
    return await scheduler.list_appointments(
        date=date,
        start_date=start_date,
        end_date=end_date,
        client_id=client_id,
        status=status,
        academy_id=academy_id,
        recurring_group_id=recurring_group_id,
    )


@router.post("/", response_model=Appointment, status_code=201)
async def book_appointment(
    appointment: AppointmentCreate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Book a single appointment inside the tenant's availability."""
    appointment_id = await scheduler.create_appointment(appointment)
    return await scheduler.get_appointment(appointment_id)


@router.post("/recurring", response_model=SeriesResultOut, status_code=201)
async def book_recurring(
    data: RecurringSeriesCreate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Book a weekly series. Partial series are kept and the stopping error is reported."""
    result = await scheduler.create_recurring_series(data)
    return SeriesResultOut(
        created_count=result.created_count,
        created_ids=result.created_ids,
        recurring_group_id=result.recurring_group_id,
        error=str(result.error) if result.error else None,
    )


@router.delete("/groups/{recurring_group_id}")
async def delete_recurring_group(
    recurring_group_id: str,
    future_only: bool = Query(True),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    deleted = await scheduler.delete_recurring_group(recurring_group_id, future_only=future_only)
    return {"recurring_group_id": recurring_group_id, "deleted": deleted}


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.get_appointment(appointment_id)


@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: str,
    updates: AppointmentUpdate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.update_appointment(appointment_id, updates)
    return await scheduler.get_appointment(appointment_id)


@router.put("/{appointment_id}/status", response_model=Appointment)
async def change_status(
    appointment_id: str,
    body: StatusUpdate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Move an appointment along its lifecycle (confirm, complete, cancel, no-show)."""
    return await scheduler.set_status(appointment_id, body.status)


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.delete_appointment(appointment_id)
    return Response(status_code=204)
