"""Academy (group class) endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from coachbook.core.deps import get_scheduler, get_user_id
from coachbook.schemas.academy import (
    Academy,
    AcademyCreate,
    AcademyCreated,
    AcademyStatus,
    AcademyUpdate,
    CourtClientAdd,
)
from coachbook.schemas.appointment import SeriesResultOut
from coachbook.services.scheduling import SchedulingService

router = APIRouter()


@router.get("/", response_model=list[Academy])
async def list_academies(
    status: Optional[AcademyStatus] = Query(None),
    sport_type: Optional[str] = Query(None),
    coach_id: Optional[str] = Query(None),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """List academies, newest first."""
    if coach_id:
        academies = await scheduler.academies_for_coach(coach_id)
        return [
            a for a in academies
            if (status is None or a.status == status) and (sport_type is None or a.sport_type == sport_type)
        ]
    return await scheduler.list_academies(status=status, sport_type=sport_type)


@router.post("/", response_model=AcademyCreated, status_code=201)
async def create_academy(
    data: AcademyCreate,
    user_id: str = Depends(get_user_id),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Create an academy and generate its scheduled classes."""
    academy_id, result = await scheduler.create_academy_with_appointments(data, created_by=user_id)
    return AcademyCreated(
        academy=await scheduler.get_academy(academy_id),
        appointments_generated=result.created_count,
        generation_error=str(result.error) if result.error is not None else None,
    )


@router.get("/{academy_id}", response_model=Academy)
async def get_academy(
    academy_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.get_academy(academy_id)


@router.patch("/{academy_id}", response_model=Academy)
async def update_academy(
    academy_id: str,
    updates: AcademyUpdate,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.update_academy(academy_id, updates)
    return await scheduler.get_academy(academy_id)


@router.delete("/{academy_id}")
async def delete_academy(
    academy_id: str,
    cascade_future_appointments: bool = Query(True),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Delete an academy; its future classes go with it unless the cascade is disabled."""
    deleted = await scheduler.delete_academy(academy_id, cascade_future_appointments)
    return {"academy_id": academy_id, "deleted_appointments": deleted}


@router.post("/{academy_id}/generate", response_model=SeriesResultOut, status_code=201)
async def generate_appointments(
    academy_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Generate another set of the academy's classes. Existing ones are not deduplicated."""
    result = await scheduler.generate_appointments_from_academy(academy_id)
    return SeriesResultOut(
        created_count=result.created_count,
        created_ids=result.created_ids,
        error=str(result.error) if result.error else None,
    )


@router.post("/{academy_id}/courts/{court_id}/clients", response_model=Academy)
async def add_court_client(
    academy_id: str,
    court_id: str,
    body: CourtClientAdd,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.add_client_to_court(academy_id, court_id, body.client_id, body.client_name)


@router.delete("/{academy_id}/courts/{court_id}/clients/{client_id}", response_model=Academy)
async def remove_court_client(
    academy_id: str,
    court_id: str,
    client_id: str,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.remove_client_from_court(academy_id, court_id, client_id)
