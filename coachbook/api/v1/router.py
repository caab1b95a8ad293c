from fastapi import APIRouter
from coachbook.api.v1.endpoints import academies, appointments, availability

api_router = APIRouter()
api_router.include_router(availability.router, prefix="/tenants/{tenant_id}/availability", tags=["availability"])
api_router.include_router(appointments.router, prefix="/tenants/{tenant_id}/appointments", tags=["appointments"])
api_router.include_router(academies.router, prefix="/tenants/{tenant_id}/academies", tags=["academies"])
