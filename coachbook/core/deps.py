"""FastAPI dependencies for tenant-scoped scheduling.

Tenant and user ids come from the caller (path parameter and ``X-User-Id``
header) and are trusted as given; authentication happens upstream.
"""

from typing import Optional
from fastapi import Depends, Header, Path
from sqlalchemy.ext.asyncio import AsyncSession

from coachbook.core.database import get_db
from coachbook.services.document_store import DocumentStore
from coachbook.services.scheduling import SchedulingService


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


async def get_scheduler(
    tenant_id: str = Path(..., min_length=1),
    store: DocumentStore = Depends(get_store),
) -> SchedulingService:
    """Scheduling service bound to the tenant in the request path."""
    return SchedulingService(store, tenant_id)


async def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    return x_user_id or ""
