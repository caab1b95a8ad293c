"""Generic document row backing the tenant-scoped document store.

Every scheduling entity (availability rule, appointment, academy) is a JSON
document addressed by its collection path, e.g. ``tenants/{tenant_id}/appointments``,
and its document id.
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
from datetime import datetime
from coachbook.core.database import Base


class Document(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    # JSONB on PostgreSQL, matching the migration
    data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
