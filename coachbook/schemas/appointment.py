"""Pydantic schemas for Appointments and recurring series."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Appointments in these states no longer hold their time slot.
INACTIVE_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


class AppointmentCreate(BaseModel):
    """Schema for booking a single appointment."""
    client_id: str
    client_name: str = ""
    instructor_id: Optional[str] = None
    sport_type: str
    date: str  # "2024-01-15"
    start_time: str  # "09:00"
    duration: int = 60
    notes: str = ""
    recurring_group_id: Optional[str] = None
    exercise_ids: list[str] = []
    academy_id: Optional[str] = None
    court_id: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """Partial update. Only fields that are set are merged."""
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    instructor_id: Optional[str] = None
    sport_type: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    duration: Optional[int] = None
    status: Optional[AppointmentStatus] = None
    is_paid: Optional[bool] = None
    notes: Optional[str] = None
    recurring_group_id: Optional[str] = None
    exercise_ids: Optional[list[str]] = None
    academy_id: Optional[str] = None
    court_id: Optional[str] = None


class Appointment(BaseModel):
    """A stored appointment."""
    id: str
    client_id: str = ""
    client_name: str = ""
    instructor_id: Optional[str] = None
    sport_type: str = ""
    date: str
    start_time: str
    end_time: str
    duration: int = 60
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    is_paid: bool = False
    notes: str = ""
    recurring_group_id: Optional[str] = None
    exercise_ids: list[str] = []
    academy_id: Optional[str] = None
    court_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    @property
    def is_academy_class(self) -> bool:
        return bool(self.academy_id)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurring_group_id)

    @property
    def resource_key(self) -> Optional[str]:
        """Resource whose time this appointment occupies: court, else instructor, else the tenant (None)."""
        return self.court_id or self.instructor_id or None

    @property
    def time_range(self) -> str:
        return f"{self.start_time} - {self.end_time}"


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class RecurringSeriesCreate(BaseModel):
    """Schema for booking the same weekly slot for one client."""
    client_id: str
    client_name: str = ""
    instructor_id: Optional[str] = None
    sport_type: str
    day_of_week: int  # 0=Sunday ... 6=Saturday
    start_time: str
    duration: int = 60
    start_date: str
    end_date: Optional[str] = None  # None = up to the configured horizon
    notes: str = ""
    exercise_ids: list[str] = []


class SeriesResultOut(BaseModel):
    created_count: int
    created_ids: list[str]
    recurring_group_id: Optional[str] = None
    error: Optional[str] = None
