"""Pydantic schemas for Academies (recurring group classes)."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from coachbook.services.sports import max_clients_per_court


class AcademyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class CourtMember(BaseModel):
    """One client on a court roster, with the display name cached alongside the id."""
    client_id: str
    client_name: str = ""


class CourtIn(BaseModel):
    id: Optional[str] = None  # generated on create when missing
    court_number: int
    assigned_coach_id: str = ""
    assigned_coach_name: str = ""
    roster: list[CourtMember] = []

    @property
    def client_ids(self) -> list[str]:
        return [m.client_id for m in self.roster]

    @property
    def client_names(self) -> list[str]:
        return [m.client_name for m in self.roster]


class Court(CourtIn):
    id: str


class AcademySchedule(BaseModel):
    """Weekly recurrence of an academy class."""
    day_of_week: int  # 0=Sunday ... 6=Saturday
    start_time: str
    end_time: Optional[str] = None  # derived from start_time + duration when omitted
    duration: int
    start_date: str
    end_date: Optional[str] = None  # open-ended when omitted


class AcademyCreate(BaseModel):
    name: str
    sport_type: str
    description: str = ""
    number_of_courts: Optional[int] = None  # defaults to len(courts)
    court_price: float = 0
    price_per_student: float = 0
    head_coach_id: str = ""
    head_coach_name: str = ""
    courts: list[CourtIn] = []
    schedules: list[AcademySchedule] = []
    exercise_ids: list[str] = []


class AcademyUpdate(BaseModel):
    name: Optional[str] = None
    sport_type: Optional[str] = None
    description: Optional[str] = None
    number_of_courts: Optional[int] = None
    court_price: Optional[float] = None
    price_per_student: Optional[float] = None
    head_coach_id: Optional[str] = None
    head_coach_name: Optional[str] = None
    courts: Optional[list[CourtIn]] = None
    schedules: Optional[list[AcademySchedule]] = None
    exercise_ids: Optional[list[str]] = None
    status: Optional[AcademyStatus] = None


class Academy(BaseModel):
    """A stored academy with its embedded courts and schedules."""
    id: str
    name: str
    sport_type: str
    description: str = ""
    number_of_courts: int = 1
    court_price: float = 0
    price_per_student: float = 0
    head_coach_id: str = ""
    head_coach_name: str = ""
    courts: list[Court] = []
    schedules: list[AcademySchedule] = []
    exercise_ids: list[str] = []
    status: AcademyStatus = AcademyStatus.ACTIVE
    created_by: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def max_clients_per_court(self) -> int:
        return max_clients_per_court(self.sport_type)

    @property
    def total_clients(self) -> int:
        return sum(len(court.roster) for court in self.courts)

    def has_coach(self, coach_id: str) -> bool:
        return self.head_coach_id == coach_id or any(
            court.assigned_coach_id == coach_id for court in self.courts
        )

    def courts_for_coach(self, coach_id: str) -> list[Court]:
        return [court for court in self.courts if court.assigned_coach_id == coach_id]

    def court(self, court_id: str) -> Optional[Court]:
        return next((court for court in self.courts if court.id == court_id), None)


class CourtClientAdd(BaseModel):
    client_id: str
    client_name: str = ""


class AcademyCreated(BaseModel):
    academy: Academy
    appointments_generated: int
    generation_error: Optional[str] = None
