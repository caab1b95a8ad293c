"""Pydantic schemas for weekly availability rules and bookable slots."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class PriceType(str, Enum):
    LOW = "low"
    HIGH = "high"


class AvailabilityRuleCreate(BaseModel):
    """Schema for adding a weekly availability window."""
    day_of_week: int  # 0=Sunday ... 6=Saturday
    start_time: str  # "09:00"
    end_time: str  # "18:00"
    duration: int = 60  # slot length in minutes
    price_type: Optional[PriceType] = None
    is_active: bool = True


class AvailabilityRuleUpdate(BaseModel):
    day_of_week: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    price_type: Optional[PriceType] = None
    is_active: Optional[bool] = None


class AvailabilityRule(AvailabilityRuleCreate):
    """A stored availability rule."""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def time_range(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    @property
    def is_high_price(self) -> bool:
        return self.price_type == PriceType.HIGH


class BookableSlot(BaseModel):
    date: str
    start_time: str
    end_time: str
    duration: int
    price_type: Optional[PriceType] = None


class BookableSlotsResponse(BaseModel):
    start_date: str
    end_date: str
    slots: list[BookableSlot]
