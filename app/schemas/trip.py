from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.maintenance import MaintenanceItemIn


def to_naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC; aware input is converted, naive input kept."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TripCreate(BaseModel):
    customer_id: int
    driver_id: int
    truck_id: int
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    scheduled_date: datetime
    distance: Optional[float] = None
    duration: Optional[float] = None
    rate: Optional[float] = None
    fuel: Optional[float] = None
    mileage: Optional[float] = None
    salary: Optional[float] = None
    road_tolls: Optional[float] = None

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_date_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class TripUpdate(TripCreate):
    # None leaves maintenance untouched, [] clears it
    maintenance_items: Optional[List[MaintenanceItemIn]] = None


class TripStatusUpdate(BaseModel):
    status: str


class TripResponse(BaseModel):
    id: int
    customer_id: int
    driver_id: int
    truck_id: int
    origin: str
    destination: str
    scheduled_date: datetime
    distance: Optional[float] = None
    duration: Optional[float] = None
    rate: Optional[float] = None
    fuel: Optional[float] = None
    mileage: Optional[float] = None
    salary: Optional[float] = None
    road_tolls: Optional[float] = None
    status: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
