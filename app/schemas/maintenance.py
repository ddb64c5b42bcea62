from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class MaintenanceItemIn(BaseModel):
    description: str
    cost: float
    maintenance_date: Optional[date] = None


class MaintenanceCreate(MaintenanceItemIn):
    truck_id: int
    trip_id: Optional[int] = None


class MaintenanceUpdate(BaseModel):
    description: Optional[str] = None
    cost: Optional[float] = None
    maintenance_date: Optional[date] = None


class MaintenanceReplace(BaseModel):
    truck_id: int
    items: list[MaintenanceItemIn] = Field(default_factory=list)


class MaintenanceResponse(BaseModel):
    id: int
    truck_id: int
    trip_id: Optional[int] = None
    description: str
    cost: float
    maintenance_date: date

    class Config:
        from_attributes = True
