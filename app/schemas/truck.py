from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.truck import TruckStatus


class TruckCreate(BaseModel):
    plate_number: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    capacity: Optional[float] = Field(default=None, ge=0)
    status: TruckStatus = TruckStatus.ACTIVE
    assigned_driver_id: Optional[int] = None


class TruckResponse(BaseModel):
    id: int
    plate_number: str
    model: str
    capacity: Optional[float] = None
    status: str
    assigned_driver_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
