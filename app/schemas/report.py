from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.truck import TruckStatus
from app.models.trip import TripStatus
from app.services.trip_lifecycle_service import normalize_status

# Values the UI sends for an unset filter
_UNSET_FILTER_VALUES = {"", "all"}


class DateRange(BaseModel):
    # ISO date or datetime strings; a bare date covers the whole day
    from_date: Optional[str] = Field(default=None, alias="from")
    to_date: Optional[str] = Field(default=None, alias="to")

    class Config:
        populate_by_name = True


class ReportFilters(BaseModel):
    class Config:
        extra = "forbid"

    @model_validator(mode="before")
    @classmethod
    def _drop_unset(cls, data):
        if isinstance(data, dict):
            return {
                k: v for k, v in data.items()
                if not (isinstance(v, str) and v.strip().lower() in _UNSET_FILTER_VALUES)
            }
        return data


class TripReportFilters(ReportFilters):
    status: Optional[TripStatus] = None
    customer_id: Optional[int] = None
    truck_id: Optional[int] = None
    driver_id: Optional[int] = None
    distance_range: Optional[Literal["short", "medium", "long"]] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if value is None:
            return None
        return normalize_status(value)


class TruckReportFilters(ReportFilters):
    status: Optional[TruckStatus] = None
    utilization: Optional[Literal["low", "medium", "high"]] = None

    @field_validator("status", mode="before")
    @classmethod
    def _map_out_of_service(cls, value):
        if isinstance(value, str) and value.strip().lower() == "out_of_service":
            return TruckStatus.INACTIVE
        return value


class CustomerReportFilters(ReportFilters):
    revenue_range: Optional[Literal["low", "medium", "high"]] = None
    trip_count: Optional[Literal["new", "regular", "frequent"]] = None


REPORT_FILTERS = {
    "trips": TripReportFilters,
    "trucks": TruckReportFilters,
    "customers": CustomerReportFilters,
}


class ReportRequest(BaseModel):
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    filters: dict = Field(default_factory=dict)
    format: Literal["json", "csv"] = "json"
    include_road_tolls: bool = Field(default=False, alias="includeRoadTolls")

    class Config:
        populate_by_name = True
