# app/services/report_service.py
"""
Trips / customers / trucks reports.

Each report is built once as a ReportResult of JSON-ready rows; the JSON
response and the CSV download are both rendered from that same result.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime, time

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import StoreError, ValidationError
from app.core.logger import get_logger
from app.models.customer import Customer
from app.models.maintenance import Maintenance
from app.models.trip import Trip, TripStatus
from app.models.truck import Truck
from app.schemas.report import REPORT_FILTERS, DateRange
from app.schemas.trip import to_naive_utc
from app.services.profit_service import compute_profit
from app.services.trip_lifecycle_service import normalize_status

logger = get_logger(__name__)


TRIP_COLUMNS = [
    ("id", "Trip ID"),
    ("customer", "Customer"),
    ("origin", "Origin"),
    ("destination", "Destination"),
    ("driver", "Driver"),
    ("truck", "Truck"),
    ("scheduled_date", "Scheduled Date"),
    ("status", "Status"),
    ("distance", "Distance (kilometers)"),
    ("duration", "Duration (days)"),
    ("rate", "Rate ($)"),
    ("fuel", "Fuel ($)"),
    ("mileage", "Mileage ($)"),
    ("salary", "Salary ($)"),
    ("road_tolls", "Road Tolls ($)"),
    ("maintenance_cost", "Maintenance ($)"),
    ("total_costs", "Total Costs ($)"),
    ("profit", "Profit ($)"),
    ("profit_margin", "Profit Margin (%)"),
]

CUSTOMER_COLUMNS = [
    ("id", "Customer ID"),
    ("name", "Name"),
    ("contact_person", "Contact Person"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("address", "Address"),
    ("total_trips", "Total Trips"),
    ("total_revenue", "Total Revenue ($)"),
    ("avg_trip_distance", "Avg. Trip Distance"),
    ("created_at", "Customer Since"),
]

TRUCK_COLUMNS = [
    ("id", "Truck ID"),
    ("plate_number", "Plate Number"),
    ("model", "Model"),
    ("capacity", "Capacity (tons)"),
    ("assigned_driver", "Assigned Driver"),
    ("status", "Status"),
    ("total_trips", "Total Trips"),
    ("total_distance", "Total Distance"),
    ("maintenance_costs", "Maintenance Costs ($)"),
    ("revenue_generated", "Revenue Generated ($)"),
    ("utilization_rate", "Utilization Rate (%)"),
    ("created_at", "Created Date"),
]

DISTANCE_RANGES = {
    "short": lambda km: km < 1000,
    "medium": lambda km: 1000 <= km <= 5000,
    "long": lambda km: km > 5000,
}

UTILIZATION_RANGES = {
    "low": lambda pct: pct < 30,
    "medium": lambda pct: 30 <= pct <= 70,
    "high": lambda pct: pct > 70,
}

REVENUE_RANGES = {
    "low": lambda amount: amount < 5000,
    "medium": lambda amount: 5000 <= amount <= 20000,
    "high": lambda amount: amount > 20000,
}

TRIP_COUNT_RANGES = {
    "new": lambda count: 1 <= count <= 5,
    "regular": lambda count: 6 <= count <= 20,
    "frequent": lambda count: count > 20,
}


@dataclass
class ReportResult:
    entity_type: str
    columns: list = field(default_factory=list)
    rows: list = field(default_factory=list)


def _in_range(value, predicate) -> bool:
    return predicate(value or 0)


def _parse_from_date(date_value: str | None) -> datetime | None:
    if not date_value:
        return None

    try:
        parsed = datetime.fromisoformat(date_value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date: '{date_value}'")

    if "T" not in date_value:
        return datetime.combine(parsed.date(), time.min)
    return to_naive_utc(parsed)


def _parse_to_date(date_value: str | None) -> datetime | None:
    if not date_value:
        return None

    try:
        parsed = datetime.fromisoformat(date_value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date: '{date_value}'")

    if "T" not in date_value:
        return datetime.combine(parsed.date(), time.max)
    return to_naive_utc(parsed)


def _iso(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def parse_filters(entity_type: str, filters: dict | None):
    if entity_type not in REPORT_FILTERS:
        raise ValidationError(f"Unknown report type: '{entity_type}'")

    try:
        return REPORT_FILTERS[entity_type].model_validate(filters or {})
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'filters'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid filters for {entity_type} report: {problems}")


# =====================================================
# TRIPS
# =====================================================

def trips_report(db: Session, from_dt, to_dt, filters, include_road_tolls: bool = False) -> list[dict]:
    query = db.query(Trip).options(
        joinedload(Trip.customer),
        joinedload(Trip.truck),
        joinedload(Trip.driver),
    )

    if from_dt:
        query = query.filter(Trip.scheduled_date >= from_dt)
    if to_dt:
        query = query.filter(Trip.scheduled_date <= to_dt)

    if filters.status == TripStatus.ONGOING:
        query = query.filter(func.lower(Trip.status).in_(["ongoing", "in progress"]))
    elif filters.status:
        query = query.filter(Trip.status == filters.status.value)

    if filters.customer_id is not None:
        query = query.filter(Trip.customer_id == filters.customer_id)
    if filters.truck_id is not None:
        query = query.filter(Trip.truck_id == filters.truck_id)
    if filters.driver_id is not None:
        query = query.filter(Trip.driver_id == filters.driver_id)

    trips = query.order_by(Trip.scheduled_date.desc(), Trip.id.desc()).all()

    if filters.distance_range:
        matches = DISTANCE_RANGES[filters.distance_range]
        trips = [t for t in trips if _in_range(t.distance, matches)]

    if not trips:
        return []

    maintenance_by_trip: dict[int, list[Maintenance]] = {}
    for item in (
        db.query(Maintenance)
        .filter(Maintenance.trip_id.in_([t.id for t in trips]))
        .all()
    ):
        maintenance_by_trip.setdefault(item.trip_id, []).append(item)

    rows = []

    for trip in trips:
        profit = compute_profit(
            trip,
            maintenance_by_trip.get(trip.id, []),
            include_road_tolls=include_road_tolls,
        )

        rows.append({
            "id": trip.id,
            "customer": trip.customer.name if trip.customer else "Unknown",
            "origin": trip.origin,
            "destination": trip.destination,
            "driver": trip.driver.name if trip.driver else "Unassigned",
            "truck": (
                f"{trip.truck.plate_number} ({trip.truck.model})" if trip.truck else "Unknown"
            ),
            "scheduled_date": _iso(trip.scheduled_date),
            "status": normalize_status(trip.status).value,
            "distance": trip.distance,
            "duration": trip.duration,
            "rate": profit.rate,
            "fuel": profit.fuel,
            "mileage": profit.mileage,
            "salary": profit.salary,
            "road_tolls": profit.road_tolls,
            "maintenance_cost": profit.maintenance_cost,
            "total_costs": profit.total_costs,
            "profit": profit.profit,
            "profit_margin": profit.profit_margin,
        })

    return rows


# =====================================================
# CUSTOMERS
# =====================================================

def customers_report(db: Session, from_dt, to_dt, filters) -> list[dict]:
    query = db.query(Customer)

    if from_dt:
        query = query.filter(Customer.created_at >= from_dt)
    if to_dt:
        query = query.filter(Customer.created_at <= to_dt)

    customers = query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()

    if not customers:
        return []

    trip_stats = {
        r.customer_id: r
        for r in (
            db.query(
                Trip.customer_id,
                func.count(Trip.id).label("total_trips"),
                func.sum(Trip.rate).label("total_revenue"),
                func.avg(Trip.distance).label("avg_distance"),
            )
            .filter(Trip.customer_id.in_([c.id for c in customers]))
            .group_by(Trip.customer_id)
            .all()
        )
    }

    rows = []

    for customer in customers:
        stats = trip_stats.get(customer.id)
        total_trips = stats.total_trips if stats else 0
        total_revenue = float(stats.total_revenue or 0) if stats else 0.0
        avg_distance = float(stats.avg_distance or 0) if stats else 0.0

        if filters.revenue_range and not _in_range(total_revenue, REVENUE_RANGES[filters.revenue_range]):
            continue
        if filters.trip_count and not _in_range(total_trips, TRIP_COUNT_RANGES[filters.trip_count]):
            continue

        rows.append({
            "id": customer.id,
            "name": customer.name,
            "contact_person": customer.contact_person,
            "email": customer.email,
            "phone": customer.phone,
            "address": customer.address,
            "total_trips": total_trips,
            "total_revenue": total_revenue,
            "avg_trip_distance": avg_distance,
            "created_at": _iso(customer.created_at),
        })

    return rows


# =====================================================
# TRUCKS
# =====================================================

def trucks_report(db: Session, from_dt, to_dt, filters) -> list[dict]:
    query = db.query(Truck).options(joinedload(Truck.assigned_driver))

    if from_dt:
        query = query.filter(Truck.created_at >= from_dt)
    if to_dt:
        query = query.filter(Truck.created_at <= to_dt)

    if filters.status:
        query = query.filter(Truck.status == filters.status.value)

    trucks = query.order_by(Truck.created_at.desc(), Truck.id.desc()).all()

    if not trucks:
        return []

    truck_ids = [t.id for t in trucks]

    trip_stats = {
        r.truck_id: r
        for r in (
            db.query(
                Trip.truck_id,
                func.count(Trip.id).label("total_trips"),
                func.sum(Trip.distance).label("total_distance"),
                func.sum(Trip.rate).label("revenue"),
            )
            .filter(Trip.truck_id.in_(truck_ids))
            .group_by(Trip.truck_id)
            .all()
        )
    }

    completed_counts = dict(
        db.query(Trip.truck_id, func.count(Trip.id))
        .filter(
            Trip.truck_id.in_(truck_ids),
            Trip.status == TripStatus.COMPLETED.value,
        )
        .group_by(Trip.truck_id)
        .all()
    )

    maintenance_costs = dict(
        db.query(Maintenance.truck_id, func.sum(Maintenance.cost))
        .filter(Maintenance.truck_id.in_(truck_ids))
        .group_by(Maintenance.truck_id)
        .all()
    )

    rows = []

    for truck in trucks:
        stats = trip_stats.get(truck.id)
        total_trips = stats.total_trips if stats else 0
        completed = completed_counts.get(truck.id, 0)
        utilization_rate = (completed / total_trips) * 100 if total_trips > 0 else 0

        if filters.utilization and not _in_range(utilization_rate, UTILIZATION_RANGES[filters.utilization]):
            continue

        rows.append({
            "id": truck.id,
            "plate_number": truck.plate_number,
            "model": truck.model,
            "capacity": truck.capacity,
            "assigned_driver": truck.assigned_driver.name if truck.assigned_driver else "Unassigned",
            "status": truck.status,
            "total_trips": total_trips,
            "total_distance": float(stats.total_distance or 0) if stats else 0.0,
            "maintenance_costs": float(maintenance_costs.get(truck.id) or 0),
            "revenue_generated": float(stats.revenue or 0) if stats else 0.0,
            "utilization_rate": utilization_rate,
            "created_at": _iso(truck.created_at),
        })

    return rows


REPORT_COLUMNS = {
    "trips": TRIP_COLUMNS,
    "customers": CUSTOMER_COLUMNS,
    "trucks": TRUCK_COLUMNS,
}


def generate_report(
    db: Session,
    entity_type: str,
    date_range: DateRange | dict | None = None,
    filters: dict | None = None,
    include_road_tolls: bool = False,
) -> ReportResult:
    parsed_filters = parse_filters(entity_type, filters)

    if isinstance(date_range, dict):
        date_range = DateRange.model_validate(date_range)
    date_range = date_range or DateRange()

    from_dt = _parse_from_date(date_range.from_date)
    to_dt = _parse_to_date(date_range.to_date)

    try:
        if entity_type == "trips":
            rows = trips_report(db, from_dt, to_dt, parsed_filters, include_road_tolls)
        elif entity_type == "customers":
            rows = customers_report(db, from_dt, to_dt, parsed_filters)
        else:
            rows = trucks_report(db, from_dt, to_dt, parsed_filters)
    except SQLAlchemyError as e:
        logger.error(f"Error generating {entity_type} report: {e}")
        raise StoreError(f"Failed to fetch {entity_type} data")

    logger.info(f"Generated {entity_type} report with {len(rows)} rows")

    return ReportResult(
        entity_type=entity_type,
        columns=REPORT_COLUMNS[entity_type],
        rows=rows,
    )


def _csv_cell(value) -> str:
    if value is None:
        return ""
    return str(value)


def render_csv(result: ReportResult) -> str:
    """Header row of column labels, then one fully-quoted line per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow([label for _, label in result.columns])
    for row in result.rows:
        writer.writerow([_csv_cell(row.get(key)) for key, _ in result.columns])

    return buffer.getvalue()


def report_filename(entity_type: str, today: date | None = None) -> str:
    return f"{entity_type}-report-{(today or date.today()).isoformat()}.csv"
