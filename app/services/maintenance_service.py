import math
from collections.abc import Mapping
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, StoreError, ValidationError
from app.core.logger import get_logger
from app.models.maintenance import Maintenance
from app.models.trip import Trip
from app.models.truck import Truck

logger = get_logger(__name__)


def _item_value(item, key):
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def validate_cost(cost) -> float:
    if isinstance(cost, bool):
        raise ValidationError("Cost must be a number")

    try:
        value = float(cost)
    except (TypeError, ValueError):
        raise ValidationError("Cost must be a number")

    if not math.isfinite(value):
        raise ValidationError("Cost must be a finite number")
    if value < 0:
        raise ValidationError("Cost cannot be negative")

    return value


def _validate_description(description) -> str:
    text = (description or "").strip()
    if not text:
        raise ValidationError("Description is required")
    return text


def _get_truck(db: Session, truck_id: int) -> Truck:
    truck = db.query(Truck).filter(Truck.id == truck_id).first()
    if not truck:
        raise NotFoundError("Truck not found")
    return truck


def _get_trip(db: Session, trip_id: int) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def _commit(db: Session, failure_message: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{failure_message}: {e}")
        raise StoreError(failure_message)


def validate_items(items):
    for item in items or []:
        _validate_description(_item_value(item, "description"))
        validate_cost(_item_value(item, "cost"))


def total_cost(items) -> float:
    return math.fsum(float(_item_value(item, "cost") or 0) for item in items or [])


def add_item(
    db: Session,
    truck_id: int,
    description: str,
    cost,
    trip_id: int | None = None,
    maintenance_date: date | None = None,
) -> Maintenance:
    cost_value = validate_cost(cost)
    text = _validate_description(description)

    _get_truck(db, truck_id)
    if trip_id is not None:
        _get_trip(db, trip_id)

    item = Maintenance(
        truck_id=truck_id,
        trip_id=trip_id,
        description=text,
        cost=cost_value,
        maintenance_date=maintenance_date or date.today(),
    )

    db.add(item)
    _commit(db, "Failed to save maintenance record")
    db.refresh(item)
    return item


def update_item(
    db: Session,
    item_id: int,
    description: str | None = None,
    cost=None,
    maintenance_date: date | None = None,
) -> Maintenance:
    item = db.query(Maintenance).filter(Maintenance.id == item_id).first()
    if not item:
        raise NotFoundError("Maintenance record not found")

    if description is not None:
        item.description = _validate_description(description)
    if cost is not None:
        item.cost = validate_cost(cost)
    if maintenance_date is not None:
        item.maintenance_date = maintenance_date

    _commit(db, "Failed to update maintenance record")
    db.refresh(item)
    return item


def delete_item(db: Session, item_id: int):
    item = db.query(Maintenance).filter(Maintenance.id == item_id).first()
    if not item:
        raise NotFoundError("Maintenance record not found")

    db.delete(item)
    _commit(db, "Failed to delete maintenance record")


def list_for_truck(
    db: Session,
    truck_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[Maintenance]:
    query = db.query(Maintenance).filter(Maintenance.truck_id == truck_id)

    if from_date:
        query = query.filter(Maintenance.maintenance_date >= from_date)

    if to_date:
        query = query.filter(Maintenance.maintenance_date <= to_date)

    return query.order_by(Maintenance.maintenance_date.desc(), Maintenance.id.desc()).all()


def list_for_trip(db: Session, trip_id: int) -> list[Maintenance]:
    return (
        db.query(Maintenance)
        .filter(Maintenance.trip_id == trip_id)
        .order_by(Maintenance.id.asc())
        .all()
    )


def replace_for_trip(db: Session, trip_id: int, truck_id: int, items) -> list[Maintenance]:
    """
    Replace every maintenance row of a trip with `items` in one transaction.
    A failure rolls back and leaves the previous rows in place.
    """
    trip = _get_trip(db, trip_id)
    _get_truck(db, truck_id)

    default_date = trip.scheduled_date.date() if trip.scheduled_date else date.today()

    # Validate everything before touching the table
    new_rows = [
        Maintenance(
            truck_id=truck_id,
            trip_id=trip_id,
            description=_validate_description(_item_value(item, "description")),
            cost=validate_cost(_item_value(item, "cost")),
            maintenance_date=_item_value(item, "maintenance_date") or default_date,
        )
        for item in items or []
    ]

    try:
        removed = (
            db.query(Maintenance)
            .filter(Maintenance.trip_id == trip_id)
            .delete(synchronize_session=False)
        )
        db.add_all(new_rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to replace maintenance for trip {trip_id}: {e}")
        raise StoreError("Failed to save maintenance records")

    logger.info(
        f"Trip {trip_id} maintenance replaced | removed: {removed} | inserted: {len(new_rows)}"
    )
    return list_for_trip(db, trip_id)


def truck_maintenance_summary(
    db: Session,
    truck_id: int | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[dict]:
    trucks_query = db.query(Truck)
    if truck_id is not None:
        trucks_query = trucks_query.filter(Truck.id == truck_id)
    trucks = trucks_query.order_by(Truck.plate_number.asc()).all()

    if not trucks:
        return []

    records_query = db.query(Maintenance).filter(
        Maintenance.truck_id.in_([t.id for t in trucks])
    )
    if from_date:
        records_query = records_query.filter(Maintenance.maintenance_date >= from_date)
    if to_date:
        records_query = records_query.filter(Maintenance.maintenance_date <= to_date)

    by_truck: dict[int, list[Maintenance]] = {}
    for record in records_query.all():
        by_truck.setdefault(record.truck_id, []).append(record)

    summary = []

    for truck in trucks:
        records = by_truck.get(truck.id, [])
        total = total_cost(records)
        count = len(records)
        last_date = max((r.maintenance_date for r in records), default=None)

        summary.append({
            "id": truck.id,
            "plate_number": truck.plate_number,
            "model": truck.model,
            "total_maintenance_cost": total,
            "maintenance_count": count,
            "avg_maintenance_cost": total / count if count > 0 else 0,
            "last_maintenance_date": last_date.isoformat() if last_date else None,
        })

    return summary
