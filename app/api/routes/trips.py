from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.dependencies import driver_scope, get_db, require_role
from app.core.exceptions import PartialFailureError, StoreError
from app.core.logger import get_logger
from app.models.customer import Customer
from app.models.profile import Profile
from app.models.trip import Trip, TripStatus
from app.models.truck import Truck
from app.schemas.maintenance import MaintenanceResponse
from app.schemas.trip import TripCreate, TripResponse, TripStatusUpdate, TripUpdate
from app.services.audit_service import log_action
from app.services.maintenance_service import list_for_trip, replace_for_trip, validate_items
from app.services.profit_service import compute_profit, round_currency, round_percentage
from app.services.trip_lifecycle_service import (
    advance_status,
    auto_start_due_trips,
    normalize_status,
    trip_statistics,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/trips", tags=["Trips"])

ALL_ROLES = ["admin", "dispatcher", "driver"]


def _check_references(db: Session, trip_data: TripCreate):
    if not db.query(Customer).filter(Customer.id == trip_data.customer_id).first():
        raise HTTPException(status_code=404, detail="Customer not found")

    driver = db.query(Profile).filter(Profile.id == trip_data.driver_id).first()
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    if driver.role != "driver":
        raise HTTPException(status_code=400, detail="Assigned profile is not a driver")

    if not db.query(Truck).filter(Truck.id == trip_data.truck_id).first():
        raise HTTPException(status_code=404, detail="Truck not found")


def _trip_response(trip: Trip) -> dict:
    data = TripResponse.model_validate(trip).model_dump()
    data["status"] = normalize_status(trip.status).value
    return data


def _visible_to(user, trip: Trip) -> bool:
    scope = driver_scope(user)
    return scope is None or trip.driver_id == scope


# ---------------- CREATE ----------------

@router.post("")
def create_trip(
    trip_data: TripCreate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    _check_references(db, trip_data)

    new_trip = Trip(
        **trip_data.model_dump(),
        status=TripStatus.SCHEDULED.value,
    )
    db.add(new_trip)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create trip: {e}")
        raise StoreError("Failed to create trip")

    db.refresh(new_trip)

    log_action(
        db=db,
        user_id=user.id,
        action="CREATE_TRIP",
        entity_type="Trip",
        entity_id=new_trip.id,
        details=f"{new_trip.origin} → {new_trip.destination} on {new_trip.scheduled_date.isoformat()}"
    )

    return _trip_response(new_trip)


# ---------------- LIST ----------------

@router.get("")
def list_trips(
    status: str | None = None,
    db: Session = Depends(get_db),
    user=Depends(require_role(ALL_ROLES))
):
    q = db.query(Trip)

    if status and status.strip().lower() != "all":
        wanted = normalize_status(status)
        if wanted == TripStatus.ONGOING:
            q = q.filter(func.lower(Trip.status).in_([TripStatus.ONGOING.value, "in progress"]))
        else:
            q = q.filter(Trip.status == wanted.value)

    scope = driver_scope(user)
    if scope is not None:
        q = q.filter(Trip.driver_id == scope)

    trips = q.order_by(Trip.scheduled_date.desc(), Trip.id.desc()).all()

    return [_trip_response(t) for t in trips]


# ---------------- STATISTICS / AUTO-START ----------------

@router.get("/statistics")
def get_trip_statistics(
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    return trip_statistics(db)


@router.post("/auto-start")
def auto_start_trips(
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    result = auto_start_due_trips(db)

    if result["updated_count"]:
        log_action(
            db=db,
            user_id=user.id,
            action="AUTO_START_TRIPS",
            entity_type="Trip",
            details=f"Started trips: {[t['id'] for t in result['updated_trips']]}"
        )

    return result


# ---------------- DETAIL ----------------

@router.get("/{trip_id}")
def get_trip(
    trip_id: int,
    include_road_tolls: bool = False,
    db: Session = Depends(get_db),
    user=Depends(require_role(ALL_ROLES))
):
    trip = (
        db.query(Trip)
        .options(
            joinedload(Trip.customer),
            joinedload(Trip.driver),
            joinedload(Trip.truck),
        )
        .filter(Trip.id == trip_id)
        .first()
    )

    if not trip or not _visible_to(user, trip):
        raise HTTPException(status_code=404, detail="Trip not found")

    items = list_for_trip(db, trip_id)
    profit = compute_profit(trip, items, include_road_tolls=include_road_tolls)

    response = _trip_response(trip)
    response["customer"] = trip.customer.name if trip.customer else None
    response["driver"] = trip.driver.name if trip.driver else None
    response["truck"] = (
        {"id": trip.truck.id, "plate_number": trip.truck.plate_number, "model": trip.truck.model}
        if trip.truck else None
    )
    response["maintenance_items"] = [
        MaintenanceResponse.model_validate(i).model_dump() for i in items
    ]
    response["profit"] = {
        "maintenance_cost": round_currency(profit.maintenance_cost),
        "total_costs": round_currency(profit.total_costs),
        "profit": round_currency(profit.profit),
        "profit_margin": round_percentage(profit.profit_margin),
    }

    return response


# ---------------- UPDATE ----------------

@router.put("/{trip_id}")
def update_trip(
    trip_id: int,
    trip_data: TripUpdate,
    db: Session = Depends(get_db),
    user=Depends(require_role(["admin", "dispatcher"]))
):
    trip = db.query(Trip).filter(Trip.id == trip_id).first()

    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")

    _check_references(db, trip_data)

    # Reject bad maintenance rows before anything is written
    if trip_data.maintenance_items is not None:
        validate_items(trip_data.maintenance_items)

    for field, value in trip_data.model_dump(exclude={"maintenance_items"}).items():
        setattr(trip, field, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update trip {trip_id}: {e}")
        raise StoreError("Failed to update trip")

    if trip_data.maintenance_items is not None:
        try:
            replace_for_trip(db, trip_id, trip.truck_id, trip_data.maintenance_items)
        except StoreError:
            logger.error(f"Trip {trip_id} updated but maintenance items were not saved")
            raise PartialFailureError(
                "Trip updated but maintenance items could not be saved",
                committed=["trip"],
                failed=["maintenance_items"],
            )

    db.refresh(trip)

    log_action(
        db=db,
        user_id=user.id,
        action="UPDATE_TRIP",
        entity_type="Trip",
        entity_id=trip.id,
        details=(
            "Trip updated"
            if trip_data.maintenance_items is None
            else f"Trip updated | maintenance items: {len(trip_data.maintenance_items)}"
        )
    )

    return _trip_response(trip)


# ---------------- STATUS ----------------

@router.post("/{trip_id}/status")
def change_trip_status(
    trip_id: int,
    body: TripStatusUpdate,
    db: Session = Depends(get_db),
    user=Depends(require_role(ALL_ROLES))
):
    existing = db.query(Trip).filter(Trip.id == trip_id).first()
    if not existing or not _visible_to(user, existing):
        raise HTTPException(status_code=404, detail="Trip not found")

    previous = normalize_status(existing.status).value
    trip = advance_status(db, trip_id, body.status)

    log_action(
        db=db,
        user_id=user.id,
        action="UPDATE_TRIP_STATUS",
        entity_type="Trip",
        entity_id=trip.id,
        details=f"Status: {previous} → {trip.status}"
    )

    return _trip_response(trip)
