# app/services/trip_lifecycle_service.py
"""
Trip status state machine and the auto-start sweep.

Statuses: scheduled → ongoing → completed, ongoing → scheduled (pause),
scheduled/ongoing → cancelled. completed and cancelled are terminal.
The legacy "in progress" spelling is read as ongoing and never written.
"""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, StoreError, ValidationError
from app.core.logger import get_logger
from app.models.trip import Trip, TripStatus

logger = get_logger(__name__)


LEGACY_STATUS_ALIASES = {
    "in progress": TripStatus.ONGOING,
}

ALLOWED_TRANSITIONS = {
    TripStatus.SCHEDULED: {TripStatus.ONGOING, TripStatus.CANCELLED},
    TripStatus.ONGOING: {TripStatus.COMPLETED, TripStatus.SCHEDULED, TripStatus.CANCELLED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = {TripStatus.COMPLETED, TripStatus.CANCELLED}


def normalize_status(value) -> TripStatus:
    if isinstance(value, TripStatus):
        return value

    key = " ".join((value or "").strip().lower().split())
    if key in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[key]

    try:
        return TripStatus(key)
    except ValueError:
        raise ValidationError(f"Unknown trip status: '{value}'")


def can_transition(current, target) -> bool:
    return normalize_status(target) in ALLOWED_TRANSITIONS[normalize_status(current)]


def advance_status(db: Session, trip_id: int, target_status, now: datetime | None = None) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Trip not found")

    current = normalize_status(trip.status)
    target = normalize_status(target_status)

    if current in TERMINAL_STATUSES:
        raise ValidationError(f"Trip is already {current.value}")

    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            f"Cannot change trip status from {current.value} to {target.value}"
        )

    trip.status = target.value
    trip.updated_at = now or datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update status of trip {trip_id}: {e}")
        raise StoreError("Failed to update trip status")

    db.refresh(trip)
    logger.info(f"Trip {trip_id} status {current.value} → {target.value}")
    return trip


def auto_start_due_trips(db: Session, now: datetime | None = None) -> dict:
    """
    Move every scheduled trip whose scheduled_date has passed to ongoing.
    Safe to call repeatedly: only rows still scheduled are touched.
    """
    now = now or datetime.utcnow()

    try:
        due_trips = (
            db.query(Trip)
            .filter(
                Trip.status == TripStatus.SCHEDULED.value,
                Trip.scheduled_date <= now,
            )
            .order_by(Trip.scheduled_date.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching trips to auto-start: {e}")
        raise StoreError("Failed to fetch trips")

    if not due_trips:
        logger.debug("No trips to start automatically")
        return {
            "message": "No trips to start",
            "updated_count": 0,
            "updated_trips": [],
        }

    trip_ids = [t.id for t in due_trips]
    logger.info(f"Found {len(trip_ids)} trips to start: {trip_ids}")

    try:
        updated_count = (
            db.query(Trip)
            .filter(
                Trip.id.in_(trip_ids),
                Trip.status == TripStatus.SCHEDULED.value,
            )
            .update(
                {Trip.status: TripStatus.ONGOING.value, Trip.updated_at: now},
                synchronize_session=False,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating trip statuses: {e}")
        raise StoreError("Failed to update trip statuses")

    logger.info(f"Successfully started {updated_count} trips")

    return {
        "message": "Trips auto-started successfully",
        "updated_count": updated_count,
        "updated_trips": [
            {
                "id": t.id,
                "origin": t.origin,
                "destination": t.destination,
                "scheduled_date": t.scheduled_date.isoformat(),
            }
            for t in due_trips
        ],
    }


def trip_statistics(db: Session) -> dict:
    rows = (
        db.query(
            Trip.status,
            func.count(Trip.id).label("trips"),
            func.sum(Trip.rate).label("revenue"),
            func.sum(Trip.distance).label("distance"),
        )
        .group_by(Trip.status)
        .all()
    )

    by_status = {s.value: 0 for s in TripStatus}
    total_trips = 0
    total_revenue = 0.0
    total_distance = 0.0

    for r in rows:
        status = normalize_status(r.status)
        by_status[status.value] += r.trips
        total_trips += r.trips
        total_revenue += float(r.revenue or 0)
        total_distance += float(r.distance or 0)

    return {
        "total_trips": total_trips,
        "scheduled_trips": by_status[TripStatus.SCHEDULED.value],
        "ongoing_trips": by_status[TripStatus.ONGOING.value],
        "completed_trips": by_status[TripStatus.COMPLETED.value],
        "cancelled_trips": by_status[TripStatus.CANCELLED.value],
        "total_revenue": total_revenue,
        "total_distance": total_distance,
        "avg_trip_rate": total_revenue / total_trips if total_trips > 0 else 0,
    }
