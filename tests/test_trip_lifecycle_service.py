# tests/test_trip_lifecycle_service.py
"""Unit tests for the trip status state machine and the auto-start sweep."""

from datetime import datetime, timedelta

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.models.trip import Trip, TripStatus
from app.services.trip_lifecycle_service import (
    advance_status,
    auto_start_due_trips,
    can_transition,
    normalize_status,
    trip_statistics,
)
from app.services.trip_scheduler import run_auto_start_once
from tests.factories import make_customer, make_trip, make_truck, make_user


NOW = datetime(2025, 3, 10, 12, 0)


@pytest.fixture
def parts(db):
    driver = make_user(db, "driver@example.com", "driver", "Juma")
    return make_customer(db), driver.profile, make_truck(db)


class TestNormalizeStatus:
    def test_known_values(self):
        assert normalize_status("scheduled") == TripStatus.SCHEDULED
        assert normalize_status(" Completed ") == TripStatus.COMPLETED

    def test_legacy_in_progress_reads_as_ongoing(self):
        assert normalize_status("in progress") == TripStatus.ONGOING
        assert normalize_status("In  Progress") == TripStatus.ONGOING

    def test_unknown_value_rejected(self):
        with pytest.raises(ValidationError):
            normalize_status("paused")


class TestTransitions:
    @pytest.mark.parametrize("current,target", [
        ("scheduled", "ongoing"),
        ("scheduled", "cancelled"),
        ("ongoing", "completed"),
        ("ongoing", "scheduled"),
        ("ongoing", "cancelled"),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("scheduled", "completed"),
        ("completed", "ongoing"),
        ("cancelled", "scheduled"),
        ("completed", "cancelled"),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)


class TestAdvanceStatus:
    def test_scheduled_to_ongoing(self, db, parts):
        trip = make_trip(db, *parts)
        updated = advance_status(db, trip.id, "ongoing", now=NOW)
        assert updated.status == "ongoing"
        assert updated.updated_at == NOW

    def test_completed_trip_cannot_restart(self, db, parts):
        trip = make_trip(db, *parts, status="completed")
        before = trip.updated_at

        with pytest.raises(ValidationError) as exc:
            advance_status(db, trip.id, "ongoing", now=NOW)

        assert "already completed" in exc.value.detail
        db.expire_all()
        stored = db.get(Trip, trip.id)
        assert stored.status == "completed"
        assert stored.updated_at == before

    def test_scheduled_cannot_jump_to_completed(self, db, parts):
        trip = make_trip(db, *parts)
        with pytest.raises(ValidationError):
            advance_status(db, trip.id, "completed")
        db.expire_all()
        assert db.get(Trip, trip.id).status == "scheduled"

    def test_legacy_status_row_can_complete(self, db, parts):
        trip = make_trip(db, *parts, status="in progress")
        assert advance_status(db, trip.id, "completed").status == "completed"

    def test_missing_trip(self, db):
        with pytest.raises(NotFoundError):
            advance_status(db, 999, "ongoing")


class TestAutoStart:
    def test_starts_only_due_scheduled_trips(self, db, parts):
        due = make_trip(db, *parts, scheduled_date=NOW - timedelta(hours=1))
        exactly_now = make_trip(db, *parts, scheduled_date=NOW)
        future = make_trip(db, *parts, scheduled_date=NOW + timedelta(hours=1))
        finished = make_trip(db, *parts, scheduled_date=NOW - timedelta(days=2), status="completed")
        cancelled = make_trip(db, *parts, scheduled_date=NOW - timedelta(days=2), status="cancelled")

        result = auto_start_due_trips(db, now=NOW)

        assert result["updated_count"] == 2
        assert {t["id"] for t in result["updated_trips"]} == {due.id, exactly_now.id}

        db.expire_all()
        assert db.get(Trip, due.id).status == "ongoing"
        assert db.get(Trip, exactly_now.id).status == "ongoing"
        assert db.get(Trip, future.id).status == "scheduled"
        assert db.get(Trip, finished.id).status == "completed"
        assert db.get(Trip, cancelled.id).status == "cancelled"

    def test_second_run_is_a_no_op(self, db, parts):
        make_trip(db, *parts, scheduled_date=NOW - timedelta(minutes=5))

        first = auto_start_due_trips(db, now=NOW)
        second = auto_start_due_trips(db, now=NOW)

        assert first["updated_count"] == 1
        assert second == {
            "message": "No trips to start",
            "updated_count": 0,
            "updated_trips": [],
        }

    def test_scheduler_tick_writes_audit_entry(self, db, parts, session_factory):
        from app.models.audit_log import AuditLog

        make_trip(db, *parts, scheduled_date=datetime.utcnow() - timedelta(minutes=1))

        result = run_auto_start_once(session_factory)

        assert result["updated_count"] == 1
        entry = db.query(AuditLog).filter(AuditLog.action == "AUTO_START_TRIPS").one()
        assert entry.actor_id is None


class TestStatistics:
    def test_counts_legacy_rows_as_ongoing(self, db, parts):
        make_trip(db, *parts, rate=100.0, distance=10.0)
        make_trip(db, *parts, status="in progress", rate=200.0, distance=20.0)
        make_trip(db, *parts, status="ongoing", rate=300.0, distance=30.0)

        stats = trip_statistics(db)

        assert stats["total_trips"] == 3
        assert stats["scheduled_trips"] == 1
        assert stats["ongoing_trips"] == 2
        assert stats["total_revenue"] == 600.0
        assert stats["total_distance"] == 60.0
        assert stats["avg_trip_rate"] == 200.0

    def test_empty(self, db):
        assert trip_statistics(db)["avg_trip_rate"] == 0


class TestScheduledDateInput:
    def test_offset_converted_to_naive_utc(self):
        from app.schemas.trip import TripCreate

        trip = TripCreate(
            customer_id=1, driver_id=1, truck_id=1,
            origin="A", destination="B",
            scheduled_date="2025-03-10T12:00:00+05:00",
        )
        assert trip.scheduled_date == datetime(2025, 3, 10, 7, 0)
        assert trip.scheduled_date.tzinfo is None

    def test_naive_value_kept(self):
        from app.schemas.trip import TripCreate

        trip = TripCreate(
            customer_id=1, driver_id=1, truck_id=1,
            origin="A", destination="B",
            scheduled_date="2025-03-10T12:00:00",
        )
        assert trip.scheduled_date == datetime(2025, 3, 10, 12, 0)
