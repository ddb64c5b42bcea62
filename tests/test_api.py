# tests/test_api.py
"""End-to-end tests through the FastAPI routes."""

import csv
import io
from datetime import datetime, timedelta

import pytest

from app.models.maintenance import Maintenance
from app.models.trip import Trip
from app.services import maintenance_service, otp_service
from app.core.exceptions import StoreError
from tests.factories import auth_headers, make_trip


def _trip_payload(fleet, **overrides):
    payload = {
        "customer_id": fleet["customer"].id,
        "driver_id": fleet["driver"].profile.id,
        "truck_id": fleet["truck"].id,
        "origin": "Mombasa",
        "destination": "Nairobi",
        "scheduled_date": "2025-03-10T08:00:00",
        "distance": 480,
        "duration": 1,
        "rate": 1000,
        "fuel": 200,
        "mileage": 50,
        "salary": 300,
        "road_tolls": 40,
    }
    payload.update(overrides)
    return payload


class TestAuth:
    def test_login_and_me(self, client, fleet):
        res = client.post(
            "/auth/login",
            data={"username": "Admin@Example.com", "password": "secret-pass"},
        )
        assert res.status_code == 200
        token = res.json()["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["role"] == "admin"

    def test_bad_password(self, client, fleet):
        res = client.post("/auth/login", data={"username": "admin@example.com", "password": "nope"})
        assert res.status_code == 401

    def test_missing_token(self, client, fleet):
        assert client.get("/trips").status_code == 401

    def test_otp_signup_flow(self, client, db, monkeypatch):
        monkeypatch.setattr(otp_service, "generate_otp_code", lambda: "123456")

        sent = client.post("/auth/send-otp", json={
            "email": "fresh@example.com",
            "userData": {"name": "Fresh", "password": "pw-123456", "role": "dispatcher"},
        })
        assert sent.status_code == 200

        wrong = client.post("/auth/verify-otp", json={"email": "fresh@example.com", "otpCode": "000000"})
        assert wrong.status_code == 400
        assert wrong.json()["detail"] == "Invalid or expired OTP"

        ok = client.post("/auth/verify-otp", json={"email": "fresh@example.com", "otpCode": "123456"})
        assert ok.status_code == 200
        assert ok.json()["userId"]

        login = client.post("/auth/login", data={"username": "fresh@example.com", "password": "pw-123456"})
        assert login.status_code == 200


class TestAdmin:
    def test_create_user_with_placeholder_email(self, client, fleet):
        res = client.post(
            "/admin/users",
            json={"name": "Mary Jane", "role": "driver"},
            headers=auth_headers(fleet["admin"]),
        )
        assert res.status_code == 200
        body = res.json()
        assert body["email"].startswith("mary.jane.")
        assert body["email"].endswith("@temp.logistics.com")
        assert len(body["temporaryPassword"]) == 20

    def test_dispatcher_cannot_manage_users(self, client, fleet):
        res = client.post(
            "/admin/users",
            json={"name": "X"},
            headers=auth_headers(fleet["dispatcher"]),
        )
        assert res.status_code == 403

    def test_duplicate_plate_conflict(self, client, fleet):
        res = client.post(
            "/admin/trucks",
            json={"plate_number": "KAA 001A", "model": "FH16"},
            headers=auth_headers(fleet["admin"]),
        )
        assert res.status_code == 409

    def test_audit_log_records_actions(self, client, fleet):
        headers = auth_headers(fleet["admin"])
        client.post("/admin/customers", json={"name": "Beta Ltd"}, headers=headers)

        logs = client.get("/admin/audit-logs", headers=headers).json()
        assert logs[0]["action"] == "CREATE_CUSTOMER"
        assert logs[0]["user"]["name"] == "Admin"

    def test_audit_log_filters_by_entity(self, client, db, fleet):
        headers = auth_headers(fleet["admin"])
        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        client.post(f"/trips/{trip.id}/status", json={"status": "ongoing"}, headers=headers)
        client.post("/admin/customers", json={"name": "Beta Ltd"}, headers=headers)

        logs = client.get(
            f"/admin/audit-logs?entity_type=Trip&entity_id={trip.id}",
            headers=headers,
        ).json()

        assert [entry["action"] for entry in logs] == ["UPDATE_TRIP_STATUS"]
        assert logs[0]["details"] == "Status: scheduled → ongoing"


class TestTrips:
    def test_create_and_detail_with_profit(self, client, fleet):
        headers = auth_headers(fleet["dispatcher"])
        created = client.post("/trips", json=_trip_payload(fleet), headers=headers)
        assert created.status_code == 200
        trip_id = created.json()["id"]
        assert created.json()["status"] == "scheduled"

        client.put(f"/maintenance/trip/{trip_id}", json={
            "truck_id": fleet["truck"].id,
            "items": [{"description": "Brakes", "cost": 75}],
        }, headers=headers)

        detail = client.get(f"/trips/{trip_id}", headers=headers).json()
        assert detail["maintenance_items"][0]["description"] == "Brakes"
        assert detail["profit"] == {
            "maintenance_cost": 75.0,
            "total_costs": 625.0,
            "profit": 375.0,
            "profit_margin": 37.5,
        }

        with_tolls = client.get(f"/trips/{trip_id}?include_road_tolls=true", headers=headers).json()
        assert with_tolls["profit"]["total_costs"] == 665.0

    def test_create_rejects_unknown_customer(self, client, fleet):
        res = client.post(
            "/trips",
            json=_trip_payload(fleet, customer_id=999),
            headers=auth_headers(fleet["admin"]),
        )
        assert res.status_code == 404

    def test_driver_cannot_create(self, client, fleet):
        res = client.post("/trips", json=_trip_payload(fleet), headers=auth_headers(fleet["driver"]))
        assert res.status_code == 403

    def test_status_changes(self, client, db, fleet):
        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        headers = auth_headers(fleet["driver"])

        started = client.post(f"/trips/{trip.id}/status", json={"status": "ongoing"}, headers=headers)
        assert started.status_code == 200
        assert started.json()["status"] == "ongoing"

        done = client.post(f"/trips/{trip.id}/status", json={"status": "completed"}, headers=headers)
        assert done.json()["status"] == "completed"

        again = client.post(f"/trips/{trip.id}/status", json={"status": "ongoing"}, headers=headers)
        assert again.status_code == 400
        assert again.json()["detail"] == "Trip is already completed"

    def test_driver_only_sees_own_trips(self, client, db, fleet):
        from tests.factories import make_user

        other = make_user(db, "other@example.com", "driver", "Other")
        mine = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        theirs = make_trip(db, fleet["customer"], other.profile, fleet["truck"])

        listed = client.get("/trips", headers=auth_headers(fleet["driver"])).json()
        assert [t["id"] for t in listed] == [mine.id]

        hidden = client.get(f"/trips/{theirs.id}", headers=auth_headers(fleet["driver"]))
        assert hidden.status_code == 404

    def test_list_filters_status_with_legacy_rows(self, client, db, fleet):
        parts = (fleet["customer"], fleet["driver"].profile, fleet["truck"])
        legacy = make_trip(db, *parts, status="In Progress")
        make_trip(db, *parts, status="scheduled")

        listed = client.get("/trips?status=ongoing", headers=auth_headers(fleet["admin"])).json()

        assert [t["id"] for t in listed] == [legacy.id]
        assert listed[0]["status"] == "ongoing"

    def test_offset_scheduled_date_stored_as_utc(self, client, db, fleet):
        from app.services.trip_lifecycle_service import auto_start_due_trips

        created = client.post(
            "/trips",
            json=_trip_payload(fleet, scheduled_date="2025-03-10T12:00:00+05:00"),
            headers=auth_headers(fleet["admin"]),
        )
        assert created.status_code == 200
        trip_id = created.json()["id"]

        db.expire_all()
        assert db.get(Trip, trip_id).scheduled_date == datetime(2025, 3, 10, 7, 0)

        result = auto_start_due_trips(db, now=datetime(2025, 3, 10, 8, 0))
        assert [t["id"] for t in result["updated_trips"]] == [trip_id]

    def test_update_refreshes_updated_at(self, client, db, fleet):
        stale = datetime(2020, 1, 1)
        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"],
                         updated_at=stale)

        res = client.put(
            f"/trips/{trip.id}",
            json=_trip_payload(fleet, origin="Kisumu"),
            headers=auth_headers(fleet["admin"]),
        )

        assert res.status_code == 200
        db.expire_all()
        assert db.get(Trip, trip.id).updated_at > stale

    def test_auto_start_endpoint(self, client, db, fleet):
        parts = (fleet["customer"], fleet["driver"].profile, fleet["truck"])
        make_trip(db, *parts, scheduled_date=datetime.utcnow() - timedelta(minutes=1))
        headers = auth_headers(fleet["admin"])

        first = client.post("/trips/auto-start", headers=headers).json()
        second = client.post("/trips/auto-start", headers=headers).json()

        assert first["updated_count"] == 1
        assert second["updated_count"] == 0

    def test_statistics(self, client, db, fleet):
        make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        stats = client.get("/trips/statistics", headers=auth_headers(fleet["admin"])).json()
        assert stats["scheduled_trips"] == 1
        assert stats["total_revenue"] == 1000

    def test_update_replaces_maintenance(self, client, db, fleet):
        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        maintenance_service.add_item(db, fleet["truck"].id, "Old", 10, trip_id=trip.id)

        res = client.put(
            f"/trips/{trip.id}",
            json=_trip_payload(fleet, origin="Kisumu", maintenance_items=[]),
            headers=auth_headers(fleet["admin"]),
        )

        assert res.status_code == 200
        assert res.json()["origin"] == "Kisumu"
        assert db.query(Maintenance).filter(Maintenance.trip_id == trip.id).count() == 0

    def test_update_rejects_negative_cost_before_writing(self, client, db, fleet):
        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])

        res = client.put(
            f"/trips/{trip.id}",
            json=_trip_payload(fleet, origin="Kisumu", maintenance_items=[
                {"description": "Bad", "cost": -1},
            ]),
            headers=auth_headers(fleet["admin"]),
        )

        assert res.status_code == 400
        db.expire_all()
        assert db.get(Trip, trip.id).origin == "Mombasa"

    def test_update_reports_partial_failure(self, client, db, fleet, monkeypatch):
        from app.api.routes import trips as trips_route

        trip = make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])

        def failing_replace(*args, **kwargs):
            raise StoreError("Failed to save maintenance records")

        monkeypatch.setattr(trips_route, "replace_for_trip", failing_replace)

        res = client.put(
            f"/trips/{trip.id}",
            json=_trip_payload(fleet, origin="Kisumu", maintenance_items=[
                {"description": "Tyre", "cost": 10},
            ]),
            headers=auth_headers(fleet["admin"]),
        )

        assert res.status_code == 500
        assert res.json()["detail"]["committed"] == ["trip"]
        assert res.json()["detail"]["failed"] == ["maintenance_items"]
        db.expire_all()
        assert db.get(Trip, trip.id).origin == "Kisumu"


class TestMaintenanceRoutes:
    def test_add_list_delete(self, client, fleet):
        headers = auth_headers(fleet["dispatcher"])
        truck_id = fleet["truck"].id

        added = client.post("/maintenance", json={
            "truck_id": truck_id,
            "description": "Oil",
            "cost": 45.5,
            "maintenance_date": "2025-03-02",
        }, headers=headers)
        assert added.status_code == 200

        listed = client.get(
            f"/maintenance/truck/{truck_id}?from_date=2025-03-01&to_date=2025-03-02",
            headers=headers,
        ).json()
        assert [m["description"] for m in listed] == ["Oil"]

        deleted = client.delete(f"/maintenance/{added.json()['id']}", headers=headers)
        assert deleted.status_code == 200

    def test_negative_cost_rejected(self, client, fleet):
        res = client.post("/maintenance", json={
            "truck_id": fleet["truck"].id,
            "description": "Oil",
            "cost": -3,
        }, headers=auth_headers(fleet["admin"]))
        assert res.status_code == 400


class TestReports:
    def test_json_and_csv_agree(self, client, db, fleet):
        make_trip(db, fleet["customer"], fleet["driver"].profile, fleet["truck"])
        headers = auth_headers(fleet["admin"])
        body = {"dateRange": {"from": "2025-03-01", "to": "2025-03-31"}, "filters": {}}

        rows = client.post("/reports/trips", json=body, headers=headers).json()
        res = client.post("/reports/trips", json={**body, "format": "csv"}, headers=headers)

        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/csv")
        assert 'attachment; filename="trips-report-' in res.headers["content-disposition"]

        parsed = list(csv.reader(io.StringIO(res.text)))
        assert len(parsed) == len(rows) + 1 == 2
        assert parsed[1][0] == str(rows[0]["id"])

    def test_unknown_entity(self, client, fleet):
        res = client.post("/reports/drivers", json={}, headers=auth_headers(fleet["admin"]))
        assert res.status_code == 422

    def test_bad_filter(self, client, fleet):
        res = client.post(
            "/reports/trucks",
            json={"filters": {"utilization": "extreme"}},
            headers=auth_headers(fleet["admin"]),
        )
        assert res.status_code == 400

    def test_truck_maintenance_summary(self, client, fleet):
        res = client.get("/reports/truck-maintenance", headers=auth_headers(fleet["admin"]))
        assert res.status_code == 200
        assert res.json()[0]["plate_number"] == "KAA 001A"


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["database"] == "connected"
