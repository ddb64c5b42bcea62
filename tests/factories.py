# tests/factories.py
"""Row builders shared by the service and API tests."""

from datetime import datetime

from app.core.security import create_access_token, hash_password
from app.models.customer import Customer
from app.models.profile import Profile
from app.models.trip import Trip
from app.models.truck import Truck
from app.models.user import User


def make_user(db, email="admin@example.com", role="admin", name="Admin", password="secret-pass"):
    user = User(email=email, hashed_password=hash_password(password))
    db.add(user)
    db.flush()
    profile = Profile(user_id=user.id, name=name, role=role, is_verified=True)
    db.add(profile)
    db.commit()
    db.refresh(user)
    return user


def make_customer(db, name="Acme Freight"):
    customer = Customer(name=name)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def make_truck(db, plate_number="KAA 001A", model="Actros", status="active"):
    truck = Truck(plate_number=plate_number, model=model, status=status)
    db.add(truck)
    db.commit()
    db.refresh(truck)
    return truck


def make_trip(db, customer, driver_profile, truck, **overrides):
    values = dict(
        customer_id=customer.id,
        driver_id=driver_profile.id,
        truck_id=truck.id,
        origin="Mombasa",
        destination="Nairobi",
        scheduled_date=datetime(2025, 3, 10, 8, 0),
        distance=480.0,
        duration=9.0,
        rate=1000.0,
        fuel=200.0,
        mileage=50.0,
        salary=300.0,
        road_tolls=0.0,
        status="scheduled",
    )
    values.update(overrides)
    trip = Trip(**values)
    db.add(trip)
    db.commit()
    db.refresh(trip)
    return trip


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.email, "role": user.profile.role})
    return {"Authorization": f"Bearer {token}"}
