import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base


class TripStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    truck_id = Column(Integer, ForeignKey("trucks.id"), nullable=False)

    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    scheduled_date = Column(DateTime, nullable=False, index=True)
    distance = Column(Float, nullable=True)
    duration = Column(Float, nullable=True)

    # Legacy upper-case column names are part of the persisted schema
    rate = Column("RATE", Float, nullable=True)
    fuel = Column("FUEL", Float, nullable=True)
    mileage = Column("MILEAGE", Float, nullable=True)
    salary = Column("SALARY", Float, nullable=True)
    road_tolls = Column("ROAD TOLLS", Float, nullable=True)

    # Plain text: older rows may still carry "in progress"
    status = Column(String, nullable=False, default="scheduled", index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer")
    driver = relationship("Profile")
    truck = relationship("Truck")
    maintenance_items = relationship("Maintenance", back_populates="trip")
