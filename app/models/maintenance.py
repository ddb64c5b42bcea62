from datetime import date, datetime

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base


class Maintenance(Base):
    __tablename__ = "maintenance"

    id = Column(Integer, primary_key=True, index=True)

    truck_id = Column(Integer, ForeignKey("trucks.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)

    description = Column(String, nullable=False)
    cost = Column(Float, nullable=False, default=0)
    maintenance_date = Column(Date, nullable=False, default=date.today)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    truck = relationship("Truck")
    trip = relationship("Trip", back_populates="maintenance_items")
