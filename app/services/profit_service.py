# app/services/profit_service.py
"""
Trip cost and profit aggregation.

profit = rate - (fuel + mileage + salary + maintenance [+ road tolls])
profit_margin = profit / rate * 100, or 0 when rate <= 0.

Values are never rounded here; use round_currency / round_percentage
when presenting them.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass

from app.services.maintenance_service import total_cost


@dataclass
class TripProfitRecord:
    rate: float
    fuel: float
    mileage: float
    salary: float
    road_tolls: float
    maintenance_cost: float
    total_costs: float
    profit: float
    profit_margin: float

    def as_dict(self) -> dict:
        return asdict(self)


def _number(trip, key: str) -> float:
    value = trip.get(key) if isinstance(trip, Mapping) else getattr(trip, key, None)
    return float(value or 0)


def compute_profit(trip, maintenance_items, include_road_tolls: bool = False) -> TripProfitRecord:
    rate = _number(trip, "rate")
    fuel = _number(trip, "fuel")
    mileage = _number(trip, "mileage")
    salary = _number(trip, "salary")
    road_tolls = _number(trip, "road_tolls")
    maintenance_cost = total_cost(maintenance_items)

    total_costs = fuel + mileage + salary + maintenance_cost
    if include_road_tolls:
        total_costs += road_tolls

    profit = rate - total_costs
    profit_margin = (profit / rate) * 100 if rate > 0 else 0

    return TripProfitRecord(
        rate=rate,
        fuel=fuel,
        mileage=mileage,
        salary=salary,
        road_tolls=road_tolls,
        maintenance_cost=maintenance_cost,
        total_costs=total_costs,
        profit=profit,
        profit_margin=profit_margin,
    )


def round_currency(value: float) -> float:
    return round(float(value or 0), 2)


def round_percentage(value: float) -> float:
    return round(float(value or 0), 1)
