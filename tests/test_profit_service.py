# tests/test_profit_service.py
"""Unit tests for trip cost and profit aggregation."""

import pytest

from app.services.profit_service import compute_profit, round_currency, round_percentage


TRIP = {"rate": 1000, "fuel": 200, "mileage": 50, "salary": 300, "road_tolls": 40}


class TestComputeProfit:
    def test_worked_example(self):
        record = compute_profit(TRIP, [{"cost": 75}])

        assert record.maintenance_cost == 75
        assert record.total_costs == 625
        assert record.profit == 375
        assert record.profit_margin == pytest.approx(37.5)

    def test_road_tolls_only_when_requested(self):
        without = compute_profit(TRIP, [])
        with_tolls = compute_profit(TRIP, [], include_road_tolls=True)

        assert without.total_costs == 550
        assert with_tolls.total_costs == 590
        assert with_tolls.road_tolls == 40

    def test_missing_values_count_as_zero(self):
        record = compute_profit({"rate": 500, "fuel": None}, None)
        assert record.total_costs == 0
        assert record.profit == 500
        assert record.profit_margin == 100

    @pytest.mark.parametrize("rate", [0, -10, None])
    def test_no_margin_without_positive_rate(self, rate):
        record = compute_profit({"rate": rate, "fuel": 20}, [])
        assert record.profit_margin == 0

    def test_loss_gives_negative_margin(self):
        record = compute_profit({"rate": 100, "fuel": 150}, [])
        assert record.profit == -50
        assert record.profit_margin == -50

    def test_maintenance_order_invariant(self):
        items = [{"cost": c} for c in (0.1, 0.2, 0.3, 99.99)]
        assert (
            compute_profit(TRIP, items).profit
            == compute_profit(TRIP, list(reversed(items))).profit
        )

    def test_as_dict(self):
        data = compute_profit(TRIP, []).as_dict()
        assert set(data) >= {"total_costs", "profit", "profit_margin", "maintenance_cost"}


def test_rounding_helpers():
    assert round_currency(10.456) == 10.46
    assert round_percentage(33.333) == 33.3
    assert round_currency(None) == 0
