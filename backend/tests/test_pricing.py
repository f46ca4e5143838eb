"""
Tests for delivery pricing and zone lookup.

Property-based checks use Hypothesis.
"""

from types import SimpleNamespace

import pytest
from hypothesis import given, settings, strategies as st

from backoffice.services.domain.order_service import item_total
from backoffice.services.pricing import (
    KmSettings,
    courier_payment,
    find_zone_for_point,
    history_delivery_and_payment,
    js_round,
    performer_price_breakdown,
    point_in_polygon,
    point_in_zone,
    polygon_rings,
    round_distance_km,
)

SQUARE = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 10}, {"lat": 10, "lng": 10}, {"lat": 10, "lng": 0}]
FAR_SQUARE = [[20, 20], [20, 30], [30, 30], [30, 20]]


def _executor(**kwargs):
    defaults = {
        "km_calculation_enabled": True,
        "price_per_km": 10,
        "km_graduation_meters": 500,
        "bad_weather_surcharge_percent": 20,
    }
    return SimpleNamespace(**{**defaults, **kwargs})


def _zone(price=80, courier=60, name="Zone", polygons=None):
    return SimpleNamespace(price_uah=price, courier_payment=courier, name=name, polygons=polygons or [])


class TestRounding:
    """Half-up rounding and distance graduation."""

    @pytest.mark.parametrize(("value", "expected"), [(2.5, 3), (2.4999, 2), (0.5, 1), (0, 0), (99.5, 100)])
    def test_js_round(self, value, expected):
        assert js_round(value) == expected

    @pytest.mark.parametrize(
        ("distance", "graduation", "expected"),
        [
            (3.26, 100, 3.3),
            (3.26, 500, 3.5),
            (3.24, 500, 3.0),
            (0.2, 500, 1.0),
            (0.4, 0, 1.0),
            (2.37, 0, 2.37),
            (1.2, 2000, 2.0),
        ],
    )
    def test_round_distance(self, distance, graduation, expected):
        assert round_distance_km(distance, graduation) == expected

    @given(
        distance=st.floats(min_value=0, max_value=200, allow_nan=False),
        graduation=st.sampled_from([0, 100, 250, 500, 1000]),
    )
    @settings(max_examples=100)
    def test_rounded_distance_never_below_one_km(self, distance, graduation):
        assert round_distance_km(distance, graduation) >= 1.0

    @given(
        distance=st.floats(min_value=1, max_value=200, allow_nan=False),
        graduation=st.sampled_from([100, 250, 500, 1000]),
    )
    @settings(max_examples=100)
    def test_rounding_moves_at_most_half_a_step(self, distance, graduation):
        step = graduation / 1000
        assert abs(round_distance_km(distance, graduation) - distance) <= step / 2 + 1e-6


class TestCourierPayment:
    """Zone payout plus distance pay."""

    def test_base_only_without_km(self):
        assert courier_payment(60, KmSettings(), 5) == 60

    def test_distance_pay(self):
        km = KmSettings(enabled=True, price_per_km=10, graduation_meters=500)
        assert courier_payment(60, km, 3.26) == 95

    def test_zero_base_pays_nothing(self):
        km = KmSettings(enabled=True, price_per_km=10, graduation_meters=500)
        assert courier_payment(0, km, 10) == 0
        assert courier_payment(None, km, 10) == 0

    def test_missing_distance(self):
        km = KmSettings(enabled=True, price_per_km=10)
        assert courier_payment(60, km, None) == 60

    def test_unset_graduation_falls_back_to_100_meters(self):
        for stored in (None, 0):
            km = KmSettings.from_executor(_executor(price_per_km=100, km_graduation_meters=stored))
            assert km.graduation_meters == 100
            assert courier_payment(60, km, 3.26) == 390

    @given(
        base=st.integers(min_value=1, max_value=1000),
        rate=st.integers(min_value=0, max_value=50),
        distance=st.floats(min_value=0, max_value=100, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_payment_never_below_base(self, base, rate, distance):
        km = KmSettings(enabled=True, price_per_km=rate, graduation_meters=500)
        assert courier_payment(base, km, distance) >= base


class TestPerformerBreakdown:
    """Price quote for an executor zone."""

    def test_plain_quote(self):
        result = performer_price_breakdown(_zone(), _executor(), 3.26)
        assert result.to_dict() == {
            "delivery_price": 80,
            "courier_payment_base": 60,
            "distance_price": 35,
            "total_courier_payment": 95,
            "distance_km": 3.5,
        }

    def test_bad_weather_scales_both(self):
        result = performer_price_breakdown(_zone(), _executor(km_calculation_enabled=False), None, bad_weather=True)
        assert result.delivery_price == 96
        assert result.courier_payment_base == 72
        assert result.total_courier_payment == 72
        assert result.distance_km is None

    def test_courier_base_falls_back_to_zone_price(self):
        result = performer_price_breakdown(_zone(courier=None), _executor(km_calculation_enabled=False), None)
        assert result.courier_payment_base == 80


class TestHistoryAmounts:
    """Delivery price and payout shown for history rows."""

    def test_pickup_has_none(self):
        order = SimpleNamespace(delivery_type="pickup")
        amounts = history_delivery_and_payment(order)
        assert amounts.delivery_price is None
        assert amounts.courier_payment is None

    def test_stored_payment_wins(self):
        order = SimpleNamespace(
            delivery_type="delivery",
            delivery_price_uah=50,
            executor_type="courier",
            courier_payment_amount=33,
            distance_km=None,
        )
        amounts = history_delivery_and_payment(order, courier_zone=_zone(name="City"))
        assert amounts.courier_payment == 33
        assert amounts.zone_name == "City"

    def test_rebuilt_from_executor_zone(self):
        order = SimpleNamespace(
            delivery_type="delivery",
            delivery_price_uah=80,
            executor_type="performer",
            courier_payment_amount=None,
            distance_km=3.26,
        )
        amounts = history_delivery_and_payment(order, executor_zone=_zone(name="North"), executor=_executor())
        assert amounts.courier_payment == 95
        assert amounts.zone_name == "North"


class TestZones:
    """Point-in-polygon lookup."""

    def test_point_in_polygon(self):
        assert point_in_polygon((5, 5), SQUARE)
        assert not point_in_polygon((15, 5), SQUARE)
        assert not point_in_polygon((5, 5), SQUARE[:2])

    def test_single_ring_or_list_of_rings(self):
        assert polygon_rings(SQUARE) == [SQUARE]
        assert polygon_rings([SQUARE, FAR_SQUARE]) == [SQUARE, FAR_SQUARE]
        assert polygon_rings(None) == []
        assert point_in_zone((25, 25), [SQUARE, FAR_SQUARE])

    def test_first_matching_zone_wins(self):
        first = _zone(name="first", polygons=[SQUARE])
        second = _zone(name="second", polygons=[SQUARE])
        assert find_zone_for_point((5, 5), [first, second]) is first
        assert find_zone_for_point((50, 50), [first, second]) is None

    @given(
        lat=st.floats(min_value=0.01, max_value=9.99),
        lng=st.floats(min_value=0.01, max_value=9.99),
    )
    @settings(max_examples=100)
    def test_interior_points_match(self, lat, lng):
        assert point_in_polygon((lat, lng), SQUARE)


class TestItemTotal:
    """Order line totals."""

    def test_modifiers_multiply_by_quantity(self):
        assert item_total(100, 2, [{"price": 20, "quantity": 2}]) == 280

    def test_modifier_quantity_defaults_to_one(self):
        assert item_total(100, 1, [{"price": 15}]) == 115

    @given(
        base=st.integers(min_value=0, max_value=10_000),
        quantity=st.integers(min_value=1, max_value=99),
    )
    @settings(max_examples=50)
    def test_without_modifiers(self, base, quantity):
        assert item_total(base, quantity, None) == base * quantity
