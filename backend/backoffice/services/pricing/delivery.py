"""
Delivery price and courier payment rules.

Plain functions over plain values so the same rules serve order assignment,
order completion, price quotes and history totals.

Distance pay:
    d = max(distance, 1 km)
    if graduation > 0: d = round(d / g) * g, then d = max(d, 1 km)
    surcharge = round(d * price_per_km)

Rounding is half-up, matching the browser client's Math.round for the
positive amounts used here.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from shared.config.constants import DEFAULT_KM_GRADUATION_METERS, DeliveryType, ExecutorType

MIN_DISTANCE_KM = 1.0


def js_round(value: float) -> int:
    """Round half up: 2.5 -> 3, 2.4 -> 2."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class KmSettings:
    """Per-kilometer pay settings of an executor."""

    enabled: bool = False
    price_per_km: float = 0.0
    graduation_meters: int = DEFAULT_KM_GRADUATION_METERS

    @classmethod
    def from_executor(cls, executor: Any | None) -> "KmSettings":
        if executor is None:
            return cls()
        # A stored 0 means "not configured", same as NULL
        return cls(
            enabled=bool(executor.km_calculation_enabled),
            price_per_km=float(executor.price_per_km or 0),
            graduation_meters=int(executor.km_graduation_meters or DEFAULT_KM_GRADUATION_METERS),
        )

    def applies_to(self, distance_km: float | None) -> bool:
        return self.enabled and self.price_per_km > 0 and bool(distance_km) and distance_km > 0


def round_distance_km(distance_km: float, graduation_meters: int | float) -> float:
    """
    Snap a distance to the graduation step with a 1 km floor.

    >>> round_distance_km(3.26, 100)
    3.3
    >>> round_distance_km(0.2, 500)
    1.0
    """
    d = max(float(distance_km), MIN_DISTANCE_KM)
    if graduation_meters and graduation_meters > 0:
        step_km = graduation_meters / 1000
        d = js_round(d / step_km) * step_km
        # Drop float noise such as 0.30000000000000004
        d = round(d, 6)
        d = max(d, MIN_DISTANCE_KM)
    return d


def distance_surcharge(distance_km: float, price_per_km: float, graduation_meters: int | float) -> int:
    return js_round(round_distance_km(distance_km, graduation_meters) * price_per_km)


def courier_payment(base: float | None, km: KmSettings, distance_km: float | None) -> int:
    """
    Zone payout plus distance pay.

    A zero or missing base pays nothing; distance pay needs km calculation
    enabled, a positive rate and a known distance.
    """
    if not base or base <= 0:
        return 0
    total = float(base)
    if km.applies_to(distance_km):
        total += distance_surcharge(distance_km, km.price_per_km, km.graduation_meters)
    return js_round(total)


@dataclass
class PriceBreakdown:
    delivery_price: int
    courier_payment_base: int
    distance_price: int
    total_courier_payment: int
    distance_km: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _with_surcharge(amount: float, percent: float) -> int:
    return js_round(amount * (1 + percent / 100))


def performer_price_breakdown(
    zone: Any,
    executor: Any,
    distance_km: float | None,
    bad_weather: bool = False,
) -> PriceBreakdown:
    """
    Price a delivery by an executor inside one of its zones.

    Delivery price is the zone price; the courier base is the zone courier
    payment, falling back to the zone price. Bad weather scales both by the
    executor's surcharge percent.
    """
    zone_price = float(zone.price_uah or 0)
    courier_base = float(zone.courier_payment if zone.courier_payment is not None else zone_price)

    surcharge_pct = float(executor.bad_weather_surcharge_percent or 0)
    if bad_weather and surcharge_pct > 0:
        delivery_price = _with_surcharge(zone_price, surcharge_pct)
        courier_base_value = _with_surcharge(courier_base, surcharge_pct)
    else:
        delivery_price = js_round(zone_price)
        courier_base_value = js_round(courier_base)

    km = KmSettings.from_executor(executor)
    if km.applies_to(distance_km):
        rounded = round_distance_km(distance_km, km.graduation_meters)
        distance_price = js_round(rounded * km.price_per_km)
        return PriceBreakdown(
            delivery_price=delivery_price,
            courier_payment_base=courier_base_value,
            distance_price=distance_price,
            total_courier_payment=courier_base_value + distance_price,
            distance_km=rounded,
        )

    return PriceBreakdown(
        delivery_price=delivery_price,
        courier_payment_base=courier_base_value,
        distance_price=0,
        total_courier_payment=courier_base_value,
        distance_km=None,
    )


@dataclass
class HistoryAmounts:
    delivery_price: float | None
    courier_payment: float | None
    zone_name: str | None


def history_delivery_and_payment(
    order: Any,
    executor_zone: Any | None = None,
    courier_zone: Any | None = None,
    executor: Any | None = None,
) -> HistoryAmounts:
    """
    Delivery price and courier payment shown for an archived order.

    Pickup orders carry neither. A stored courier payment wins; otherwise
    the payout is rebuilt from the zone (the executor zone for performer
    orders, else the courier zone) plus distance pay.
    """
    if order.delivery_type == DeliveryType.PICKUP:
        return HistoryAmounts(delivery_price=None, courier_payment=None, zone_name=None)

    delivery_price = float(order.delivery_price_uah) if order.delivery_price_uah is not None else None

    use_executor_zone = order.executor_type == ExecutorType.PERFORMER and executor_zone is not None
    zone = executor_zone if use_executor_zone else courier_zone
    zone_name = zone.name if zone is not None else None

    if order.courier_payment_amount is not None:
        return HistoryAmounts(
            delivery_price=delivery_price,
            courier_payment=float(order.courier_payment_amount),
            zone_name=zone_name,
        )

    base = 0.0
    if use_executor_zone and executor_zone.courier_payment is not None:
        base = float(executor_zone.courier_payment)
    elif courier_zone is not None and courier_zone.courier_payment is not None:
        base = float(courier_zone.courier_payment)

    payment = courier_payment(base, KmSettings.from_executor(executor), order.distance_km)
    return HistoryAmounts(
        delivery_price=delivery_price,
        courier_payment=float(payment),
        zone_name=zone_name,
    )
