from .delivery import (
    HistoryAmounts,
    KmSettings,
    PriceBreakdown,
    courier_payment,
    distance_surcharge,
    history_delivery_and_payment,
    js_round,
    performer_price_breakdown,
    round_distance_km,
)
from .zones import find_zone_for_point, point_in_polygon, point_in_zone, polygon_rings, to_point

__all__ = [
    "HistoryAmounts",
    "KmSettings",
    "PriceBreakdown",
    "courier_payment",
    "distance_surcharge",
    "history_delivery_and_payment",
    "js_round",
    "performer_price_breakdown",
    "round_distance_km",
    "find_zone_for_point",
    "point_in_polygon",
    "point_in_zone",
    "polygon_rings",
    "to_point",
]
