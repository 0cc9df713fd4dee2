# marketplace/domain/fare.py
"""Oplata za dostawe - kwoty w najmniejszych jednostkach waluty."""
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class FareConfig:
    base_fare: int = 2000
    per_km_rate: int = 500
    minimum_fare: int = 3000
    maximum_fare: Optional[int] = 50_000
    surge_multiplier: float = 1.0
    free_delivery_threshold: Optional[int] = 100_000
    small_order_threshold: Optional[int] = 15_000
    small_order_fee: int = 1500


@dataclass(frozen=True)
class FareBreakdown:
    base_fare: int
    distance_fare: int
    surge_fare: int
    small_order_fee: int
    express_fee: int
    total: int
    is_free_delivery: bool


DEFAULT_FARE_CONFIG = FareConfig()


def surge_multiplier(hour_of_day: Optional[int], base_surge: float = 1.0) -> float:
    if hour_of_day is None:
        return base_surge

    time_surge = 1.0
    if hour_of_day >= 22 or hour_of_day < 5:
        time_surge = 1.5
    elif 7 <= hour_of_day < 9:
        time_surge = 1.3
    elif 12 <= hour_of_day < 14:
        time_surge = 1.2
    elif 17 <= hour_of_day < 20:
        time_surge = 1.4

    return max(time_surge, base_surge)


def calculate_fare(
    distance_km: float,
    order_subtotal: int,
    hour_of_day: Optional[int] = None,
    is_express: bool = False,
    config: FareConfig = DEFAULT_FARE_CONFIG,
) -> FareBreakdown:
    if config.free_delivery_threshold is not None and order_subtotal >= config.free_delivery_threshold:
        return FareBreakdown(config.base_fare, 0, 0, 0, 0, total=0, is_free_delivery=True)

    distance_fare = round(distance_km * config.per_km_rate)
    base_total = config.base_fare + distance_fare

    surge_fare = 0
    multiplier = surge_multiplier(hour_of_day, config.surge_multiplier)
    if multiplier > 1.0:
        surge_fare = round(base_total * (multiplier - 1))

    small_order_fee = 0
    if config.small_order_threshold is not None and order_subtotal < config.small_order_threshold:
        small_order_fee = config.small_order_fee

    express_fee = round(base_total * 0.5) if is_express else 0

    total = base_total + surge_fare + small_order_fee + express_fee
    total = max(total, config.minimum_fare)
    if config.maximum_fare is not None:
        total = min(total, config.maximum_fare)

    return FareBreakdown(
        base_fare=config.base_fare,
        distance_fare=distance_fare,
        surge_fare=surge_fare,
        small_order_fee=small_order_fee,
        express_fee=express_fee,
        total=total,
        is_free_delivery=False,
    )


def estimate_delivery_minutes(distance_km: float, is_express: bool = False) -> Tuple[int, int]:
    prep_minutes = 5 if is_express else 15
    avg_speed_kmh = 30 if is_express else 20

    travel = distance_km / avg_speed_kmh * 60
    return round(prep_minutes + travel), round(prep_minutes + travel * 1.5)
