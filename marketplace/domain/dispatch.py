# marketplace/domain/dispatch.py
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence, TypeVar

EARTH_RADIUS_KM = 6371.0


class RiderStatus(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    # w trakcie dostawy
    BUSY = "busy"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(
    lat1: Optional[float], lng1: Optional[float], lat2: Optional[float], lng2: Optional[float]
) -> Optional[float]:
    """Dystans zaokraglony do 2 miejsc, None gdy brakuje ktorejs wspolrzednej (0 to poprawna wartosc)."""
    if lat1 is None or lng1 is None or lat2 is None or lng2 is None:
        return None
    return round(haversine_km(lat1, lng1, lat2, lng2), 2)


@dataclass(frozen=True)
class DeliveryCandidate:
    order_id: int
    display_id: int
    created_at: datetime
    vendor_id: str
    vendor_lat: Optional[float] = None
    vendor_lng: Optional[float] = None
    delivery_lat: Optional[float] = None
    delivery_lng: Optional[float] = None
    total: int = 0
    delivery_total: int = 0
    currency_code: str = ""
    distance_from_rider_km: Optional[float] = None
    delivery_distance_km: Optional[float] = None


@dataclass(frozen=True)
class RiderCandidate:
    rider_id: str
    lat: float
    lng: float
    status: str
    last_updated_at: datetime
    created_at: datetime
    distance_km: Optional[float] = None


T = TypeVar("T")


def _ordered(items: Sequence[T], distance_attr: str) -> List[T]:
    # najpierw te z policzonym dystansem (rosnaco), potem reszta od najstarszych
    def key(item):
        distance = getattr(item, distance_attr)
        if distance is None:
            return (1, 0.0, item.created_at)
        return (0, distance, item.created_at)

    return sorted(items, key=key)


def rank_deliveries_for_rider(
    rider_lat: Optional[float], rider_lng: Optional[float], candidates: Iterable[DeliveryCandidate]
) -> List[DeliveryCandidate]:
    ranked = [
        replace(
            c,
            distance_from_rider_km=distance_km(rider_lat, rider_lng, c.vendor_lat, c.vendor_lng),
            delivery_distance_km=distance_km(c.vendor_lat, c.vendor_lng, c.delivery_lat, c.delivery_lng),
        )
        for c in candidates
    ]
    return _ordered(ranked, "distance_from_rider_km")


def is_stale(last_updated_at: datetime, now: datetime, stale_after: timedelta) -> bool:
    return now - last_updated_at > stale_after


def rank_riders_for_vendor(
    vendor_lat: Optional[float],
    vendor_lng: Optional[float],
    online_riders: Iterable[RiderCandidate],
    now: datetime,
    stale_after: timedelta = timedelta(minutes=10),
) -> List[RiderCandidate]:
    """Nieaktualne lokalizacje (> stale_after) sa wykluczane calkowicie, nie tylko spychane w dol."""
    fresh = [
        replace(r, distance_km=distance_km(vendor_lat, vendor_lng, r.lat, r.lng))
        for r in online_riders
        if r.status == RiderStatus.ONLINE.value and not is_stale(r.last_updated_at, now, stale_after)
    ]
    return _ordered(fresh, "distance_km")
