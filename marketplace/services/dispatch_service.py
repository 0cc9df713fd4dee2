# marketplace/services/dispatch_service.py
from datetime import timedelta
from typing import List

from sqlalchemy.orm import Session

from marketplace.domain.dispatch import (
    DeliveryCandidate,
    RiderCandidate,
    RiderStatus,
    rank_deliveries_for_rider,
    rank_riders_for_vendor,
)
from marketplace.domain.errors import NotFound
from marketplace.repos.catalog_repo import CatalogRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.rider_repo import RiderRepo
from marketplace.utils.clock import Clock, utcnow
from marketplace.utils.settings import RIDER_STALE_SECONDS


class DispatchService:
    """
    Dopasowanie kurier <-> zamowienie po odleglosci (haversine).
    Pobieramy 2x limit kandydatow, sortujemy w pamieci i ucinamy do limitu.
    """

    def __init__(self, db: Session, clock: Clock = utcnow, stale_seconds: int = RIDER_STALE_SECONDS):
        self.orders = OrderRepo(db)
        self.riders = RiderRepo(db)
        self.catalog = CatalogRepo(db)
        self.clock = clock
        self.stale_after = timedelta(seconds=stale_seconds)

    def list_available_deliveries(
        self,
        rider_lat: float | None = None,
        rider_lng: float | None = None,
        limit: int = 20,
    ) -> List[DeliveryCandidate]:
        candidates = []
        for order in self.orders.list_ready_for_dispatch(limit * 2):
            vendor = order.vendor
            candidates.append(
                DeliveryCandidate(
                    order_id=order.id,
                    display_id=order.display_id,
                    created_at=order.created_at,
                    vendor_id=order.vendor_id,
                    vendor_lat=vendor.lat if vendor else None,
                    vendor_lng=vendor.lng if vendor else None,
                    delivery_lat=order.delivery_lat,
                    delivery_lng=order.delivery_lng,
                    total=order.total,
                    delivery_total=order.delivery_total,
                    currency_code=order.currency_code,
                )
            )

        return rank_deliveries_for_rider(rider_lat, rider_lng, candidates)[:limit]

    def list_online_riders(
        self,
        vendor_id: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        limit: int = 20,
    ) -> List[RiderCandidate]:
        if vendor_id is not None:
            vendor = self.catalog.get_vendor(vendor_id)
            if vendor is None:
                raise NotFound("Vendor not found")
            lat, lng = vendor.lat, vendor.lng

        online = [
            RiderCandidate(
                rider_id=r.rider_id,
                lat=r.lat,
                lng=r.lng,
                status=r.status,
                last_updated_at=r.last_updated_at,
                created_at=r.created_at,
            )
            for r in self.riders.list_by_status(RiderStatus.ONLINE.value, limit * 2)
        ]

        return rank_riders_for_vendor(lat, lng, online, self.clock(), self.stale_after)[:limit]
