# marketplace/api/routers/riders.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from marketplace.api.deps import get_fulfillment_service, get_rider_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    CurrentDeliveryOut,
    DeliveryHistoryOut,
    EarningsSummaryOut,
    RiderLocationIn,
    RiderLocationOut,
    RiderStatusIn,
)
from marketplace.services.fulfillment_service import FulfillmentService
from marketplace.services.rider_service import RiderService

router = APIRouter(prefix="/riders", tags=["riders"])


@router.put("/{rider_id}/location", response_model=RiderLocationOut)
def update_location(rider_id: str, payload: RiderLocationIn, svc: RiderService = Depends(get_rider_service)):
    try:
        return svc.update_location(rider_id, payload.lat, payload.lng)
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)


@router.put("/{rider_id}/status", response_model=RiderLocationOut)
def set_status(rider_id: str, payload: RiderStatusIn, svc: RiderService = Depends(get_rider_service)):
    try:
        return svc.set_status(rider_id, payload.status.value, payload.lat, payload.lng)
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)


@router.post("/{rider_id}/online", response_model=RiderLocationOut)
def go_online(rider_id: str, payload: RiderLocationIn, svc: RiderService = Depends(get_rider_service)):
    try:
        return svc.go_online(rider_id, payload.lat, payload.lng)
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)


@router.post("/{rider_id}/offline", response_model=Optional[RiderLocationOut])
def go_offline(rider_id: str, svc: RiderService = Depends(get_rider_service)):
    return svc.go_offline(rider_id)


@router.get("/{rider_id}/location", response_model=RiderLocationOut)
def get_location(rider_id: str, svc: RiderService = Depends(get_rider_service)):
    location = svc.get_location(rider_id)
    if location is None:
        raise HTTPException(status_code=404, detail="Brak aktualnej lokalizacji kuriera")
    return location


@router.get("/{rider_id}/current-delivery", response_model=Optional[CurrentDeliveryOut])
def current_delivery(rider_id: str, svc: FulfillmentService = Depends(get_fulfillment_service)):
    return svc.current_delivery(rider_id)


@router.get("/{rider_id}/deliveries", response_model=DeliveryHistoryOut)
def delivery_history(
    rider_id: str,
    limit: int = Query(50, ge=1, le=200),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    """Historia dostaw kuriera, najnowsze pierwsze. start/end jako ISO 8601 ze strefa."""
    if (start and start.tzinfo is None) or (end and end.tzinfo is None):
        raise HTTPException(status_code=400, detail="start i end musza zawierac strefe czasowa")
    return svc.delivery_history(rider_id, limit=limit, start=start, end=end)


@router.get("/{rider_id}/earnings", response_model=EarningsSummaryOut)
def earnings_summary(rider_id: str, svc: FulfillmentService = Depends(get_fulfillment_service)):
    return svc.earnings_summary(rider_id)
