# marketplace/api/routers/dispatch.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.deps import get_dispatch_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import DeliveryCandidateOut, RiderCandidateOut
from marketplace.services.dispatch_service import DispatchService

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


@router.get("/deliveries", response_model=List[DeliveryCandidateOut])
def list_available_deliveries(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    limit: int = Query(20, ge=1, le=100),
    svc: DispatchService = Depends(get_dispatch_service),
):
    """Zamowienia gotowe do odbioru bez kuriera, najblizsze najpierw."""
    return svc.list_available_deliveries(lat, lng, limit)


@router.get("/riders", response_model=List[RiderCandidateOut])
def list_online_riders(
    vendor_id: Optional[str] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    limit: int = Query(20, ge=1, le=100),
    svc: DispatchService = Depends(get_dispatch_service),
):
    try:
        return svc.list_online_riders(vendor_id=vendor_id, lat=lat, lng=lng, limit=limit)
    except MarketplaceError as e:
        raise to_http(e)
