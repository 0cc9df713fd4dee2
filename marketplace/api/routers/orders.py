# marketplace/api/routers/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from marketplace.api.deps import get_fulfillment_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.fulfillment import Action, Actor, ActorRole, OrderStatus
from marketplace.domain.schemas import NearbyIn, OrderEventOut, OrderOut, PendingCountOut, TransitionIn
from marketplace.services.fulfillment_service import FulfillmentService

router = APIRouter(prefix="/orders", tags=["orders"])

_ERRORS = (MarketplaceError, PermissionError, ValueError)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    customer_id: Optional[str] = Query(None),
    vendor_id: Optional[str] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    active_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    """
    Najnowsze zamowienia klienta (customer_id) albo sklepu (vendor_id).
    active_only - tylko zamowienia jeszcze niedostarczone.
    """
    try:
        return svc.list_orders(
            customer_id=customer_id,
            vendor_id=vendor_id,
            status=status.value if status else None,
            active_only=active_only,
            limit=limit,
        )
    except _ERRORS as e:
        raise to_http(e)


@router.get("/pending-count", response_model=PendingCountOut)
def pending_count(vendor_id: str = Query(...), svc: FulfillmentService = Depends(get_fulfillment_service)):
    return {"vendor_id": vendor_id, "pending": svc.pending_count(vendor_id)}


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    customer_id: Optional[str] = Query(None),
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    """
    Pobiera szczegoly zamowienia razem z pozycjami.
    """
    try:
        order = svc.get_order(order_id)
    except _ERRORS as e:
        raise to_http(e)

    if customer_id is not None and order.customer_id != customer_id:
        raise HTTPException(status_code=403, detail="Brak dostepu do zamowienia")
    return order


@router.get("/{order_id}/events", response_model=List[OrderEventOut])
def list_events(order_id: int, svc: FulfillmentService = Depends(get_fulfillment_service)):
    try:
        return svc.list_events(order_id)
    except _ERRORS as e:
        raise to_http(e)


@router.get("/{order_id}/actions", response_model=List[Action])
def list_allowed_actions(
    order_id: int,
    actor_id: str = Query(...),
    role: ActorRole = Query(...),
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    try:
        return svc.allowed_actions(order_id, Actor(actor_id, role))
    except _ERRORS as e:
        raise to_http(e)


@router.post("/{order_id}/transitions", response_model=OrderOut)
def apply_transition(
    order_id: int,
    payload: TransitionIn,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    """
    Jedna akcja maszyny stanow (confirm, rider_accept, deliver, cancel...).
    409 gdy przejscie jest niedozwolone albo ktos zmienil zamowienie wczesniej.
    """
    rider = None
    if payload.rider_id or payload.rider_name or payload.rider_phone:
        rider = {"id": payload.rider_id, "name": payload.rider_name, "phone": payload.rider_phone}

    try:
        return svc.perform(
            payload.action,
            order_id,
            Actor(payload.actor_id, payload.role),
            reason=payload.reason,
            rider=rider,
        )
    except _ERRORS as e:
        raise to_http(e)


@router.post("/{order_id}/nearby", status_code=202)
def notify_nearby(
    order_id: int,
    payload: NearbyIn,
    svc: FulfillmentService = Depends(get_fulfillment_service),
):
    try:
        svc.notify_nearby(order_id, Actor(payload.rider_id, ActorRole.RIDER), payload.estimated_minutes)
    except _ERRORS as e:
        raise to_http(e)
    return {"status": "queued"}
