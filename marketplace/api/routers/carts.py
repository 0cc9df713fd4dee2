#marketplace/api/routers/carts.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from marketplace.api.deps import get_cart_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    CartCreateIn,
    CartItemIn,
    CartMergeIn,
    CartOut,
    CartQuantityIn,
    CheckoutReportOut,
    ReorderIn,
    ReorderOut,
)
from marketplace.services.cart_service import CartService, owner_key_for

router = APIRouter(prefix="/carts", tags=["carts"])

_ERRORS = (MarketplaceError, PermissionError, ValueError)


@router.post("/", response_model=CartOut)
def get_or_create_cart(payload: CartCreateIn, svc: CartService = Depends(get_cart_service)):
    try:
        cart = svc.get_or_create(
            vendor_id=payload.vendor_id,
            customer_id=payload.customer_id,
            session_id=payload.session_id,
            currency=payload.currency,
        )
        return svc.get_view(cart.id)
    except _ERRORS as e:
        raise to_http(e)


@router.get("/active", response_model=CartOut)
def get_active_cart(
    vendor_id: str = Query(...),
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        cart = svc.find_active(vendor_id, customer_id=customer_id, session_id=session_id)
        if cart is None:
            raise HTTPException(status_code=404, detail="Koszyk nie znaleziony")
        return svc.get_view(cart.id)
    except _ERRORS as e:
        raise to_http(e)


@router.post("/merge", response_model=Optional[CartOut])
def merge_carts(payload: CartMergeIn, svc: CartService = Depends(get_cart_service)):
    """Po zalogowaniu: koszyk goscia -> koszyk klienta. null gdy gosc nie mial koszyka."""
    try:
        cart = svc.merge(payload.session_id, payload.customer_id, payload.vendor_id)
        if cart is None:
            return None
        return svc.get_view(cart.id)
    except _ERRORS as e:
        raise to_http(e)


@router.post("/reorder", response_model=ReorderOut)
def reorder(payload: ReorderIn, svc: CartService = Depends(get_cart_service)):
    """
    Pozycje starego zamowienia trafiaja do (wyczyszczonego) koszyka klienta w tym sklepie.
    Niedostepne produkty sa pomijane i wymienione w unavailable_items.
    """
    try:
        result = svc.reorder(payload.order_id, payload.customer_id)
        return {
            "cart": svc.get_view(result.cart.id),
            "added_count": result.added_count,
            "unavailable_items": result.unavailable_items,
            "message": result.message,
        }
    except _ERRORS as e:
        raise to_http(e)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: int,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.get_view(cart_id, owner_key_for(customer_id, session_id))
    except _ERRORS as e:
        raise to_http(e)


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(
    cart_id: int,
    payload: CartItemIn,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        owner = owner_key_for(customer_id, session_id)
        svc.add_item(cart_id, payload.variant_id, payload.quantity, owner_key=owner)
        return svc.get_view(cart_id, owner)
    except _ERRORS as e:
        raise to_http(e)


@router.put("/{cart_id}/items/{variant_id}", response_model=CartOut)
def set_item_quantity(
    cart_id: int,
    variant_id: str,
    payload: CartQuantityIn,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        owner = owner_key_for(customer_id, session_id)
        svc.set_quantity(cart_id, variant_id, payload.quantity, owner_key=owner)
        return svc.get_view(cart_id, owner)
    except _ERRORS as e:
        raise to_http(e)


@router.delete("/{cart_id}/items/{variant_id}", response_model=CartOut)
def remove_item(
    cart_id: int,
    variant_id: str,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        owner = owner_key_for(customer_id, session_id)
        svc.remove_item(cart_id, variant_id, owner_key=owner)
        return svc.get_view(cart_id, owner)
    except _ERRORS as e:
        raise to_http(e)


@router.post("/{cart_id}/clear", response_model=CartOut)
def clear_cart(
    cart_id: int,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        owner = owner_key_for(customer_id, session_id)
        svc.clear(cart_id, owner_key=owner)
        return svc.get_view(cart_id, owner)
    except _ERRORS as e:
        raise to_http(e)


@router.delete("/{cart_id}", status_code=204)
def delete_cart(
    cart_id: int,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        svc.delete(cart_id, owner_key=owner_key_for(customer_id, session_id))
    except _ERRORS as e:
        raise to_http(e)
    return Response(status_code=204)


@router.get("/{cart_id}/validation", response_model=CheckoutReportOut)
def validate_cart(
    cart_id: int,
    customer_id: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.validate_for_checkout(cart_id, owner_key_for(customer_id, session_id))
    except _ERRORS as e:
        raise to_http(e)
