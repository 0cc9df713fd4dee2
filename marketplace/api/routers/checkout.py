# marketplace/api/routers/checkout.py
from fastapi import APIRouter, Depends

from marketplace.api.deps import get_checkout_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import CheckoutIn, OrderOut, QuoteIn, QuoteOut
from marketplace.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/quote", response_model=QuoteOut)
def quote(payload: QuoteIn, svc: CheckoutService = Depends(get_checkout_service)):
    """Podsumowanie bez zapisu: suma, oplata za dostawe, czas, ostrzezenia."""
    try:
        return svc.quote(
            cart_id=payload.cart_id,
            customer_id=payload.customer_id,
            fulfillment_type=payload.fulfillment_type.value,
            delivery_lat=payload.delivery_lat,
            delivery_lng=payload.delivery_lng,
            is_express=payload.is_express,
        )
    except (MarketplaceError, PermissionError, ValueError) as e:
        raise to_http(e)


@router.post("/", response_model=OrderOut, status_code=201)
def complete_checkout(payload: CheckoutIn, svc: CheckoutService = Depends(get_checkout_service)):
    """
    Tworzy zamowienie z koszyka.
    Ceny liczone od nowa z bazy, koszyk usuwany, sklep dostaje powiadomienie asynchronicznie.
    """
    try:
        return svc.complete(
            cart_id=payload.cart_id,
            customer_id=payload.customer_id,
            fulfillment_type=payload.fulfillment_type.value,
            payment_method=payload.payment_method.value,
            delivery_lat=payload.delivery_lat,
            delivery_lng=payload.delivery_lng,
            delivery_address=payload.delivery_address,
            payment_reference=payload.payment_reference,
            notes=payload.notes,
            is_express=payload.is_express,
        )
    except (MarketplaceError, PermissionError, ValueError) as e:
        raise to_http(e)
