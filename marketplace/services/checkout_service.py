# marketplace/services/checkout_service.py
from dataclasses import dataclass
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.order_event import OrderEventModel
from marketplace.data.models.vendor import VendorModel
from marketplace.domain.dispatch import distance_km
from marketplace.domain.errors import CheckoutBlocked, RateLimited, Unavailable, NotFound
from marketplace.domain.fare import DEFAULT_FARE_CONFIG, FareBreakdown, FareConfig, calculate_fare, estimate_delivery_minutes
from marketplace.domain.fulfillment import (
    FulfillmentStatus,
    FulfillmentType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from marketplace.domain.pricing import CurrencyPolicy
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.catalog_repo import CatalogRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.cart_service import CartService, CheckoutReport, owner_key_for
from marketplace.services.notification_service import NotificationService
from marketplace.services.rate_limiter import RateLimiter
from marketplace.utils.clock import Clock, utcnow
from marketplace.utils.settings import (
    CHECKOUT_RATE_LIMIT,
    CHECKOUT_RATE_WINDOW_SECONDS,
    MAX_DELIVERY_DISTANCE_KM,
    ORDER_DISPLAY_ID_START,
)
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CheckoutPlan:
    cart: CartModel
    vendor: VendorModel
    fulfillment_type: FulfillmentType
    report: CheckoutReport
    distance_km: float | None = None
    fare: FareBreakdown | None = None

    @property
    def delivery_fee(self) -> int:
        return self.fare.total if self.fare else 0


class CheckoutService:
    """
    Use Case: koszyk -> zamowienie.

    1. limit prob na klienta (redis)
    2. koszyk klienta, zywy, niepusty
    3. sklep istnieje i przyjmuje zamowienia
    4. dostawa: wspolrzedne i max dystans
    5. walidacja pozycji z aktualnymi cenami
    6. oplata za dostawe
    7. zamowienie + pozycje + event "created" + usuniecie koszyka w jednej transakcji
    8. powiadomienie sklepu (async)
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationService | None = None,
        rate_limiter: RateLimiter | None = None,
        currency_policy: CurrencyPolicy | None = None,
        clock: Clock = utcnow,
        fare_config: FareConfig = DEFAULT_FARE_CONFIG,
    ):
        self.carts = CartService(db, currency_policy=currency_policy, clock=clock)
        self.cart_repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db)
        self.notifier = notifier or NotificationService()
        self.rate_limiter = rate_limiter
        self.clock = clock
        self.fare_config = fare_config

    def _plan(
        self,
        cart_id: int,
        customer_id: str,
        fulfillment_type: str,
        delivery_lat: float | None,
        delivery_lng: float | None,
        is_express: bool,
    ) -> CheckoutPlan:
        fulfillment = FulfillmentType(fulfillment_type)

        cart = self.carts.get_live_cart(cart_id, owner_key_for(customer_id=customer_id))
        if not self.cart_repo.get_cart_items(cart.id):
            raise ValueError("Cart is empty")

        vendor = self.catalog.get_vendor(cart.vendor_id)
        if vendor is None:
            raise NotFound("Vendor not found")
        if vendor.is_busy:
            raise Unavailable(f"{vendor.name} is not accepting orders right now")

        distance = None
        if fulfillment is FulfillmentType.DELIVERY:
            if delivery_lat is None or delivery_lng is None:
                raise ValueError("Delivery location is required for delivery orders")
            distance = distance_km(vendor.lat, vendor.lng, delivery_lat, delivery_lng)
            if distance is None:
                raise Unavailable(f"{vendor.name} does not offer delivery")
            if distance > MAX_DELIVERY_DISTANCE_KM:
                raise Unavailable(
                    f"Delivery address is {distance} km away, the limit is {MAX_DELIVERY_DISTANCE_KM:g} km"
                )

        report = self.carts.validate_for_checkout(cart.id)

        fare = None
        if fulfillment is FulfillmentType.DELIVERY:
            fare = calculate_fare(
                distance,
                report.total,
                hour_of_day=self.clock().hour,
                is_express=is_express,
                config=self.fare_config,
            )

        return CheckoutPlan(cart, vendor, fulfillment, report, distance, fare)

    #query
    def quote(
        self,
        cart_id: int,
        customer_id: str,
        fulfillment_type: str,
        delivery_lat: float | None = None,
        delivery_lng: float | None = None,
        is_express: bool = False,
    ) -> Dict[str, Any]:
        plan = self._plan(cart_id, customer_id, fulfillment_type, delivery_lat, delivery_lng, is_express)

        estimate = None
        if plan.distance_km is not None:
            estimate = estimate_delivery_minutes(plan.distance_km, is_express)

        return {
            "cart_id": plan.cart.id,
            "currency_code": plan.cart.currency_code,
            "valid": plan.report.valid,
            "errors": plan.report.errors,
            "warnings": plan.report.warnings,
            "subtotal": plan.report.total,
            "delivery_fee": plan.delivery_fee,
            "is_free_delivery": bool(plan.fare and plan.fare.is_free_delivery),
            "distance_km": plan.distance_km,
            "estimated_minutes": estimate,
            "total": plan.report.total + plan.delivery_fee,
        }

    #command
    def complete(
        self,
        cart_id: int,
        customer_id: str,
        fulfillment_type: str,
        payment_method: str,
        delivery_lat: float | None = None,
        delivery_lng: float | None = None,
        delivery_address: str | None = None,
        payment_reference: str | None = None,
        notes: str | None = None,
        is_express: bool = False,
    ) -> OrderModel:
        method = PaymentMethod(payment_method)

        if self.rate_limiter is not None and not self.rate_limiter.hit(
            "checkout", customer_id, CHECKOUT_RATE_LIMIT, CHECKOUT_RATE_WINDOW_SECONDS
        ):
            raise RateLimited("Too many checkout attempts, try again in a minute")

        plan = self._plan(cart_id, customer_id, fulfillment_type, delivery_lat, delivery_lng, is_express)
        if not plan.report.valid:
            logger.warning(f"Checkout koszyka {cart_id} zablokowany: {plan.report.errors}")
            raise CheckoutBlocked(plan.report)

        # oplacone z gory tylko gdy mamy referencje platnosci
        payment_status = PaymentStatus.AWAITING
        if payment_reference and method is not PaymentMethod.CASH_ON_DELIVERY:
            payment_status = PaymentStatus.CAPTURED

        now = self.clock()
        total = plan.report.total + plan.delivery_fee
        # punkt dostawy ma sens tez gdy dowozi sam sklep
        has_dropoff = plan.fulfillment_type is not FulfillmentType.PICKUP

        try:
            order = self.orders.add_order(
                OrderModel(
                    display_id=self.orders.next_display_id(ORDER_DISPLAY_ID_START),
                    status=OrderStatus.PENDING.value,
                    fulfillment_type=plan.fulfillment_type.value,
                    fulfillment_status=FulfillmentStatus.NOT_FULFILLED.value,
                    payment_status=payment_status.value,
                    payment_method=method.value,
                    vendor_id=plan.vendor.id,
                    customer_id=customer_id,
                    currency_code=plan.cart.currency_code,
                    total=total,
                    tax_total=0,
                    discount_total=0,
                    delivery_total=plan.delivery_fee,
                    delivery_lat=delivery_lat if has_dropoff else None,
                    delivery_lng=delivery_lng if has_dropoff else None,
                    delivery_address=delivery_address if has_dropoff else None,
                    notes=notes,
                    created_at=now,
                    items=[
                        OrderItemModel(
                            variant_id=line.variant_id,
                            title=line.title,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            subtotal=line.subtotal,
                            tax_total=0,
                        )
                        for line in plan.report.lines
                    ],
                )
            )

            self.orders.add_event(
                OrderEventModel(
                    order_id=order.id,
                    actor_id=customer_id,
                    event_type="created",
                    to_status=OrderStatus.PENDING.value,
                    to_payment_status=payment_status.value,
                    to_fulfillment_status=FulfillmentStatus.NOT_FULFILLED.value,
                    snapshot_total=total,
                    snapshot_tax_total=0,
                    snapshot_discount_total=0,
                    snapshot_delivery_total=plan.delivery_fee,
                    created_at=now,
                )
            )

            self.cart_repo.delete_cart(plan.cart)
            self.orders.commit()
        except Exception:
            self.orders.rollback()
            raise

        logger.info(f"Zamowienie {order.id} (#{order.display_id}) utworzone z koszyka {cart_id}")

        self.notifier.notify_vendor_new_order(
            order.vendor_id,
            order.id,
            order.display_id,
            sum(line.quantity for line in plan.report.lines),
            order.total,
            order.currency_code,
        )
        return order
