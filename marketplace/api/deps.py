# marketplace/api/deps.py
"""Fabryki serwisow dla routerow - w testach podmieniane przez app.dependency_overrides."""
from fastapi import Depends
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.pricing import CurrencyPolicy
from marketplace.services.cart_service import CartService
from marketplace.services.catalog_service import CatalogService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.dispatch_service import DispatchService
from marketplace.services.fulfillment_service import FulfillmentService
from marketplace.services.notification_service import NotificationService
from marketplace.services.rate_limiter import RateLimiter
from marketplace.services.rider_service import RiderService
from marketplace.utils.clock import Clock, utcnow


def get_clock() -> Clock:
    return utcnow


def get_currency_policy() -> CurrencyPolicy:
    return CurrencyPolicy()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


def get_cart_service(
    db: Session = Depends(get_db),
    policy: CurrencyPolicy = Depends(get_currency_policy),
    clock: Clock = Depends(get_clock),
) -> CartService:
    return CartService(db, currency_policy=policy, clock=clock)


def get_checkout_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    limiter: RateLimiter = Depends(get_rate_limiter),
    policy: CurrencyPolicy = Depends(get_currency_policy),
    clock: Clock = Depends(get_clock),
) -> CheckoutService:
    return CheckoutService(db, notifier=notifier, rate_limiter=limiter, currency_policy=policy, clock=clock)


def get_fulfillment_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> FulfillmentService:
    return FulfillmentService(db, notifier=notifier, clock=clock)


def get_dispatch_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> DispatchService:
    return DispatchService(db, clock=clock)


def get_rider_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RiderService:
    return RiderService(db, clock=clock)


def get_catalog_service(
    db: Session = Depends(get_db),
    policy: CurrencyPolicy = Depends(get_currency_policy),
) -> CatalogService:
    return CatalogService(db, currency_policy=policy)
