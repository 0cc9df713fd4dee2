"""Shared fixtures: in-memory SQLite database, a controllable clock and a seeded catalog."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import marketplace.data.models  # noqa: F401
from marketplace.data.database import Base, make_engine
from marketplace.data.models import OrderItemModel, OrderModel
from marketplace.domain.fulfillment import Actor, ActorRole
from marketplace.services.catalog_service import CatalogService
from marketplace.services.notification_service import NotificationService

VENDOR_ID = "vendor-v"
OTHER_VENDOR_ID = "vendor-b"


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def clock():
    # 10:00 UTC - poza godzinami szczytu, bez doplaty
    return FakeClock(datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def catalog(db):
    """Vendor V at (0, 32.51) with variants X, Y, U (unavailable), E (no stock), N (no price); vendor B with Z."""
    svc = CatalogService(db)
    svc.upsert_vendor(VENDOR_ID, "Vendor V", lat=0.0, lng=32.51, address="Plot 1, Kampala")
    svc.upsert_vendor(OTHER_VENDOR_ID, "Vendor B", lat=0.0, lng=32.6)

    svc.upsert_variant("X", VENDOR_ID, "SKU-X", "Sugar 1kg", stock_quantity=100)
    svc.set_price_tiers(
        "X",
        [
            {"amount": 10000, "min_quantity": 1, "max_quantity": 4},
            {"amount": 9000, "min_quantity": 5},
        ],
    )
    svc.upsert_variant("Y", VENDOR_ID, "SKU-Y", "Milk 500ml", stock_quantity=50)
    svc.set_price_tiers("Y", [{"amount": 3000, "sale_amount": 2500}])

    svc.upsert_variant("U", VENDOR_ID, "SKU-U", "Bread", stock_quantity=10, is_available=False)
    svc.set_price_tiers("U", [{"amount": 4000}])
    svc.upsert_variant("E", VENDOR_ID, "SKU-E", "Eggs tray", stock_quantity=0)
    svc.set_price_tiers("E", [{"amount": 15000}])
    svc.upsert_variant("N", VENDOR_ID, "SKU-N", "Unpriced item", stock_quantity=5)

    svc.upsert_variant("Z", OTHER_VENDOR_ID, "SKU-Z", "Rice 5kg", stock_quantity=20)
    svc.set_price_tiers("Z", [{"amount": 32000}])
    return svc


@pytest.fixture
def make_order(db, catalog, clock):
    """Factory inserting an order directly in a given state."""
    counter = {"display_id": 5000}

    def _make(
        status="ready_for_pickup",
        fulfillment_type="delivery",
        rider_id=None,
        customer_id="cust-1",
        vendor_id=VENDOR_ID,
        delivery_lat=0.0,
        delivery_lng=32.52,
        created_at=None,
    ):
        counter["display_id"] += 1
        order = OrderModel(
            display_id=counter["display_id"],
            status=status,
            fulfillment_type=fulfillment_type,
            fulfillment_status="not_fulfilled",
            payment_status="awaiting",
            payment_method="cash_on_delivery",
            vendor_id=vendor_id,
            customer_id=customer_id,
            rider_id=rider_id,
            currency_code="UGX",
            total=23000,
            tax_total=0,
            discount_total=0,
            delivery_total=3000,
            delivery_lat=delivery_lat,
            delivery_lng=delivery_lng,
            created_at=created_at or clock(),
        )
        db.add(order)
        db.commit()
        return order

    return _make


@pytest.fixture
def add_order_items(db):
    """Attaches (variant_id, title, quantity, unit_price) lines to an order."""

    def _add(order, *lines):
        for variant_id, title, quantity, unit_price in lines:
            db.add(
                OrderItemModel(
                    order_id=order.id,
                    variant_id=variant_id,
                    title=title,
                    quantity=quantity,
                    unit_price=unit_price,
                    subtotal=unit_price * quantity,
                )
            )
        db.commit()

    return _add


@pytest.fixture
def vendor_actor():
    return Actor(VENDOR_ID, ActorRole.VENDOR)
