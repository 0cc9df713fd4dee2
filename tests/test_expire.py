"""Tests for the periodic expired-cart reaper."""

from datetime import datetime, timezone
from unittest.mock import patch

from marketplace.celery_worker import celery_app
from marketplace.data.models import CartItemModel, CartModel
from marketplace.tasks.expire import reap_expired_carts_task

OLD = datetime(2020, 1, 1, tzinfo=timezone.utc)


def add_cart(db, owner, expires_at, items=0):
    cart = CartModel(
        session_id=owner,
        owner_key=f"session:{owner}",
        vendor_id="vendor-v",
        currency_code="UGX",
        expires_at=expires_at,
        created_at=OLD,
        updated_at=OLD,
    )
    db.add(cart)
    db.flush()
    for n in range(items):
        db.add(CartItemModel(cart_id=cart.id, variant_id=f"v{n}", quantity=1))
    db.commit()
    return cart


def test_task_reaps_only_expired_carts(db, catalog):
    add_cart(db, "old-1", OLD, items=2)
    add_cart(db, "old-2", OLD)
    add_cart(db, "live", datetime(2999, 1, 1, tzinfo=timezone.utc), items=1)

    with patch("marketplace.tasks.expire.SessionLocal", return_value=db):
        result = reap_expired_carts_task.run(batch_size=10)

    assert result == {"carts": 2, "items": 2}
    assert [c.session_id for c in db.query(CartModel).all()] == ["live"]
    assert db.query(CartItemModel).count() == 1


def test_task_respects_batch_size(db, catalog):
    for n in range(3):
        add_cart(db, f"old-{n}", OLD)

    with patch("marketplace.tasks.expire.SessionLocal", return_value=db):
        assert reap_expired_carts_task.run(batch_size=2)["carts"] == 2
        assert reap_expired_carts_task.run(batch_size=2)["carts"] == 1


def test_reaper_is_scheduled():
    entry = celery_app.conf.beat_schedule["reap-expired-carts-hourly"]

    assert entry["task"] == reap_expired_carts_task.name
    assert entry["schedule"] == 3600
