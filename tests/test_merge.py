"""Tests for merging a guest cart into the customer's cart after login."""

import pytest

from marketplace.data.models import CartItemModel, CartModel
from marketplace.services.cart_service import CartService

VENDOR = "vendor-v"


@pytest.fixture
def carts(db, catalog, clock):
    return CartService(db, clock=clock)


def quantities(db, cart_id):
    return {i.variant_id: i.quantity for i in db.query(CartItemModel).filter_by(cart_id=cart_id)}


def test_merge_sums_quantities_and_deletes_guest_cart(carts, db):
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "X", 2)
    guest_id = guest.id

    mine = carts.get_or_create(VENDOR, customer_id="c1")
    carts.add_item(mine.id, "X", 1)
    carts.add_item(mine.id, "Y", 3)

    merged = carts.merge("g1", "c1", VENDOR)

    assert merged.id == mine.id
    assert quantities(db, mine.id) == {"X": 3, "Y": 3}
    assert db.get(CartModel, guest_id) is None
    assert quantities(db, guest_id) == {}


def test_merge_copies_lines_missing_from_customer_cart(carts, db):
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "Y", 2)
    mine = carts.get_or_create(VENDOR, customer_id="c1")
    carts.add_item(mine.id, "X", 1)

    carts.merge("g1", "c1", VENDOR)

    assert quantities(db, mine.id) == {"X": 1, "Y": 2}


def test_merge_reowns_guest_cart_when_customer_has_none(carts, db):
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "X", 2)

    merged = carts.merge("g1", "c1", VENDOR)

    assert merged.id == guest.id
    assert merged.customer_id == "c1"
    assert merged.session_id is None
    assert merged.owner_key == "customer:c1"
    assert carts.find_active(VENDOR, session_id="g1") is None
    assert carts.find_active(VENDOR, customer_id="c1").id == guest.id
    assert quantities(db, guest.id) == {"X": 2}


def test_merge_without_guest_cart_is_noop(carts, db):
    mine = carts.get_or_create(VENDOR, customer_id="c1")
    carts.add_item(mine.id, "X", 1)

    assert carts.merge("g1", "c1", VENDOR) is None
    assert quantities(db, mine.id) == {"X": 1}


def test_repeated_merge_is_noop(carts, db):
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "X", 2)
    mine = carts.get_or_create(VENDOR, customer_id="c1")
    carts.add_item(mine.id, "X", 1)

    carts.merge("g1", "c1", VENDOR)
    assert carts.merge("g1", "c1", VENDOR) is None

    assert quantities(db, mine.id) == {"X": 3}


def test_expired_guest_cart_is_discarded(carts, db, clock):
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "X", 2)
    guest_id = guest.id

    clock.advance(days=2)
    mine = carts.get_or_create(VENDOR, customer_id="c1")

    assert carts.merge("g1", "c1", VENDOR) is None
    assert db.get(CartModel, guest_id) is None
    assert quantities(db, mine.id) == {}


def test_expired_customer_cart_is_replaced_by_guest_cart(carts, db, clock):
    mine = carts.get_or_create(VENDOR, customer_id="c1")
    carts.add_item(mine.id, "Y", 5)
    old_id = mine.id

    clock.advance(days=2)
    guest = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest.id, "X", 2)

    merged = carts.merge("g1", "c1", VENDOR)

    assert merged.id == guest.id
    assert db.get(CartModel, old_id) is None
    assert quantities(db, merged.id) == {"X": 2}


def test_merge_only_touches_the_given_vendor(carts, db):
    guest_v = carts.get_or_create(VENDOR, session_id="g1")
    carts.add_item(guest_v.id, "X", 1)
    guest_b = carts.get_or_create("vendor-b", session_id="g1")
    carts.add_item(guest_b.id, "Z", 1)

    carts.merge("g1", "c1", VENDOR)

    assert carts.find_active("vendor-b", session_id="g1").id == guest_b.id
    assert carts.find_active("vendor-b", customer_id="c1") is None
