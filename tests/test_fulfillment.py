"""Tests for the order state machine and the FulfillmentService that persists it."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from marketplace.data.models import OrderEventModel
from marketplace.domain.errors import IllegalTransition, NotFound
from marketplace.domain.fulfillment import Action, Actor, ActorRole, authorize, available_actions
from marketplace.services.fulfillment_service import STALE_ORDER_REASON, FulfillmentService

R1 = Actor("rider-1", ActorRole.RIDER)
R2 = Actor("rider-2", ActorRole.RIDER)
CUSTOMER = Actor("cust-1", ActorRole.CUSTOMER)
SYSTEM = Actor("system", ActorRole.SYSTEM)


@pytest.fixture
def svc(db, notifier, clock):
    return FulfillmentService(db, notifier=notifier, clock=clock)


def events(db, order_id):
    return db.query(OrderEventModel).filter_by(order_id=order_id).order_by(OrderEventModel.id).all()


def snapshot(event):
    return (
        event.snapshot_total,
        event.snapshot_tax_total,
        event.snapshot_discount_total,
        event.snapshot_delivery_total,
    )


def test_vendor_walks_order_to_ready(svc, make_order, vendor_actor, notifier, db):
    order = make_order(status="pending")

    svc.confirm(order.id, vendor_actor)
    svc.start_preparing(order.id, vendor_actor)
    svc.mark_ready(order.id, vendor_actor)

    assert svc.get_order(order.id).status == "ready_for_pickup"
    assert [(e.from_status, e.to_status) for e in events(db, order.id)] == [
        ("pending", "confirmed"),
        ("confirmed", "preparing"),
        ("preparing", "ready_for_pickup"),
    ]
    assert notifier.notify_customer.call_count == 3


def test_second_rider_cannot_accept_taken_order(svc, make_order, db):
    order = make_order()

    svc.accept_delivery(order.id, R1, rider_name="Rider One", rider_phone="0700")
    with pytest.raises(IllegalTransition):
        svc.accept_delivery(order.id, R2)

    fresh = svc.get_order(order.id)
    assert fresh.status == "out_for_delivery"
    assert fresh.rider_id == "rider-1"
    assert fresh.rider_name == "Rider One"
    recorded = events(db, order.id)
    assert len(recorded) == 1
    assert recorded[0].event_type == "rider_accepted"
    assert recorded[0].actor_id == "rider-1"
    assert recorded[0].reason == "Rider Rider One accepted delivery"
    assert snapshot(recorded[0]) == (23000, 0, 0, 3000)


def test_lost_conditional_update_writes_no_event(svc, make_order, db):
    order = make_order()

    with patch.object(svc.repo, "conditional_update", return_value=0):
        with pytest.raises(IllegalTransition):
            svc.accept_delivery(order.id, R1)

    assert events(db, order.id) == []
    assert svc.get_order(order.id).rider_id is None


def test_rider_cannot_accept_pickup_order(svc, make_order):
    order = make_order(fulfillment_type="pickup")

    with pytest.raises(IllegalTransition):
        svc.accept_delivery(order.id, R1)


def test_only_assigned_rider_can_deliver(svc, make_order, db):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    with pytest.raises(IllegalTransition):
        svc.deliver(order.id, R2)

    svc.deliver(order.id, R1)

    fresh = svc.get_order(order.id)
    assert fresh.status == "delivered"
    assert fresh.fulfillment_status == "fulfilled"
    assert fresh.payment_status == "captured"
    event = events(db, order.id)[-1]
    assert (event.from_payment_status, event.to_payment_status) == ("awaiting", "captured")
    assert (event.from_fulfillment_status, event.to_fulfillment_status) == ("not_fulfilled", "fulfilled")
    assert (event.event_type, event.from_status, event.to_status) == ("delivered", "out_for_delivery", "delivered")
    assert snapshot(event) == (23000, 0, 0, 3000)


def test_deliver_requires_out_for_delivery(svc, make_order):
    order = make_order(status="ready_for_pickup", rider_id="rider-1")

    with pytest.raises(IllegalTransition):
        svc.deliver(order.id, R1)


def test_confirm_pickup_appends_event_without_status_change(svc, make_order, db):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    svc.confirm_pickup(order.id, R1)
    svc.confirm_pickup(order.id, R1)

    assert svc.get_order(order.id).status == "out_for_delivery"
    recorded = events(db, order.id)
    assert [e.event_type for e in recorded] == ["picked_up", "picked_up"]
    assert all(e.from_status == e.to_status == "out_for_delivery" for e in recorded)


def test_vendor_assigns_rider_and_rider_is_notified(svc, make_order, vendor_actor, notifier, db):
    order = make_order(status="preparing", fulfillment_type="self_delivery")

    svc.assign_rider(order.id, vendor_actor, "rider-7", rider_name="Seven")

    fresh = svc.get_order(order.id)
    assert (fresh.status, fresh.rider_id) == ("out_for_delivery", "rider-7")
    notifier.notify_rider_assigned.assert_called_once_with(
        "rider-7", order.id, order.display_id, "Plot 1, Kampala", 3000
    )
    assert events(db, order.id)[-1].reason == "Rider assigned: Seven"


def test_vendor_assign_requires_rider_id(svc, make_order, vendor_actor, db):
    order = make_order()

    with pytest.raises(ValueError):
        svc.perform(Action.VENDOR_ASSIGN, order.id, vendor_actor)

    assert events(db, order.id) == []


def test_unassign_requires_reason_and_returns_order_to_pool(svc, make_order, db):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    with pytest.raises(ValueError):
        svc.unassign(order.id, R1, reason="  ")

    svc.unassign(order.id, R1, reason="bike broke down")

    fresh = svc.get_order(order.id)
    assert fresh.status == "ready_for_pickup"
    assert fresh.rider_id is None
    assert events(db, order.id)[-1].reason == "bike broke down"


def test_customer_cancel_window(svc, make_order, notifier):
    early = make_order(status="confirmed")
    late = make_order(status="ready_for_pickup")

    svc.cancel(early.id, CUSTOMER, reason="changed my mind")
    assert svc.get_order(early.id).status == "cancelled"
    notifier.notify_customer.assert_not_called()

    with pytest.raises(IllegalTransition):
        svc.cancel(late.id, CUSTOMER, reason="too slow")


def test_customer_cannot_cancel_someone_elses_order(svc, make_order):
    order = make_order(status="pending", customer_id="cust-2")

    with pytest.raises(IllegalTransition):
        svc.cancel(order.id, CUSTOMER, reason="oops")


def test_vendor_cancel_clears_rider_and_notifies_customer(svc, make_order, vendor_actor, notifier, db):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    svc.cancel(order.id, vendor_actor, reason="out of stock")

    fresh = svc.get_order(order.id)
    assert fresh.status == "cancelled"
    assert fresh.rider_id is None
    notifier.notify_customer.assert_called_once_with(
        "cust-1",
        order.id,
        order.display_id,
        "cancelled",
        message="Your order has been cancelled. Reason: out of stock",
    )
    event = events(db, order.id)[-1]
    assert (event.from_status, event.to_status, event.reason) == ("out_for_delivery", "cancelled", "out of stock")
    assert snapshot(event) == (23000, 0, 0, 3000)
    assert (event.from_fulfillment_status, event.to_fulfillment_status) == (None, None)


def test_other_vendor_cannot_touch_order(svc, make_order):
    order = make_order(status="pending")

    with pytest.raises(IllegalTransition):
        svc.confirm(order.id, Actor("vendor-b", ActorRole.VENDOR))


def test_terminal_states_accept_nothing(svc, make_order, vendor_actor):
    order = make_order(status="pending")
    svc.refund(order.id, vendor_actor)

    fresh = svc.get_order(order.id)
    assert fresh.status == "refunded"
    assert fresh.payment_status == "refunded"

    for action in Action:
        with pytest.raises((IllegalTransition, ValueError)):
            svc.perform(action, order.id, vendor_actor, reason="x", rider={"id": "rider-1"})


def test_mark_collected_only_for_pickup_orders(svc, make_order, vendor_actor):
    delivery = make_order()
    pickup = make_order(fulfillment_type="pickup")

    with pytest.raises(IllegalTransition):
        svc.mark_collected(delivery.id, vendor_actor)

    svc.mark_collected(pickup.id, vendor_actor)
    svc.complete(pickup.id, SYSTEM)
    assert svc.get_order(pickup.id).status == "completed"


def test_notify_nearby_only_by_assigned_rider(svc, make_order, notifier):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    with pytest.raises(IllegalTransition):
        svc.notify_nearby(order.id, R2, estimated_minutes=3)

    svc.notify_nearby(order.id, R1, estimated_minutes=3)
    notifier.notify_rider_nearby.assert_called_once_with("cust-1", order.id, order.display_id, None, 3)


def test_unknown_order(svc):
    with pytest.raises(NotFound):
        svc.confirm(404, Actor("vendor-v", ActorRole.VENDOR))
    with pytest.raises(NotFound):
        svc.list_events(404)


def test_available_actions_for_vendor_on_pending_order(svc, make_order, vendor_actor):
    order = make_order(status="pending")

    assert svc.allowed_actions(order.id, vendor_actor) == [Action.CONFIRM, Action.CANCEL, Action.REFUND]


def test_available_actions_for_riders(make_order):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    assert set(available_actions(order, R1)) == {
        Action.CONFIRM_PICKUP,
        Action.DELIVER,
        Action.RIDER_UNASSIGN,
    }
    assert available_actions(order, R2) == []


def test_authorize_rejects_wrong_role(make_order):
    order = make_order(status="pending")

    with pytest.raises(IllegalTransition):
        authorize(Action.CONFIRM, order, R1)


def test_current_delivery(svc, make_order):
    order = make_order(status="out_for_delivery", rider_id="rider-1")

    assert svc.current_delivery("rider-2") is None

    current = svc.current_delivery("rider-1")
    assert current["order"].id == order.id
    assert current["is_picked_up"] is False
    assert current["delivery_distance_km"] == pytest.approx(1.11, abs=0.01)

    svc.confirm_pickup(order.id, R1)
    assert svc.current_delivery("rider-1")["is_picked_up"] is True


def test_list_orders_newest_first_with_filters(svc, make_order, clock):
    older = make_order(status="pending", customer_id="c1", created_at=clock() - timedelta(hours=1))
    delivered = make_order(status="delivered", customer_id="c1")
    other = make_order(status="pending", customer_id="c2")

    assert [o.id for o in svc.list_orders(customer_id="c1")] == [delivered.id, older.id]
    assert [o.id for o in svc.list_orders(customer_id="c1", status="pending")] == [older.id]
    assert [o.id for o in svc.list_orders(vendor_id="vendor-v", active_only=True)] == [other.id, older.id]
    assert [o.id for o in svc.list_orders(vendor_id="vendor-v", limit=1)] == [other.id]
    assert svc.list_orders(vendor_id="vendor-b") == []
    assert svc.pending_count("vendor-v") == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"customer_id": "c1", "vendor_id": "vendor-v"},
        {"customer_id": "c1", "status": "lost"},
        {"customer_id": "c1", "status": "pending", "active_only": True},
        {"customer_id": "c1", "limit": 0},
    ],
)
def test_list_orders_rejects_bad_filters(svc, kwargs):
    with pytest.raises(ValueError):
        svc.list_orders(**kwargs)


def test_stale_pending_orders_are_cancelled(svc, make_order, clock, notifier, db):
    stale = make_order(status="pending", created_at=clock() - timedelta(hours=7))
    recent = make_order(status="pending", created_at=clock() - timedelta(hours=1))
    confirmed = make_order(status="confirmed", created_at=clock() - timedelta(hours=7))

    assert svc.cancel_stale_pending() == {"cancelled": 1}

    assert svc.get_order(stale.id).status == "cancelled"
    assert svc.get_order(recent.id).status == "pending"
    assert svc.get_order(confirmed.id).status == "confirmed"

    event = events(db, stale.id)[-1]
    assert (event.actor_id, event.reason) == ("system", STALE_ORDER_REASON)
    assert snapshot(event) == (23000, 0, 0, 3000)
    notifier.notify_customer.assert_called_once_with(
        "cust-1",
        stale.id,
        stale.display_id,
        "cancelled",
        message=f"Your order has been cancelled. Reason: {STALE_ORDER_REASON}",
    )


def test_stale_cancel_respects_batch_size(svc, make_order, clock):
    for _ in range(3):
        make_order(status="pending", created_at=clock() - timedelta(days=1))

    assert svc.cancel_stale_pending(batch_size=2) == {"cancelled": 2}
    assert svc.cancel_stale_pending(batch_size=2) == {"cancelled": 1}
    assert svc.cancel_stale_pending(batch_size=2) == {"cancelled": 0}


def test_stale_cancel_skips_order_confirmed_concurrently(svc, make_order, clock):
    order = make_order(status="pending", created_at=clock() - timedelta(hours=7))

    with patch.object(svc.repo, "conditional_update", return_value=0):
        assert svc.cancel_stale_pending() == {"cancelled": 0}

    assert svc.get_order(order.id).status == "pending"


@pytest.fixture
def rider_deliveries(make_order):
    """Wednesday 2025-01-15: one delivery today, one earlier this week, one last week, one last month."""
    made = [
        make_order(status="delivered", rider_id="rider-1", created_at=at)
        for at in (
            datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 13, 12, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 11, 12, 0, tzinfo=timezone.utc),
            datetime(2024, 12, 20, 12, 0, tzinfo=timezone.utc),
        )
    ]
    make_order(status="out_for_delivery", rider_id="rider-1")
    make_order(status="delivered", rider_id="rider-2")
    return made


def test_delivery_history(svc, rider_deliveries):
    history = svc.delivery_history("rider-1")

    assert [d["order_id"] for d in history["deliveries"]] == [o.id for o in rider_deliveries]
    assert (history["count"], history["total_earnings"]) == (4, 12000)
    first = history["deliveries"][0]
    assert (first["store_name"], first["currency_code"], first["delivery_total"]) == ("Vendor V", "UGX", 3000)

    since_sunday = svc.delivery_history("rider-1", start=datetime(2025, 1, 12, tzinfo=timezone.utc))
    assert since_sunday["count"] == 2

    assert svc.delivery_history("rider-1", limit=1)["total_earnings"] == 3000
    assert svc.delivery_history("rider-9") == {"deliveries": [], "count": 0, "total_earnings": 0}


def test_earnings_summary_periods(svc, rider_deliveries):
    summary = svc.earnings_summary("rider-1")

    assert summary == {
        "today": {"deliveries": 1, "earnings": 3000},
        "this_week": {"deliveries": 2, "earnings": 6000},
        "this_month": {"deliveries": 3, "earnings": 9000},
        "all_time": {"deliveries": 4, "earnings": 12000},
    }
