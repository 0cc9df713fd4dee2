"""Tests for distance ranking of deliveries and riders, and the rider heartbeat."""

from datetime import datetime, timedelta, timezone

import pytest

from marketplace.domain.dispatch import (
    DeliveryCandidate,
    RiderCandidate,
    distance_km,
    haversine_km,
    rank_deliveries_for_rider,
    rank_riders_for_vendor,
)
from marketplace.domain.errors import NotFound
from marketplace.services.dispatch_service import DispatchService
from marketplace.services.rider_service import RiderService

T0 = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


def delivery(order_id, vendor_lat, vendor_lng, minutes_ago=0):
    return DeliveryCandidate(
        order_id=order_id,
        display_id=order_id,
        created_at=T0 - timedelta(minutes=minutes_ago),
        vendor_id=f"v{order_id}",
        vendor_lat=vendor_lat,
        vendor_lng=vendor_lng,
    )


def rider(rider_id, lat, lng, minutes_ago=0, status="online"):
    return RiderCandidate(
        rider_id=rider_id,
        lat=lat,
        lng=lng,
        status=status,
        last_updated_at=T0 - timedelta(minutes=minutes_ago),
        created_at=T0 - timedelta(hours=1),
    )


def test_haversine_one_degree_at_equator():
    assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)
    assert haversine_km(0.3, 32.5, 0.3, 32.5) == 0


def test_distance_treats_zero_as_a_coordinate():
    assert distance_km(0, 0, 0, 1) == 111.19
    assert distance_km(None, 0, 0, 1) is None


def test_deliveries_ranked_by_distance_from_rider():
    near = delivery(1, 0, 32.51)
    far = delivery(2, 0, 32.6)

    ranked = rank_deliveries_for_rider(0, 32.5, [far, near])

    assert [c.order_id for c in ranked] == [1, 2]
    assert ranked[0].distance_from_rider_km == pytest.approx(1.11, abs=0.01)


def test_deliveries_without_coordinates_go_last_oldest_first():
    newer = delivery(1, None, None, minutes_ago=5)
    older = delivery(2, None, None, minutes_ago=30)
    located = delivery(3, 0, 32.9)

    ranked = rank_deliveries_for_rider(0, 32.5, [newer, older, located])

    assert [c.order_id for c in ranked] == [3, 2, 1]


def test_unknown_rider_position_keeps_oldest_first():
    ranked = rank_deliveries_for_rider(None, None, [delivery(1, 0, 32.5, 1), delivery(2, 0, 32.5, 9)])

    assert [c.order_id for c in ranked] == [2, 1]
    assert all(c.distance_from_rider_km is None for c in ranked)


def test_stale_and_offline_riders_are_excluded():
    riders = [
        rider("far", 0, 32.7),
        rider("near", 0, 32.52),
        rider("stale", 0, 32.51, minutes_ago=11),
        rider("busy", 0, 32.51, status="busy"),
    ]

    ranked = rank_riders_for_vendor(0, 32.51, riders, T0, timedelta(minutes=10))

    assert [r.rider_id for r in ranked] == ["near", "far"]


def test_list_available_deliveries(db, catalog, make_order, clock):
    catalog.upsert_vendor("vendor-n", "Vendor without location")
    near = make_order()
    far = make_order(vendor_id="vendor-b")
    unknown = make_order(vendor_id="vendor-n")
    make_order(rider_id="rider-9")
    make_order(fulfillment_type="pickup")
    make_order(status="preparing")

    svc = DispatchService(db, clock=clock)
    ranked = svc.list_available_deliveries(0, 32.5)

    assert [c.order_id for c in ranked] == [near.id, far.id, unknown.id]
    assert ranked[0].delivery_distance_km == pytest.approx(1.11, abs=0.01)
    assert len(svc.list_available_deliveries(0, 32.5, limit=1)) == 1


def test_list_online_riders_for_vendor(db, catalog, clock):
    riders = RiderService(db, clock=clock)
    riders.update_location("stale", 0, 32.51)
    clock.advance(minutes=11)
    riders.update_location("far", 0, 32.7)
    riders.update_location("near", 0, 32.52)
    riders.update_location("gone", 0, 32.51)
    riders.go_offline("gone")

    svc = DispatchService(db, clock=clock)
    ranked = svc.list_online_riders(vendor_id="vendor-v")

    assert [r.rider_id for r in ranked] == ["near", "far"]
    assert ranked[0].distance_km == pytest.approx(1.11, abs=0.01)

    with pytest.raises(NotFound):
        svc.list_online_riders(vendor_id="nope")


def test_rider_heartbeat(db, clock):
    riders = RiderService(db, clock=clock)

    location = riders.update_location("r1", 0.3, 32.5)
    assert location.status == "online"

    riders.set_status("r1", "busy")
    assert riders.get_location("r1").status == "busy"

    clock.advance(minutes=11)
    assert riders.get_location("r1") is None

    with pytest.raises(ValueError):
        riders.update_location("r1", 91, 0)
    with pytest.raises(ValueError):
        riders.set_status("r2", "online")
    with pytest.raises(ValueError):
        riders.set_status("r1", "sleeping")

    assert riders.go_offline("unknown") is None
    assert riders.go_online("r2", 0, 32.5).status == "online"
