# marketplace/services/fulfillment_service.py
from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_event import OrderEventModel
from marketplace.domain.dispatch import distance_km
from marketplace.domain.errors import IllegalTransition, NotFound
from marketplace.domain.fulfillment import (
    Action,
    Actor,
    ActorRole,
    BEFORE_DELIVERY,
    OrderStatus,
    RiderEffect,
    Transition,
    authorize,
    available_actions,
)
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.clock import Clock, utcnow
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import STALE_ORDER_BATCH_SIZE, STALE_ORDER_SECONDS

logger = get_logger(__name__)

# status w powiadomieniu dla klienta po danej akcji
_CUSTOMER_NOTICE = {
    Action.CONFIRM: "confirmed",
    Action.START_PREPARING: "preparing",
    Action.MARK_READY: "ready_for_pickup",
    Action.RIDER_ACCEPT: "out_for_delivery",
    Action.VENDOR_ASSIGN: "out_for_delivery",
    Action.CONFIRM_PICKUP: "picked_up",
    Action.DELIVER: "delivered",
    Action.MARK_COLLECTED: "delivered",
    Action.CANCEL: "cancelled",
}

STALE_ORDER_REASON = "Auto-cancelled: order pending for more than 6 hours"


def _default_reason(transition: Transition, values: Dict[str, Any]) -> str | None:
    rider = values.get("rider_name") or values.get("rider_id")
    if transition.action is Action.RIDER_ACCEPT:
        return f"Rider {rider} accepted delivery"
    if transition.action is Action.VENDOR_ASSIGN:
        return f"Rider assigned: {rider}"
    return None


class FulfillmentService:
    """
    Use case'y realizacji zamowienia.

    Kazda akcja przechodzi przez authorize() i jest zapisywana warunkowym UPDATE
    (WHERE status = odczytany AND rider = odczytany). 0 wierszy = ktos nas wyprzedzil
    -> IllegalTransition i brak wpisu w historii. Sukces = dokladnie jeden OrderEvent
    i jeden commit, dopiero potem powiadomienia.
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None, clock: Clock = utcnow):
        self.repo = OrderRepo(db)
        self.notifier = notifier or NotificationService()
        self.clock = clock

    def _get(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def perform(
        self,
        action: Action,
        order_id: int,
        actor: Actor,
        reason: str | None = None,
        rider: Dict[str, Any] | None = None,
    ) -> OrderModel:
        order = self._get(order_id)

        try:
            transition = authorize(action, order, actor, reason)
        except IllegalTransition as e:
            logger.warning(f"Odrzucono {action.value} dla zamowienia {order_id} ({actor.role.value} {actor.id}): {e}")
            raise

        values = self._changes(transition, order, actor, rider)
        event = self._event(transition, order, actor, values, reason)

        try:
            rowcount = self.repo.conditional_update(order.id, order.status, order.rider_id, values)
            if rowcount == 0:
                raise IllegalTransition("Order was modified by another operation, refresh and try again")

            self.repo.add_event(event)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Zamowienie {order.id}: {action.value} {event.from_status} -> {event.to_status} "
            f"({actor.role.value} {actor.id})"
        )
        self._notify(transition, order, actor, event.reason)
        return order

    def _changes(
        self, transition: Transition, order: OrderModel, actor: Actor, rider: Dict[str, Any] | None
    ) -> Dict[str, Any]:
        # status zawsze w SET, takze gdy sie nie zmienia (odbior) - UPDATE i tak pilnuje warunku
        values: Dict[str, Any] = {
            "status": transition.target.value if transition.target is not None else order.status
        }

        if transition.rider_effect is RiderEffect.SET:
            rider = rider or {}
            # kurier przypisuje tylko siebie, sklep musi podac kuriera
            rider_id = actor.id if actor.role is ActorRole.RIDER else rider.get("id")
            if not rider_id:
                raise ValueError("rider_id is required")
            values["rider_id"] = rider_id
            values["rider_name"] = rider.get("name")
            values["rider_phone"] = rider.get("phone")
        elif transition.rider_effect is RiderEffect.CLEAR:
            values["rider_id"] = None
            values["rider_name"] = None
            values["rider_phone"] = None

        if transition.fulfillment_status is not None:
            values["fulfillment_status"] = transition.fulfillment_status.value
        if transition.payment_status is not None:
            values["payment_status"] = transition.payment_status.value
        return values

    def _event(
        self,
        transition: Transition,
        order: OrderModel,
        actor: Actor,
        values: Dict[str, Any],
        reason: str | None,
    ) -> OrderEventModel:
        event = OrderEventModel(
            order_id=order.id,
            actor_id=actor.id,
            event_type=transition.event_type,
            from_status=order.status,
            to_status=values["status"],
            reason=reason or _default_reason(transition, values),
            snapshot_total=order.total,
            snapshot_tax_total=order.tax_total,
            snapshot_discount_total=order.discount_total,
            snapshot_delivery_total=order.delivery_total,
            created_at=self.clock(),
        )
        if "payment_status" in values and values["payment_status"] != order.payment_status:
            event.from_payment_status = order.payment_status
            event.to_payment_status = values["payment_status"]
        if "fulfillment_status" in values and values["fulfillment_status"] != order.fulfillment_status:
            event.from_fulfillment_status = order.fulfillment_status
            event.to_fulfillment_status = values["fulfillment_status"]
        return event

    def _notify(self, transition: Transition, order: OrderModel, actor: Actor, reason: str | None) -> None:
        status = _CUSTOMER_NOTICE.get(transition.action)
        if transition.action is Action.CANCEL:
            # klient sam anulowal - nie powiadamiamy go o tym
            if actor.role is not ActorRole.CUSTOMER:
                self.notifier.notify_customer(
                    order.customer_id,
                    order.id,
                    order.display_id,
                    status,
                    message=f"Your order has been cancelled. Reason: {reason}",
                )
        elif status:
            self.notifier.notify_customer(order.customer_id, order.id, order.display_id, status)

        if transition.action is Action.VENDOR_ASSIGN:
            vendor = order.vendor
            self.notifier.notify_rider_assigned(
                order.rider_id,
                order.id,
                order.display_id,
                vendor.address if vendor else None,
                order.delivery_total,
            )

    #commands
    def confirm(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.CONFIRM, order_id, actor)

    def start_preparing(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.START_PREPARING, order_id, actor)

    def mark_ready(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.MARK_READY, order_id, actor)

    def accept_delivery(
        self, order_id: int, actor: Actor, rider_name: str | None = None, rider_phone: str | None = None
    ) -> OrderModel:
        return self.perform(
            Action.RIDER_ACCEPT,
            order_id,
            actor,
            rider={"id": actor.id, "name": rider_name, "phone": rider_phone},
        )

    def assign_rider(
        self,
        order_id: int,
        actor: Actor,
        rider_id: str,
        rider_name: str | None = None,
        rider_phone: str | None = None,
    ) -> OrderModel:
        return self.perform(
            Action.VENDOR_ASSIGN,
            order_id,
            actor,
            rider={"id": rider_id, "name": rider_name, "phone": rider_phone},
        )

    def confirm_pickup(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.CONFIRM_PICKUP, order_id, actor)

    def deliver(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.DELIVER, order_id, actor)

    def unassign(self, order_id: int, actor: Actor, reason: str) -> OrderModel:
        return self.perform(Action.RIDER_UNASSIGN, order_id, actor, reason=reason)

    def mark_collected(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.MARK_COLLECTED, order_id, actor)

    def complete(self, order_id: int, actor: Actor) -> OrderModel:
        return self.perform(Action.COMPLETE, order_id, actor)

    def cancel(self, order_id: int, actor: Actor, reason: str) -> OrderModel:
        return self.perform(Action.CANCEL, order_id, actor, reason=reason)

    def refund(self, order_id: int, actor: Actor, reason: str | None = None) -> OrderModel:
        return self.perform(Action.REFUND, order_id, actor, reason=reason)

    def cancel_stale_pending(
        self, max_age_seconds: int = STALE_ORDER_SECONDS, batch_size: int = STALE_ORDER_BATCH_SIZE
    ) -> Dict[str, int]:
        """
        Anuluje zamowienia, ktorych sklep nie potwierdzil w czasie.
        Kazde przez zwykle cancel() - event z powodem i powiadomienie klienta.
        """
        cutoff = self.clock() - timedelta(seconds=max_age_seconds)
        system = Actor("system", ActorRole.SYSTEM)

        cancelled = 0
        for order in self.repo.list_stale_pending(cutoff, batch_size):
            try:
                self.cancel(order.id, system, reason=STALE_ORDER_REASON)
            except IllegalTransition as e:
                # sklep zdazyl potwierdzic miedzy odczytem a zapisem
                logger.warning(f"Pomijam zamowienie {order.id} przy auto-anulowaniu: {e}")
                continue
            cancelled += 1

        if cancelled:
            logger.info(f"Auto-anulowano {cancelled} zamowien oczekujacych dluzej niz {max_age_seconds}s")
        return {"cancelled": cancelled}

    def notify_nearby(self, order_id: int, actor: Actor, estimated_minutes: int | None = None) -> None:
        """Kurier daje znac klientowi ze jest blisko - bez zmiany stanu."""
        order = self._get(order_id)
        if actor.role is not ActorRole.RIDER or order.rider_id != actor.id:
            raise IllegalTransition("You are not assigned to this order")
        self.notifier.notify_rider_nearby(
            order.customer_id, order.id, order.display_id, order.rider_name, estimated_minutes
        )

    #query - odczyt
    def get_order(self, order_id: int) -> OrderModel:
        return self._get(order_id)

    def list_events(self, order_id: int) -> List[OrderEventModel]:
        self._get(order_id)
        return self.repo.get_events(order_id)

    def allowed_actions(self, order_id: int, actor: Actor) -> List[Action]:
        return available_actions(self._get(order_id), actor)

    def current_delivery(self, rider_id: str) -> Dict[str, Any] | None:
        order = self.repo.find_active_for_rider(rider_id)
        if order is None:
            return None

        vendor = order.vendor
        return {
            "order": order,
            "is_picked_up": self.repo.has_event(order.id, "picked_up"),
            "delivery_distance_km": distance_km(
                vendor.lat if vendor else None,
                vendor.lng if vendor else None,
                order.delivery_lat,
                order.delivery_lng,
            ),
        }

    def list_orders(
        self,
        customer_id: str | None = None,
        vendor_id: str | None = None,
        status: str | None = None,
        active_only: bool = False,
        limit: int = 20,
    ) -> List[OrderModel]:
        """Najnowsze zamowienia klienta albo sklepu. Dokladnie jedno z customer_id / vendor_id."""
        if bool(customer_id) == bool(vendor_id):
            raise ValueError("Exactly one of customer_id or vendor_id is required")
        if status is not None and active_only:
            raise ValueError("status and active_only cannot be combined")
        if not 1 <= limit <= 100:
            raise ValueError("limit must be between 1 and 100")

        statuses = None
        if status is not None:
            statuses = [OrderStatus(status).value]
        elif active_only:
            statuses = sorted(s.value for s in BEFORE_DELIVERY)

        if customer_id:
            return self.repo.list_by_customer(customer_id, statuses, limit)
        return self.repo.list_by_vendor(vendor_id, statuses, limit)

    def pending_count(self, vendor_id: str) -> int:
        return self.repo.count_by_vendor(vendor_id, OrderStatus.PENDING.value)

    def delivery_history(
        self,
        rider_id: str,
        limit: int = 50,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Dict[str, Any]:
        """Dostarczone zamowienia kuriera, najnowsze pierwsze. Zarobek = oplata za dostawe."""
        orders = self.repo.list_delivered_for_rider(rider_id, since=start, until=end, limit=limit)

        deliveries = [
            {
                "order_id": o.id,
                "display_id": o.display_id,
                "delivery_total": o.delivery_total,
                "currency_code": o.currency_code,
                "delivered_at": o.created_at,
                "store_name": o.vendor.name if o.vendor else None,
            }
            for o in orders
        ]
        return {
            "deliveries": deliveries,
            "count": len(deliveries),
            "total_earnings": sum(d["delivery_total"] for d in deliveries),
        }

    def earnings_summary(self, rider_id: str) -> Dict[str, Dict[str, int]]:
        """
        Podsumowanie zarobkow kuriera: dzis, ten tydzien (od niedzieli), ten miesiac, od poczatku.
        Granice okresow liczone w UTC.
        """
        now = self.clock()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        periods = {
            "today": today,
            "this_week": today - timedelta(days=(today.weekday() + 1) % 7),
            "this_month": today.replace(day=1),
            "all_time": None,
        }

        summary = {name: {"deliveries": 0, "earnings": 0} for name in periods}
        for order in self.repo.list_delivered_for_rider(rider_id):
            for name, since in periods.items():
                if since is None or order.created_at >= since:
                    summary[name]["deliveries"] += 1
                    summary[name]["earnings"] += order.delivery_total
        return summary
