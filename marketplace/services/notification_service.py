# marketplace/services/notification_service.py
from marketplace.celery_worker import celery_app
from marketplace.services.push_client import PushClient
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

_CUSTOMER_TITLES = {
    "confirmed": "Order Confirmed!",
    "preparing": "Your order is being prepared",
    "ready_for_pickup": "Order Ready for Pickup",
    "out_for_delivery": "Your order is on the way!",
    "picked_up": "Your order has been picked up",
    "delivered": "Order Delivered!",
    "cancelled": "Order Cancelled",
}

_CUSTOMER_BODIES = {
    "confirmed": "Order #{display_id} has been confirmed",
    "preparing": "Order #{display_id} is being prepared",
    "ready_for_pickup": "Order #{display_id} is ready for pickup",
    "out_for_delivery": "Order #{display_id} is on its way to you",
    "picked_up": "A rider has collected order #{display_id} from the store",
    "delivered": "Order #{display_id} has been delivered",
    "cancelled": "Order #{display_id} has been cancelled",
}


def customer_message(display_id: int, status: str, message: str | None = None):
    title = _CUSTOMER_TITLES.get(status, "Order Update")
    body = message or _CUSTOMER_BODIES.get(status, "Order #{display_id} status: {status}").format(
        display_id=display_id, status=status
    )
    return title, body


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania - fire and forget,
    blad kolejki nie moze wycofac zmiany zamowienia.
    """

    def _dispatch(self, task, *args) -> None:
        try:
            task.delay(*args)
        except Exception as e:
            logger.warning(f"Nie udalo sie zlecic powiadomienia {task.name}: {e}")

    def notify_customer(
        self, customer_id: str, order_id: int, display_id: int, status: str, message: str | None = None
    ) -> None:
        self._dispatch(send_customer_notification_task, customer_id, order_id, display_id, status, message)

    def notify_vendor_new_order(
        self, vendor_id: str, order_id: int, display_id: int, item_count: int, total: int, currency: str
    ) -> None:
        self._dispatch(send_vendor_order_task, vendor_id, order_id, display_id, item_count, total, currency)

    def notify_rider_assigned(
        self, rider_id: str, order_id: int, display_id: int, pickup_address: str | None, fare: int | None
    ) -> None:
        self._dispatch(send_rider_assigned_task, rider_id, order_id, display_id, pickup_address, fare)

    def notify_rider_nearby(
        self, customer_id: str, order_id: int, display_id: int, rider_name: str | None, estimated_minutes: int | None
    ) -> None:
        self._dispatch(send_rider_nearby_task, customer_id, order_id, display_id, rider_name, estimated_minutes)


@celery_app.task(name="marketplace.services.notification_service.send_customer_notification_task")
def send_customer_notification_task(
    customer_id: str, order_id: int, display_id: int, status: str, message: str | None = None
):
    title, body = customer_message(display_id, status, message)
    PushClient().send(
        "customer",
        customer_id,
        title,
        body,
        {"type": "order_status", "order_id": order_id, "display_id": display_id, "status": status},
    )
    logger.info(f"[NOTIFICATION] customer {customer_id}: order {order_id} -> {status}")
    return {"customer_id": customer_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.send_vendor_order_task")
def send_vendor_order_task(vendor_id: str, order_id: int, display_id: int, item_count: int, total: int, currency: str):
    body = f"Order #{display_id} - {item_count} item(s) - {currency} {total:,}"
    PushClient().send(
        "vendor",
        vendor_id,
        "New Order!",
        body,
        {"type": "new_order", "order_id": order_id, "display_id": display_id},
    )
    logger.info(f"[NOTIFICATION] vendor {vendor_id}: new order {order_id}")
    return {"vendor_id": vendor_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.send_rider_assigned_task")
def send_rider_assigned_task(
    rider_id: str, order_id: int, display_id: int, pickup_address: str | None = None, fare: int | None = None
):
    body = f"Order #{display_id}\nPickup: {pickup_address or 'see app'}"
    if fare:
        body += f"\nEarnings: {fare:,}"
    PushClient().send(
        "rider",
        rider_id,
        "New Delivery Assigned!",
        body,
        {"type": "delivery_assigned", "order_id": order_id, "display_id": display_id},
    )
    logger.info(f"[NOTIFICATION] rider {rider_id}: assigned order {order_id}")
    return {"rider_id": rider_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.send_rider_nearby_task")
def send_rider_nearby_task(
    customer_id: str, order_id: int, display_id: int, rider_name: str | None = None, estimated_minutes: int | None = None
):
    body = f"Your order #{display_id} is almost there"
    if rider_name:
        body = f"{rider_name} is nearby with your order #{display_id}"
    if estimated_minutes:
        body += f" - arriving in ~{estimated_minutes} min"
    PushClient().send(
        "customer",
        customer_id,
        "Rider is nearby!",
        body,
        {"type": "rider_nearby", "order_id": order_id, "display_id": display_id},
    )
    logger.info(f"[NOTIFICATION] customer {customer_id}: rider nearby for order {order_id}")
    return {"customer_id": customer_id, "order_id": order_id, "status": "sent"}
