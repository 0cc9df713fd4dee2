# marketplace/celery_worker.py
from celery import Celery

from marketplace.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CART_REAPER_INTERVAL_SECONDS,
    STALE_ORDER_INTERVAL_SECONDS,
)

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski importowane jawnie, inaczej worker ich nie zarejestruje
celery_app.conf.imports = (
    "marketplace.tasks.expire",
    "marketplace.tasks.orders",
    "marketplace.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "reap-expired-carts-hourly": {
        "task": "marketplace.tasks.expire.reap_expired_carts_task",
        "schedule": CART_REAPER_INTERVAL_SECONDS,
    },
    "cancel-stale-orders-hourly": {
        "task": "marketplace.tasks.orders.cancel_stale_orders_task",
        "schedule": STALE_ORDER_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
