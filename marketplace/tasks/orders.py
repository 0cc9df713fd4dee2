# marketplace/tasks/orders.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.fulfillment_service import FulfillmentService
from marketplace.utils.settings import STALE_ORDER_BATCH_SIZE, STALE_ORDER_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.orders.cancel_stale_orders_task")
def cancel_stale_orders_task(
    max_age_seconds: int = STALE_ORDER_SECONDS,
    batch_size: int = STALE_ORDER_BATCH_SIZE,
):
    """Anuluje paczke zamowien wiszacych w pending, reszta w nastepnym przebiegu beat."""
    logger.info("Cancel stale orders task started")

    db = SessionLocal()
    try:
        result = FulfillmentService(db).cancel_stale_pending(max_age_seconds, batch_size)
        logger.info(f"Cancelled {result['cancelled']} stale orders")
        return result
    finally:
        db.close()
