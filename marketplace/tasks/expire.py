# marketplace/tasks/expire.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.cart_service import CartService
from marketplace.utils.settings import CART_REAPER_BATCH_SIZE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.expire.reap_expired_carts_task")
def reap_expired_carts_task(batch_size: int = CART_REAPER_BATCH_SIZE):
    """Usuwa jedna paczke przeterminowanych koszykow, reszta w nastepnym przebiegu beat."""
    logger.info("Reap expired carts task started")

    db = SessionLocal()
    try:
        result = CartService(db).reap_expired(batch_size)
        logger.info(f"Reaped {result['carts']} carts, {result['items']} items")
        return result
    finally:
        db.close()
