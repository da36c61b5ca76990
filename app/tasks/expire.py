# app/tasks/expire.py
from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.repos.cart_repo import CartRepo
from app.utils.clock import utcnow
from app.utils.logging import get_logger

logger = get_logger(__name__)


def expire_idle_carts(db, now=None) -> int:
    repo = CartRepo(db)
    try:
        expired = repo.expire_idle_carts(now or utcnow())
        repo.commit()
    except Exception:
        repo.rollback()
        raise
    logger.info(f"Expired {expired} idle carts")
    return expired


@celery_app.task(name="app.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        return expire_idle_carts(db)
    finally:
        db.close()
