# app/celery_worker.py
from celery import Celery

from app.utils.settings import CART_EXPIRY_INTERVAL_SECONDS, CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks are imported explicitly so the worker registers them
celery_app.conf.imports = (
    "app.tasks.expire",
    "app.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-idle-carts": {
        "task": "app.tasks.expire.expire_carts_task",
        "schedule": CART_EXPIRY_INTERVAL_SECONDS,
    },
}

# publishing a notification must not hold up a request when the broker is down
celery_app.conf.task_publish_retry = False

celery_app.conf.timezone = "UTC"
