# app/services/notification_service.py
from requests import RequestException

from app.celery_worker import celery_app
from app.domain.errors import ExternalServiceError
from app.services.notification_client import NotificationClient
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fire-and-forget order notifications (email/SMS) through Celery.
    A failure here is logged and never fails the order operation that triggered it.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_number: str, event: str, status: str | None = None):
        try:
            send_order_notification_task.delay(user_id, order_number, event, status)
        except Exception as e:
            error = ExternalServiceError(f"Could not enqueue {event} notification for {order_number}: {e}")
            logger.warning(error.message)


@celery_app.task(name="app.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_number: str, event: str, status: str | None = None):
    payload = {
        "user_id": user_id,
        "order_number": order_number,
        "event": event,
        "status": status,
    }
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_number} {event}")

    try:
        NotificationClient().send(payload)
    except RequestException as e:
        logger.error(f"Notification gateway failed for order {order_number}: {e}")
        return {**payload, "delivery": "failed"}

    return {**payload, "delivery": "sent"}
