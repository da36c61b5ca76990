# app/services/notification_client.py
import requests

from app.utils.retry import http_retry
from app.utils.settings import NOTIFICATION_SERVICE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationClient:
    """HTTP client for the email/SMS gateway."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or NOTIFICATION_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def send(self, payload: dict) -> dict:
        url = f"{self.base_url}/notifications"
        logger.info(f"NotificationClient POST {url} ({payload.get('event')})")

        resp = requests.post(url, json=payload, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json() if resp.content else {}
