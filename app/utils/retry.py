# app/utils/retry.py
import logging

import redis
import requests
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.utils.logging import get_logger
from app.utils.settings import RETRY_ATTEMPTS

logger = get_logger(__name__)


def _retry_on(exc_type, base_wait: float, max_wait: float, attempts: int | None):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=base_wait, min=base_wait, max=max_wait),
        retry=retry_if_exception_type(exc_type),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def http_retry(attempts: int | None = None):
    # timeouts, connection errors and 4xx/5xx raised by raise_for_status
    return _retry_on(requests.RequestException, 0.3, 3, attempts)


def redis_retry(attempts: int | None = None):
    return _retry_on(redis.RedisError, 0.2, 2, attempts)
