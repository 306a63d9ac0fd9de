"""Retry policies with exponential backoff for outbound calls."""

import logging

from fastapi_mail.errors import ConnectionErrors
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

# tenacity's before_sleep_log expects a stdlib logger
_retry_logger = logging.getLogger(__name__)


# Reusable retry decorator for SMTP delivery (fastapi-mail)
mail_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((ConnectionErrors, ConnectionError, TimeoutError)),
    before_sleep=before_sleep_log(_retry_logger, logging.WARNING),
    reraise=True,
)
