# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Retry Utilities - Implement retry logic with exponential backoff
"""
import time
import logging

logger = logging.getLogger(__name__)


class RetryContext:
    """
    Tracks attempts for a retried call and sleeps between them.

    record_failure re-raises the exception once max_retries is used up,
    so callers loop until the call succeeds or the failure propagates.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        sleep=time.sleep
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.sleep = sleep
        self.attempt = 0
        self.last_exception = None

    def record_failure(self, exception: Exception):
        """Record a failure and sleep if we should retry"""
        self.last_exception = exception

        if self.attempt >= self.max_retries:
            logger.error(f"Max retries ({self.max_retries}) exceeded. Final error: {str(exception)}")
            raise exception

        delay = min(self.base_delay * (self.exponential_base ** self.attempt), self.max_delay)

        logger.warning(
            f"Retry attempt {self.attempt + 1}/{self.max_retries + 1} "
            f"failed: {str(exception)}. Retrying in {delay:.1f} seconds..."
        )

        self.sleep(delay)
        self.attempt += 1
