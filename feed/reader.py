# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Feed Reader - Downloads the external iCalendar feed
"""
import logging
import time

import requests

import config
from sync.errors import FetchFailure

logger = logging.getLogger(__name__)


class FeedClient:
    """Fetches the raw calendar document. One attempt per call; retries belong to the engine."""

    def __init__(self, timeout: int = config.FEED_TIMEOUT_SECONDS, session: requests.Session = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        """
        Download the feed body.

        Args:
            url: HTTP(S) address of the iCalendar document

        Returns:
            Raw document bytes

        Raises:
            FetchFailure: network error, non-2xx status, or empty body
        """
        if not url:
            raise FetchFailure("No calendar feed URL configured")

        started = time.time()
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout while fetching calendar feed: {e}")
            raise FetchFailure(f"Timeout fetching calendar feed: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection error while fetching calendar feed: {e}")
            raise FetchFailure(f"Error fetching calendar feed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to get calendar feed: {response.status_code}")
            raise FetchFailure(
                f"Calendar feed returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        body = response.content
        if not body or not body.strip():
            raise FetchFailure("Calendar feed returned an empty body", status_code=response.status_code)

        logger.info(f"Fetched calendar feed ({len(body)} bytes) in {time.time() - started:.2f}s")
        return body
