"""HTTP client for iCalendar schedule feeds."""
import logging
import time
from typing import List

import requests

from processor.ics_parser import parse_ics
from processor.models import Event

logger = logging.getLogger(__name__)


class IcsFetchError(Exception):
    """Raised when the feed server answers with a non-success status."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"ICS fetch failed: {status_code} {reason}")


class IcsFeedClient:
    """Client fetching schedule events from an ICS URL."""

    USER_AGENT = "calendar-crossref/1.0.0"

    def __init__(self, timeout: int = 30, max_retries: int = 1):
        """
        Initialize the feed client.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Total attempts per fetch (default: 1, no retry)
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

    def fetch_events(self, url: str) -> List[Event]:
        """
        Fetch and parse events from an ICS feed.

        Args:
            url: Feed URL

        Returns:
            List of Event objects
        """
        logger.info(f"Fetching calendar feed {url}")
        events = parse_ics(self.fetch_text(url))
        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def fetch_text(self, url: str) -> str:
        """
        Fetch the raw ICS text, retrying with exponential backoff.

        Args:
            url: Feed URL

        Returns:
            Decoded response body

        Raises:
            IcsFetchError: If the last attempt got a non-success status
            requests.RequestException: If the last attempt failed to connect
        """
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching ICS text (attempt {attempt + 1}/{self.max_retries})"
                )
                return self._get(url)

            except (IcsFetchError, requests.RequestException) as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"Fetching ICS text failed after {self.max_retries} "
                        f"attempt(s). Last error: {e}"
                    )
                    raise

    def _get(self, url: str) -> str:
        response = requests.get(
            url,
            headers={'User-Agent': self.USER_AGENT},
            timeout=self.timeout
        )
        if not response.ok:
            raise IcsFetchError(response.status_code, response.reason or '')

        # Feeds often omit the charset; ICS text is UTF-8 per RFC 5545
        if response.encoding is None or response.encoding.lower() == 'iso-8859-1':
            response.encoding = 'utf-8'
        return response.text
