"""Shared requests session handling for outbound HTTP."""
import logging

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from imagecatalog.config import config
from imagecatalog.errors import UpstreamError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout)


class HTTPClient:
    """Base for clients that talk to one upstream service."""

    service = "upstream"

    def __init__(self, session=None, timeout=None):
        self.session = session or requests.Session()
        self.timeout = timeout or config.api_timeout

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    def _send(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, url, **kwargs)

    def _request(self, method, url, **kwargs):
        """
        Make an HTTP request, retrying connection failures.

        Raises:
            UpstreamError: On a non-2xx response or when retries run out
        """
        try:
            response = self._send(method, url, **kwargs)
        except requests.RequestException as e:
            raise UpstreamError(f"{self.service} request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.warning("%s %s returned %s", method, url, response.status_code)
            raise UpstreamError(
                f"{response.url} returned {response.status_code}: {response.text[:500]}",
                http_status=response.status_code,
            )
        return response

    def _json(self, response):
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"{self.service} returned invalid JSON from {response.url}: {e}") from e
