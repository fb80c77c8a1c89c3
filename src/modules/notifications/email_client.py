"""HTTP email API client (Resend-compatible) used by the notification worker."""

from __future__ import annotations

import logging
import time

import httpx

from src.config import settings
from src.exceptions import NotificationException

logger = logging.getLogger(__name__)

# Retry config for the email API
_MAX_RETRIES = 3
_RETRY_STATUSES = {429, 500, 502, 503, 504}
_BASE_BACKOFF_SECONDS = 2.0


class EmailClient:
    """Sends one email per call; raises NotificationException when delivery fails."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        sender: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        backoff_seconds: float = _BASE_BACKOFF_SECONDS,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.email_api_key
        self.sender = sender or settings.email_sender
        self.backoff_seconds = backoff_seconds
        self._client = httpx.Client(
            base_url=base_url or settings.email_api_base_url,
            timeout=timeout or settings.email_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> EmailClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send(self, to: list[str], subject: str, html: str) -> str | None:
        """POST /emails and return the provider's message id."""
        if not self.api_key:
            raise NotificationException("Email API key is not configured")
        if not to:
            raise NotificationException("Email has no recipients")

        response = self._request_with_retry(
            "POST",
            "/emails",
            json={"from": self.sender, "to": to, "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        message_id = response.json().get("id")
        logger.info("Email '%s' sent to %s (id=%s)", subject, ", ".join(to), message_id)
        return message_id

    def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make an HTTP request with exponential backoff for retryable errors."""
        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.RequestError as exc:
                if attempt >= _MAX_RETRIES:
                    raise NotificationException(f"Email API unreachable: {exc}") from exc
                delay = self.backoff_seconds * (2 ** attempt)
                logger.warning(
                    "Email API %s %s request error: %s, retrying in %.1fs",
                    method, path, exc, delay,
                )
                time.sleep(delay)
                continue

            if response.status_code < 400:
                return response
            if response.status_code not in _RETRY_STATUSES or attempt >= _MAX_RETRIES:
                raise NotificationException(
                    f"Email API returned {response.status_code}",
                    details=[{"field": "status_code", "message": response.text[:500]}],
                )
            delay = self.backoff_seconds * (2 ** attempt)
            logger.warning(
                "Email API %s %s returned %d, retrying in %.1fs (attempt %d/%d)",
                method, path, response.status_code, delay, attempt + 1, _MAX_RETRIES,
            )
            time.sleep(delay)

        raise NotificationException("Max retries exceeded for email API request")
