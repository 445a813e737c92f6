"""
Webhook delivery for rendered reports.

Posts {"text": <message>} to an incoming-webhook URL. Delivery problems are
reported through DeliveryResult and the log, never by raising: a broken chat
integration must not turn a green test run red.

Usage:
    sender = WebhookSender(settings.webhook_url, timeout=settings.timeout)
    result = sender.send(text)
    if not result.ok:
        logging.warning(f"Report not delivered: {result.status.value}")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests

from logging_config import SensitiveDataFilter
from resilience import RetryManager, RetryStrategy


class DeliveryStatus(Enum):
    """What happened to one webhook post."""
    SENT = "sent"
    SKIPPED = "skipped"      # no webhook configured
    REJECTED = "rejected"    # endpoint answered with a non-2xx status
    FAILED = "failed"        # transport error (DNS, connection, timeout)


@dataclass(frozen=True)
class DeliveryResult:
    status: DeliveryStatus
    status_code: Optional[int] = None
    error: str = ''

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SENT


class _RetriableStatus(requests.RequestException):
    """Raised inside the retry loop for 408/429/5xx answers."""

    def __init__(self, response: requests.Response):
        super().__init__(f"HTTP {response.status_code}", response=response)


class WebhookSender:
    """
    Send message text to a webhook.

    Args:
        url: Webhook URL. Empty means delivery is skipped.
        timeout: Per-request timeout in seconds
        retry_manager: Retry policy for transport errors and retriable statuses
        raise_on_transport_error: Re-raise the final transport error instead of
            returning a FAILED result
    """

    def __init__(self, url: str, timeout: float = 10.0,
                 retry_manager: Optional[RetryManager] = None,
                 raise_on_transport_error: bool = False):
        self.logger = logging.getLogger(__name__)
        self.url = (url or '').strip()
        self.timeout = timeout
        self.retry_manager = retry_manager or RetryManager(
            max_retries=2, base_delay=1.0, max_delay=5.0,
            strategy=RetryStrategy.EXPONENTIAL_WITH_JITTER, logger=self.logger,
        )
        self.raise_on_transport_error = raise_on_transport_error

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def _post(self, text: str) -> requests.Response:
        response = requests.post(self.url, json={'text': text}, timeout=self.timeout)
        if self.retry_manager.classify_http_status(response.status_code):
            raise _RetriableStatus(response)
        return response

    def send(self, text: str) -> DeliveryResult:
        """
        Post text to the webhook.

        Returns:
            DeliveryResult: SENT on 2xx, SKIPPED without a URL, REJECTED on any
            other status, FAILED on transport errors.

        Raises:
            requests.RequestException: Only for transport errors, and only when
                raise_on_transport_error is set
        """
        if not self.configured:
            self.logger.info("WebhookSender: No webhook URL configured; skipping post.")
            return DeliveryResult(DeliveryStatus.SKIPPED)

        try:
            response = self.retry_manager.retry_sync(self._post, text)
        except _RetriableStatus as e:
            response = e.response
        except requests.RequestException as e:
            message = SensitiveDataFilter.mask(str(e))
            self.logger.warning(f"WebhookSender: Webhook post failed: {message}")
            if self.raise_on_transport_error:
                raise
            return DeliveryResult(DeliveryStatus.FAILED, error=message)

        if 200 <= response.status_code < 300:
            self.logger.info(f"WebhookSender: Report posted ({response.status_code}, {len(text)} chars)")
            return DeliveryResult(DeliveryStatus.SENT, status_code=response.status_code)

        body = (response.text or '')[:200]
        self.logger.warning(f"WebhookSender: Webhook post failed: {response.status_code} {body}")
        return DeliveryResult(DeliveryStatus.REJECTED, status_code=response.status_code, error=body)
