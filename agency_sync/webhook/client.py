from __future__ import annotations

import logging
from typing import Any

import requests

"""Notification webhook client.

POST ``{"text": ..., "blocks": [...]}`` as JSON to the configured URL.
Success is any 2xx status. post_webhook() never raises: a missing URL, a
non-2xx answer or a network error all come back as False so the caller can
leave the row un-notified and try again on a later run. No retries here.
"""

__all__ = [
    "WebhookError",
    "DEFAULT_TIMEOUT",
    "build_payload",
    "send_webhook",
    "post_webhook",
]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class WebhookError(Exception):
    """Webhook call failed (non-2xx or transport error)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_payload(text: str, blocks: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"text": text}
    if blocks:
        payload["blocks"] = blocks
    return payload


def send_webhook(
    url: str,
    text: str,
    blocks: list[dict[str, Any]] | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """POST the payload and return the status code.

    Raises:
        WebhookError: transport failure or status outside [200, 300)
    """
    try:
        resp = requests.post(url, json=build_payload(text, blocks), timeout=timeout)
    except requests.RequestException as e:
        raise WebhookError(f"webhook request failed: {e}") from e
    if not 200 <= resp.status_code < 300:
        raise WebhookError(f"webhook returned HTTP {resp.status_code}", status_code=resp.status_code)
    return resp.status_code


def post_webhook(
    url: str | None,
    text: str,
    blocks: list[dict[str, Any]] | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """send_webhook() that reports failure as False instead of raising."""
    if not url:
        logger.debug("webhook: no URL configured, skipping")
        return False
    try:
        status = send_webhook(url, text, blocks, timeout=timeout)
    except WebhookError as e:
        logger.warning("webhook: %s", e)
        return False
    logger.debug("webhook: delivered status=%d", status)
    return True
