"""Webhook notification service — posts pool events to an indexer."""
from __future__ import annotations

import logging
import ssl
from datetime import date, datetime
from enum import Enum
from typing import Any

import aiohttp
import certifi

from ..config import WebhookConfig
from ..models import PoolEvent

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def event_payload(event: PoolEvent) -> dict[str, Any]:
    return {"event": event.name, "data": _jsonable(event.data)}


class WebhookNotifier:
    """POST each pool event as JSON to the configured URL."""

    def __init__(self, config: WebhookConfig) -> None:
        self.url = config.url
        self.timeout = config.timeout

    async def send_event(self, event: PoolEvent) -> bool:
        if not self.url:
            logger.warning("Webhook URL not configured")
            return False

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            async with session.post(self.url, json=event_payload(event)) as response:
                if 200 <= response.status < 300:
                    logger.debug("Webhook delivered %s", event.name)
                    return True
                logger.error(
                    "Failed to deliver %s to webhook: %s", event.name, response.status
                )
                return False
