"""Telegram notification service."""
import logging
import ssl
from datetime import datetime, timezone

import aiohttp
import certifi

from ..config import TelegramConfig
from ..models import PoolEvent

logger = logging.getLogger(__name__)

# Events that page the operator through the unmuted alert bot.
_ALERT_EVENTS = frozenset({"LossDistributed", "PoolClosed"})
_LOG_EVENTS = frozenset({"EpochProcessed", "LossRecoveryDistributed", "PoolEnabled"})


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_event(event: PoolEvent) -> str:
    data = event.data
    if event.name == "LossDistributed":
        lines = [
            f"🚨 Loss distributed: {data['loss']:,}",
            "",
            f"Senior: {data['senior_total_assets_before']:,} → {data['senior_total_assets']:,}",
            f"Junior: {data['junior_total_assets_before']:,} → {data['junior_total_assets']:,}",
        ]
        if data.get("uncovered_loss"):
            lines.append(f"⚠️ Uncovered: {data['uncovered_loss']:,}")
    elif event.name == "EpochProcessed":
        lines = [
            f"📋 Epoch {data['epoch_id']} processed",
            "",
            f"Senior: {data['senior_shares_processed']:,}/{data['senior_shares_requested']:,} "
            f"shares · {data['senior_amount_processed']:,}",
            f"Junior: {data['junior_shares_processed']:,}/{data['junior_shares_requested']:,} "
            f"shares · {data['junior_amount_processed']:,}",
        ]
    elif event.name == "LossRecoveryDistributed":
        lines = [
            f"✅ Loss recovery distributed: {data['recovery']:,}",
            "",
            f"Senior: {data['senior_total_assets']:,} · Junior: {data['junior_total_assets']:,}",
        ]
    else:
        details = " · ".join(f"{k}: {v}" for k, v in data.items())
        lines = [f"📊 {event.name}", "", details] if details else [f"📊 {event.name}"]
    lines += ["", f"{_now_str()} UTC"]
    return "\n".join(lines)


class TelegramNotifier:
    """Send pool events via Telegram bots."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _send_message(
        self, message: str, bot_token: str, silent: bool = False
    ) -> bool:
        """Send Telegram message using specified bot."""
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(url, json=payload) as response:
                if response.status == 200:
                    return True
                logger.error("Failed to send Telegram message: %s", response.status)
                return False

    async def send_event(self, event: PoolEvent) -> bool:
        """Alerts go to the alert bot, routine events to the muted log bot."""
        if event.name in _ALERT_EVENTS:
            if await self._send_message(format_event(event), self.alert_bot_token):
                logger.info("Telegram alert sent: %s", event.name)
                return True
            return False
        if event.name in _LOG_EVENTS:
            if await self._send_message(
                format_event(event), self.log_bot_token, silent=True
            ):
                logger.info("Telegram log sent: %s", event.name)
                return True
            return False
        return False
