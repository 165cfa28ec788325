"""Notification modules."""
from .telegram import TelegramNotifier
from .webhook import WebhookNotifier

__all__ = ["TelegramNotifier", "WebhookNotifier"]
