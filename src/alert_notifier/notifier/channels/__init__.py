"""Notification channel implementations."""

from alert_notifier.notifier.channels.base import Notifier
from alert_notifier.notifier.channels.email import EmailNotifier, EmailSettings
from alert_notifier.notifier.channels.registry import NOTIFIER_TYPES, create_notifier

__all__ = [
    "NOTIFIER_TYPES",
    "EmailNotifier",
    "EmailSettings",
    "Notifier",
    "create_notifier",
]
