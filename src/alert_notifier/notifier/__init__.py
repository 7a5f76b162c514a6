"""Notification layer - alert rendering and channel dispatch."""

from alert_notifier.notifier.bus import CommandBus, InProcBus
from alert_notifier.notifier.channels import (
    EmailNotifier,
    EmailSettings,
    Notifier,
    create_notifier,
)
from alert_notifier.notifier.errors import (
    ConfigurationError,
    DispatchError,
    NotifierError,
    RenderError,
)
from alert_notifier.notifier.fingerprint import fingerprint
from alert_notifier.notifier.links import LinkBuilder
from alert_notifier.notifier.mailer import EmailService
from alert_notifier.notifier.models import (
    Alert,
    ExtendedAlert,
    ExtendedAlerts,
    Message,
    NotificationChannelConfig,
    NotificationGroup,
    SendEmailCommand,
)
from alert_notifier.notifier.template import RenderedNotification, TemplateRenderer

__all__ = [
    "Alert",
    "CommandBus",
    "ConfigurationError",
    "DispatchError",
    "EmailNotifier",
    "EmailService",
    "EmailSettings",
    "ExtendedAlert",
    "ExtendedAlerts",
    "InProcBus",
    "LinkBuilder",
    "Message",
    "NotificationChannelConfig",
    "NotificationGroup",
    "Notifier",
    "NotifierError",
    "RenderError",
    "RenderedNotification",
    "SendEmailCommand",
    "TemplateRenderer",
    "create_notifier",
    "fingerprint",
]
