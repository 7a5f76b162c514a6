"""Lookup of notifier implementations by channel type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alert_notifier.notifier.channels.email import EmailNotifier
from alert_notifier.notifier.errors import ConfigurationError

if TYPE_CHECKING:
    from alert_notifier.notifier.bus import CommandBus
    from alert_notifier.notifier.channels.base import Notifier
    from alert_notifier.notifier.models import NotificationChannelConfig
    from alert_notifier.notifier.template import TemplateRenderer

logger = logging.getLogger(__name__)

NOTIFIER_TYPES: dict[str, type[EmailNotifier]] = {
    EmailNotifier.type: EmailNotifier,
}


def create_notifier(
    config: NotificationChannelConfig,
    *,
    bus: CommandBus,
    renderer: TemplateRenderer,
) -> Notifier:
    """Build the notifier for a channel configuration.

    Args:
        config: Channel configuration; ``type`` selects the implementation.
        bus: Command bus the notifier dispatches on.
        renderer: Shared template renderer.

    Returns:
        A validated, ready notifier.

    Raises:
        ConfigurationError: If the type is unknown or the settings are invalid.
    """
    notifier_cls = NOTIFIER_TYPES.get(config.type.lower())
    if notifier_cls is None:
        raise ConfigurationError(f"unsupported channel type {config.type!r}")

    notifier = notifier_cls(config, bus=bus, renderer=renderer)
    logger.debug(f"Created {config.type} notifier {config.name!r}")
    return notifier
