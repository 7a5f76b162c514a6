"""Email channel implementation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from alert_notifier.notifier.errors import ConfigurationError, DispatchError
from alert_notifier.notifier.layouts import ALERT_NOTIFICATION_LAYOUT
from alert_notifier.notifier.models import SendEmailCommand

if TYPE_CHECKING:
    from alert_notifier.notifier.bus import CommandBus
    from alert_notifier.notifier.models import Alert, NotificationChannelConfig
    from alert_notifier.notifier.template import TemplateRenderer

logger = logging.getLogger(__name__)

ADDRESS_SEPARATOR = ";"


class EmailSettings(BaseModel):
    """Settings recognized by the email channel."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    addresses: tuple[str, ...] = Field(
        description="Recipients, semicolon separated in the raw settings",
    )
    message: str = Field(
        default="",
        description="Message template; empty uses the bundled layout",
    )
    single_email: bool = Field(
        default=False,
        alias="singleEmail",
        description="Send one email to all recipients instead of one each",
    )

    @field_validator("addresses", mode="before")
    @classmethod
    def split_addresses(cls, v: Any) -> Any:
        """Split ``a@x;b@y`` into trimmed, non-empty addresses."""
        if isinstance(v, str):
            v = v.split(ADDRESS_SEPARATOR)
        if isinstance(v, (list, tuple)):
            return tuple(a.strip() for a in map(str, v) if a.strip())
        return v

    @field_validator("addresses")
    @classmethod
    def require_addresses(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("could not find addresses in settings")
        return v

    @field_validator("message", mode="before")
    @classmethod
    def default_message(cls, v: Any) -> Any:
        return v or ""


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc']) or 'settings'}: {e['msg']}"
        for e in error.errors()
    )


class EmailNotifier:
    """Email notification channel.

    Renders the alert batch and publishes a SendEmailCommand for the email
    service, which lays out and queues the actual messages.
    """

    type = "email"

    def __init__(
        self,
        config: NotificationChannelConfig,
        *,
        bus: CommandBus,
        renderer: TemplateRenderer,
    ) -> None:
        """Initialize and validate the email channel.

        Args:
            config: Channel configuration with ``addresses`` and optional
                ``message`` settings.
            bus: Command bus SendEmailCommands are dispatched on.
            renderer: Renderer used for titles, messages and links.

        Raises:
            ConfigurationError: If the settings are missing or invalid.
        """
        try:
            self.settings = EmailSettings.model_validate(dict(config.settings or {}))
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid settings for email channel {config.name!r}: {_describe(e)}"
            ) from e

        self.name = config.name
        self.bus = bus
        self.renderer = renderer
        self._message_template = renderer.compile(self.settings.message)

    @property
    def addresses(self) -> tuple[str, ...]:
        return self.settings.addresses

    async def notify(
        self,
        *alerts: Alert,
        group_labels: Mapping[str, str] | None = None,
    ) -> bool:
        """Send the batch as an email notification.

        Args:
            *alerts: Alerts to include, in display order.
            group_labels: Labels the batch was grouped by.

        Returns:
            True once the email service accepted the command.

        Raises:
            RenderError: If the message template fails to execute.
            DispatchError: If the email service did not complete the command.
        """
        group = self.renderer.build_group(alerts, group_labels)
        rendered = self.renderer.render(self._message_template, group)

        command = SendEmailCommand(
            subject=rendered.title,
            to=self.addresses,
            single_email=self.settings.single_email,
            template=ALERT_NOTIFICATION_LAYOUT,
            data=group.to_template_data(rendered.title, rendered.message),
        )

        try:
            await self.bus.dispatch(command)
        except DispatchError as e:
            logger.error(f"Email channel {self.name!r} failed to send notification: {e}")
            raise

        logger.info(
            f"Email notification sent by {self.name!r}: "
            f"{len(group.Alerts)} alerts to {len(command.to)} recipients"
        )
        return True
