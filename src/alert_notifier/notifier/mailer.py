"""Email service handling SendEmailCommands.

The service lays out each command with the bundled email layouts and
queues the resulting messages for the mail transport. Talking SMTP is the
transport's job; consumers take messages with ``mail_queue_pop``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from jinja2 import TemplateNotFound

from alert_notifier.notifier.errors import DispatchError
from alert_notifier.notifier.layouts import CONTENT_TYPE_EXTENSIONS
from alert_notifier.notifier.models import Message, SendEmailCommand
from alert_notifier.notifier.template import layout_environment

if TYPE_CHECKING:
    from alert_notifier.config import SmtpSettings
    from alert_notifier.notifier.bus import InProcBus

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPES = ("text/html", "text/plain")
DEFAULT_QUEUE_SIZE = 1000


def format_sender(address: str, name: str = "") -> str:
    """Format a From header value, e.g. ``"Alerting" <alerts@example.com>``."""
    if not name:
        return address
    return f'"{name}" <{address}>'


class EmailService:
    """Renders email commands into messages and queues them."""

    def __init__(
        self,
        *,
        from_address: str,
        from_name: str = "",
        content_types: Sequence[str] = DEFAULT_CONTENT_TYPES,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """Initialize the email service.

        Args:
            from_address: Sender address.
            from_name: Sender display name.
            content_types: Body content types to render, in order.
            queue_size: Maximum number of queued messages.
        """
        unsupported = [ct for ct in content_types if ct not in CONTENT_TYPE_EXTENSIONS]
        if unsupported:
            raise ValueError(f"Unsupported content types: {', '.join(unsupported)}")

        self.from_address = format_sender(from_address, from_name)
        self.content_types = tuple(content_types)
        self._env = layout_environment()
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=queue_size)

    @classmethod
    def from_settings(cls, settings: SmtpSettings) -> EmailService:
        return cls(
            from_address=settings.from_address,
            from_name=settings.from_name,
            content_types=settings.content_types,
        )

    def register(self, bus: InProcBus) -> None:
        """Subscribe the service to SendEmailCommands on the bus."""
        bus.add_handler(SendEmailCommand, self.handle_send_email)

    def render_body(self, template: str, data: object) -> dict[str, str]:
        """Render a layout into every configured content type.

        Raises:
            DispatchError: If the layout does not exist.
        """
        body: dict[str, str] = {}
        for content_type in self.content_types:
            name = f"{template}.{CONTENT_TYPE_EXTENSIONS[content_type]}"
            try:
                layout = self._env.get_template(name)
            except TemplateNotFound as e:
                raise DispatchError(f"email layout {name!r} not found") from e
            body[content_type] = layout.render(data)
        return body

    async def handle_send_email(self, command: SendEmailCommand) -> None:
        """Build and queue the messages for a SendEmailCommand."""
        if not command.to:
            raise DispatchError("email command has no recipients")

        body = self.render_body(command.template, command.data)

        if command.single_email:
            recipients = [command.to]
        else:
            recipients = [(address,) for address in command.to]

        messages = [
            Message(
                from_address=self.from_address,
                to=to,
                subject=command.subject,
                body=dict(body),
            )
            for to in recipients
        ]

        if self._queue.qsize() + len(messages) > self._queue.maxsize > 0:
            raise DispatchError("mail queue is full")

        for message in messages:
            self._queue.put_nowait(message)

        logger.info(f"Queued {len(messages)} email(s) for {len(command.to)} recipient(s)")

    def mail_queue_pop(self) -> Message | None:
        """Take the oldest queued message, or None if the queue is empty."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def queued(self) -> int:
        return self._queue.qsize()
