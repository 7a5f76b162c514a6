"""Notifier contract shared by every channel kind."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from alert_notifier.notifier.models import Alert


class Notifier(Protocol):
    """Protocol for notification channels.

    A notifier is validated when it is constructed; an instance that exists
    is always ready to send.
    """

    name: str
    type: str

    async def notify(
        self,
        *alerts: Alert,
        group_labels: Mapping[str, str] | None = None,
    ) -> bool:
        """Render and deliver a batch of alerts. Returns True on success.

        Raises:
            RenderError: If the notification could not be rendered.
            DispatchError: If the delivery command was not completed.
        """
        ...
