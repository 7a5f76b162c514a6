"""Exceptions raised by the notification layer."""

from __future__ import annotations


class NotifierError(Exception):
    """Base class for notifier errors."""


class ConfigurationError(NotifierError):
    """Raised when a channel is constructed with invalid settings.

    Never raised at send time: a notifier that exists is fully configured.
    """


class RenderError(NotifierError):
    """Raised when a notification template fails to execute."""


class DispatchError(NotifierError):
    """Raised when the command bus cannot accept or complete a command."""
