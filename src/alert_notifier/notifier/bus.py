"""Command bus used by notifiers to hand off delivery commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from alert_notifier.notifier.errors import DispatchError

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Awaitable[None]]


class CommandBus(Protocol):
    """Protocol for delivering commands to whoever executes them."""

    async def dispatch(self, command: Any) -> None:
        """Deliver a command and wait for it to complete.

        Raises:
            DispatchError: If the command could not be accepted or completed.
        """
        ...


class InProcBus:
    """In-process command bus.

    Routes each command to the single async handler registered for its
    type and waits for the handler to finish. Cancelling the awaiting task
    cancels the wait; the handler may or may not have run by then.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        """Initialize the bus.

        Args:
            timeout: Default seconds to wait for a handler, None to wait
                indefinitely.
        """
        self.timeout = timeout
        self._handlers: dict[type, CommandHandler] = {}

    def add_handler(self, command_type: type, handler: CommandHandler) -> None:
        """Register the handler for a command type, replacing any previous one."""
        if self.has_handler(command_type):
            logger.warning(f"Replacing handler for {command_type.__name__}")
        self._handlers[command_type] = handler

    def has_handler(self, command_type: type) -> bool:
        return command_type in self._handlers

    async def dispatch(self, command: Any, *, timeout: float | None = None) -> None:
        """Run the handler registered for the command's type.

        Args:
            command: Command instance to deliver.
            timeout: Seconds to wait, overriding the bus default.

        Raises:
            DispatchError: If no handler is registered, the handler fails,
                or the wait times out.
        """
        command_name = type(command).__name__
        handler = self._handlers.get(type(command))
        if handler is None:
            raise DispatchError(f"no handler registered for {command_name}")

        wait = timeout if timeout is not None else self.timeout
        try:
            if wait is None:
                await handler(command)
            else:
                await asyncio.wait_for(handler(command), timeout=wait)
        except DispatchError:
            raise
        except TimeoutError as e:
            logger.error(f"Handler for {command_name} timed out after {wait}s")
            raise DispatchError(f"{command_name} timed out after {wait}s") from e
        except Exception as e:
            logger.error(f"Handler for {command_name} failed: {e}")
            raise DispatchError(f"{command_name} failed: {e}") from e

        logger.debug(f"Dispatched {command_name}")
