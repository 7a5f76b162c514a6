"""CLI entry point for Alert Notifier.

Sends one batch of alerts through a channel configuration, which is handy
for checking how a contact point renders before wiring it up.

Usage:
    python -m alert_notifier --channel channel.json --alerts alerts.json [options]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, NoReturn

from pydantic import ValidationError

from alert_notifier import __version__
from alert_notifier.config import Settings, clear_settings_cache, get_settings
from alert_notifier.notifier import (
    Alert,
    EmailService,
    InProcBus,
    NotificationChannelConfig,
    NotifierError,
    SendEmailCommand,
    TemplateRenderer,
    create_notifier,
)

# Application info
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="alert-notifier",
        description="Render alert batches into notifications and dispatch them.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m alert_notifier --config-check                 Validate config and exit
  python -m alert_notifier --channel ops.json --alerts batch.json
  python -m alert_notifier --channel ops.json --alerts batch.json --dry-run
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without sending",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render the notification but don't queue emails",
    )

    parser.add_argument(
        "--channel",
        type=Path,
        default=None,
        help="Channel configuration JSON ({name, type, settings})",
    )

    parser.add_argument(
        "--alerts",
        type=Path,
        default=None,
        help="Alert batch JSON (list of alerts or {alerts, groupLabels})",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "asyncio": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_config_summary(settings: Settings, dry_run: bool) -> None:
    """Print a summary of the configuration.

    Args:
        settings: Application settings.
        dry_run: Whether dry-run mode is enabled.
    """
    summary = settings.summary()
    print("Configuration:")
    print(f"  External URL: {summary['external_url']}")
    print(f"  From: {summary['from']}")
    print(f"  Content Types: {summary['content_types']}")
    print(f"  Dispatch Timeout: {summary['dispatch_timeout']}")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  Dry Run: {dry_run}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        # Clear cache to force reload
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Run configuration check and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings, dry_run=settings.dry_run)
    return EXIT_SUCCESS


def load_channel(path: Path) -> NotificationChannelConfig:
    """Load a channel configuration file."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object")
    settings = raw.get("settings") or {}
    if not isinstance(settings, dict):
        raise ValueError(f"{path}: settings must be a JSON object")
    return NotificationChannelConfig(
        name=str(raw.get("name") or path.stem),
        type=str(raw.get("type") or "email"),
        settings=settings,
    )


def load_alerts(path: Path) -> tuple[list[Alert], dict[str, str]]:
    """Load an alert batch file.

    Returns:
        The alerts in file order and the batch's group labels.
    """
    raw: Any = json.loads(path.read_text(encoding="utf-8"))
    group_labels: dict[str, str] = {}
    if isinstance(raw, dict):
        labels = raw.get("groupLabels")
        if labels is None:
            labels = {}
        if not isinstance(labels, dict):
            raise ValueError(f"{path}: groupLabels must be a JSON object")
        group_labels = {str(k): str(v) for k, v in labels.items()}
        raw = raw.get("alerts") or []
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a list of alerts")
    try:
        alerts = [Alert.from_dict(item) for item in raw]
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e
    return alerts, group_labels


async def run_notify(
    settings: Settings,
    channel: NotificationChannelConfig,
    alerts: list[Alert],
    group_labels: dict[str, str],
    dry_run: bool,
) -> int:
    """Send one alert batch through a channel.

    Args:
        settings: Application settings.
        channel: Channel configuration to build the notifier from.
        alerts: Alerts to send.
        group_labels: Labels the batch is grouped by.
        dry_run: Print the delivery command instead of queueing emails.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    bus = InProcBus(timeout=settings.dispatch_timeout)
    renderer = TemplateRenderer(settings.external_url)
    email_service = EmailService.from_settings(settings.smtp)

    if dry_run:

        async def print_command(command: SendEmailCommand) -> None:
            print(f"Subject: {command.subject}")
            print(f"To: {', '.join(command.to)}")
            print()
            body = email_service.render_body(command.template, command.data)
            print(next(iter(body.values())))

        bus.add_handler(SendEmailCommand, print_command)
    else:
        email_service.register(bus)

    try:
        notifier = create_notifier(channel, bus=bus, renderer=renderer)
    except NotifierError as e:
        logger.error(f"Invalid channel {channel.name!r}: {e}")
        return EXIT_CONFIG_ERROR

    try:
        await notifier.notify(*alerts, group_labels=group_labels)
    except NotifierError as e:
        logger.error(f"Notification failed: {e}")
        return EXIT_ERROR

    if email_service.queued:
        logger.info(f"{email_service.queued} message(s) ready for the mail transport")
    while (message := email_service.mail_queue_pop()) is not None:
        print(f"Queued: {message.subject!r} from {message.from_address} to {', '.join(message.to)}")

    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate configuration first
    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    # Determine effective log level
    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    # Config check mode
    if args.config_check:
        sys.exit(run_config_check(settings))

    if args.channel is None or args.alerts is None:
        parser.error("--channel and --alerts are required unless --config-check is given")

    try:
        channel = load_channel(args.channel)
        alerts, group_labels = load_alerts(args.alerts)
    except (OSError, ValueError) as e:
        print(f"Failed to load input: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    dry_run = args.dry_run or settings.dry_run

    try:
        exit_code = asyncio.run(run_notify(settings, channel, alerts, group_labels, dry_run))
    except KeyboardInterrupt:
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
