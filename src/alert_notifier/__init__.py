"""Alert Notifier - render alert batches into notifications and dispatch them."""

__version__ = "0.1.0"
