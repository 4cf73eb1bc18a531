"""Asyncio job scheduling core: in-memory stores, broadcast channels, notification handling and a ticking scheduler."""

__version__ = "0.1.0"

__all__ = [
    "context",
    "notification_creator",
    "notification_deleter",
    "notification_runner",
    "scheduler",
    "simple_code",
    "simple_metadata",
    "simple_notification",
    "store",
]