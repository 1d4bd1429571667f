"""Notification subsystem — turns store records into desktop alerts."""

from src.notify.channels import (
    CommandChannel,
    LinuxChannel,
    LogChannel,
    MacOSChannel,
    NotificationChannel,
)
from src.notify.dispatcher import NotificationDispatcher
from src.notify.factory import create_notifier
from src.notify.formatters import format_record
from src.notify.types import AlertMessage, Notifier

__all__ = [
    "AlertMessage",
    "CommandChannel",
    "LinuxChannel",
    "LogChannel",
    "MacOSChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "Notifier",
    "create_notifier",
    "format_record",
]
