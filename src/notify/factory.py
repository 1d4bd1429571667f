"""Convenience factory for wiring the notification stack."""

from __future__ import annotations

import shutil
import sys

import structlog

from src.core.config import NotifyConfig
from src.notify.channels import (
    LinuxChannel,
    LogChannel,
    MacOSChannel,
    NotificationChannel,
)
from src.notify.dispatcher import NotificationDispatcher

logger = structlog.get_logger(__name__)


def _auto_channel(config: NotifyConfig) -> NotificationChannel:
    if sys.platform == "darwin":
        return _build("macos", config)
    if sys.platform.startswith("linux") and shutil.which("notify-send"):
        return _build("linux", config)
    return LogChannel()


def _build(name: str, config: NotifyConfig) -> NotificationChannel:
    if name == "macos":
        return MacOSChannel(
            command_timeout_secs=config.timeout_secs,
            dialog_timeout_secs=config.dialog_timeout_secs,
            speech_text=config.speech_text,
        )
    if name == "linux":
        return LinuxChannel(
            command_timeout_secs=config.timeout_secs,
            dialog_timeout_secs=config.dialog_timeout_secs,
            speech_text=config.speech_text,
        )
    return LogChannel()


def create_notifier(config: NotifyConfig) -> NotificationDispatcher:
    """Build a dispatcher with the channels named in *config*.

    ``auto`` picks the desktop channel for this platform, falling back to
    the log channel when no desktop is available.
    """
    channels: list[NotificationChannel] = []
    for name in config.channels:
        name = name.lower()
        if name == "auto":
            channels.append(_auto_channel(config))
        elif name in ("macos", "linux", "log"):
            channels.append(_build(name, config))
        else:
            logger.warning("unknown_notify_channel", channel=name)

    if not channels:
        logger.warning("no_notify_channels", fallback="log")
        channels.append(LogChannel())

    logger.info("notify_channels", channels=[type(ch).__name__ for ch in channels])
    return NotificationDispatcher(
        channels=channels,
        timeout_secs=config.timeout_secs,
        title_prefix=config.title_prefix,
    )
