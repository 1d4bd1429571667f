"""Notifier implementation — formats a record and fans it out to channels."""

from __future__ import annotations

import asyncio

import structlog

from src.core.types import EventRecord
from src.notify.channels import NotificationChannel
from src.notify.formatters import DEFAULT_TITLE_PREFIX, format_record
from src.notify.types import AlertMessage, Notifier

# Dedicated structured logger for every alert handed to presentation.
decision_logger = structlog.get_logger("decision_log")

logger = structlog.get_logger(__name__)


class NotificationDispatcher(Notifier):
    """Presents each record on every configured channel.

    - Every record is logged via *decision_logger* before presentation.
    - Each channel gets at most *timeout_secs*; a slow or failing channel
      is logged and does not stop the others.
    - ``notify`` returns True if at least one channel succeeded.
    """

    def __init__(
        self,
        channels: list[NotificationChannel] | None = None,
        timeout_secs: float = 15.0,
        title_prefix: str = DEFAULT_TITLE_PREFIX,
    ) -> None:
        self._channels: list[NotificationChannel] = channels or []
        self._timeout_secs = timeout_secs
        self._title_prefix = title_prefix

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    async def notify(self, record: EventRecord) -> bool:
        msg = format_record(record, self._title_prefix)
        self._log_decision(msg)
        return await self._dispatch_to_channels(msg)

    def _log_decision(self, msg: AlertMessage) -> None:
        decision_logger.info(
            "decision",
            severity=msg.severity.value,
            title=msg.title,
            body=msg.body,
            event_type=msg.event_type,
            event_id=msg.event_id,
            fields=msg.fields,
        )

    async def _dispatch_to_channels(self, msg: AlertMessage) -> bool:
        delivered = False
        for ch in self._channels:
            try:
                ok = await asyncio.wait_for(ch.send(msg), timeout=self._timeout_secs)
            except TimeoutError:
                logger.warning(
                    "channel_timeout",
                    channel=type(ch).__name__,
                    event_id=msg.event_id,
                    timeout_secs=self._timeout_secs,
                )
                ok = False
            except Exception:
                logger.exception(
                    "channel_dispatch_error",
                    channel=type(ch).__name__,
                    event_id=msg.event_id,
                )
                ok = False
            delivered = delivered or ok
        return delivered

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for ch in self._channels:
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=type(ch).__name__)
