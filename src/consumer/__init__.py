"""Alert consumer — delivery tracking and the poll loop."""

from src.consumer.factory import create_poller
from src.consumer.poller import EventPoller, PollerState, PollReport
from src.consumer.processed import ProcessedSet

__all__ = [
    "EventPoller",
    "PollReport",
    "PollerState",
    "ProcessedSet",
    "create_poller",
]
