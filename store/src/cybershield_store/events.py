"""In-process change notifications.

Delivery is synchronous and lossy: events published while nobody is
subscribed are dropped, so observers should also re-read periodically.
"""

import logging
import threading
from collections import defaultdict
from enum import StrEnum
from typing import Callable

logger = logging.getLogger(__name__)


class Channel(StrEnum):
    STORAGE = "storage-update"
    DETOX = "detox-update"


class ChangeEvent(StrEnum):
    TICKETS = "tickets"
    BLOCKED_USERS = "blocked_users"
    CUSTOM_QUESTIONS = "custom_questions"
    VISITORS = "visitors"
    GLOBAL_MESSAGE = "global_message"
    LOCKDOWN = "lockdown"
    LEDGER = "ledger"
    RESET = "reset"

    @property
    def channels(self) -> tuple[Channel, ...]:
        if self is ChangeEvent.RESET:
            return (Channel.STORAGE, Channel.DETOX)
        if self is ChangeEvent.LEDGER:
            return (Channel.DETOX,)
        return (Channel.STORAGE,)


Listener = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by subscribe; cancel() stops delivery."""

    def __init__(self, bus: "ChangeBus", channel: Channel, listener: Listener):
        self._bus = bus
        self.channel = channel
        self.listener = listener
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False


class ChangeBus:
    def __init__(self) -> None:
        self._subscriptions: dict[Channel, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, channel: Channel, listener: Listener) -> Subscription:
        subscription = Subscription(self, channel, listener)
        with self._lock:
            self._subscriptions[channel].append(subscription)
        return subscription

    def publish(self, event: ChangeEvent) -> None:
        for channel in event.channels:
            with self._lock:
                subscriptions = list(self._subscriptions.get(channel, ()))
            if not subscriptions:
                logger.debug("No listeners for %s on %s", event, channel)
            for subscription in subscriptions:
                try:
                    subscription.listener(event)
                except Exception:
                    logger.exception("Listener failed for %s on %s", event, channel)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._subscriptions.get(subscription.channel, [])
            if subscription in listeners:
                listeners.remove(subscription)
