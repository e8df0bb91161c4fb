"""Storage keys and the shared handle passed to every collection."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Callable

from .backend import KeyValueBackend
from .events import ChangeBus, ChangeEvent
from .quota import QuotaPolicy


class StorageKey(StrEnum):
    TICKETS = "cybershield_tickets"
    GLOBAL_MESSAGE = "cybershield_global_message"
    BLOCKED_USERS = "cybershield_blocked_users"
    CUSTOM_QUESTIONS = "cybershield_custom_questions"
    VISITORS = "cybershield_visitors"
    DETOX_USERS = "cybershield_detox_users"
    DETOX_LOGS = "cybershield_detox_logs"
    LOCKDOWN = "cybershield_lockdown_mode"


def local_now() -> datetime:
    """Current time in the local timezone."""
    return datetime.now().astimezone()


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class StoreContext:
    """Everything a collection needs to read, write and notify."""

    backend: KeyValueBackend
    bus: ChangeBus
    clock: Callable[[], datetime] = local_now
    lock: threading.RLock = field(default_factory=threading.RLock)  # type: ignore[valid-type]
    policy: QuotaPolicy = field(init=False)

    def __post_init__(self) -> None:
        self.policy = QuotaPolicy(self.backend)

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> str:
        """Local calendar day as YYYY-MM-DD."""
        return self.clock().date().isoformat()

    def notify(self, event: ChangeEvent) -> None:
        self.bus.publish(event)
