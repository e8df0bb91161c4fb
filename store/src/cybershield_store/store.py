"""The store handle passed to every collaborator."""

from datetime import datetime
from typing import Callable

from .backend import FileBackend, KeyValueBackend
from .config import Config
from .context import StorageKey, StoreContext, local_now
from .events import ChangeBus
from .ledger import DetoxLedger
from .reset import ResetScope, reset_collections
from .stores import (
    BlockedUsers,
    CustomQuestions,
    GlobalMessage,
    LockdownFlag,
    Tickets,
    Visitors,
)


class Store:
    """All collections over one backend, sharing one lock and one bus."""

    def __init__(
        self,
        backend: KeyValueBackend,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.backend = backend
        self.bus = bus or ChangeBus()
        self._ctx = StoreContext(backend=backend, bus=self.bus, clock=clock)

        self.tickets = Tickets(self._ctx)
        self.blocked_users = BlockedUsers(self._ctx)
        self.questions = CustomQuestions(self._ctx)
        self.visitors = Visitors(self._ctx)
        self.global_message = GlobalMessage(self._ctx)
        self.lockdown = LockdownFlag(self._ctx)
        self.detox = DetoxLedger(self._ctx)

    @classmethod
    def from_config(cls, config: Config, bus: ChangeBus | None = None) -> "Store":
        return cls(FileBackend(config.storage_dir, config.quota_bytes), bus=bus)

    def reset(self, scope: ResetScope | str) -> tuple[StorageKey, ...]:
        return reset_collections(self._ctx, scope)
