"""Bulk reset of named groups of collections."""

import logging
from enum import StrEnum

from .context import StorageKey, StoreContext
from .events import ChangeEvent

logger = logging.getLogger(__name__)


class ResetScope(StrEnum):
    TICKETS = "tickets"
    USER_RELATED = "user_related"
    DETOX = "detox"
    EVERYTHING = "everything"


# Listed explicitly: a new StorageKey must be added to every scope it belongs to.
RESET_KEYS: dict[ResetScope, tuple[StorageKey, ...]] = {
    ResetScope.TICKETS: (StorageKey.TICKETS,),
    ResetScope.USER_RELATED: (
        StorageKey.VISITORS,
        StorageKey.BLOCKED_USERS,
        StorageKey.DETOX_USERS,
        StorageKey.DETOX_LOGS,
    ),
    ResetScope.DETOX: (
        StorageKey.DETOX_USERS,
        StorageKey.DETOX_LOGS,
    ),
    ResetScope.EVERYTHING: (
        StorageKey.TICKETS,
        StorageKey.GLOBAL_MESSAGE,
        StorageKey.BLOCKED_USERS,
        StorageKey.CUSTOM_QUESTIONS,
        StorageKey.VISITORS,
        StorageKey.DETOX_USERS,
        StorageKey.DETOX_LOGS,
        StorageKey.LOCKDOWN,
    ),
}


def reset_collections(ctx: StoreContext, scope: ResetScope | str) -> tuple[StorageKey, ...]:
    """Remove every key in the scope, then notify both channels.

    Returns the keys that were removed.
    """
    scope = ResetScope(scope)
    keys = RESET_KEYS[scope]
    with ctx.lock:
        for key in keys:
            ctx.backend.remove(key)
    logger.warning("Reset %s: removed %s", scope, ", ".join(keys))
    ctx.notify(ChangeEvent.RESET)
    return keys
