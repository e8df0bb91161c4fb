"""Write path that degrades instead of failing when storage is full."""

import logging
from typing import Callable, Sequence

from .backend import KeyValueBackend
from .errors import QuotaExceededError, StorageFullError

logger = logging.getLogger(__name__)


class QuotaPolicy:
    """Wraps every collection write.

    On a full backend, each fallback payload is tried in order. Fallbacks
    drop optional data (evidence images), so a successful retry loses that
    data but keeps the rest of the record.
    """

    def __init__(self, backend: KeyValueBackend):
        self._backend = backend

    def write(
        self,
        key: str,
        value: str,
        fallbacks: Sequence[Callable[[], str]] = (),
    ) -> None:
        try:
            self._backend.set(key, value)
            return
        except QuotaExceededError as e:
            if not fallbacks:
                logger.error("Storage full writing %s (%d bytes needed)", key, e.needed_bytes)
                raise StorageFullError(key) from e
            last_error = e

        attempted = {value}
        for fallback in fallbacks:
            degraded = fallback()
            if degraded in attempted:
                continue
            attempted.add(degraded)
            try:
                self._backend.set(key, degraded)
            except QuotaExceededError as e:
                last_error = e
                continue
            logger.warning(
                "Storage full writing %s, saved without evidence (%d -> %d chars)",
                key,
                len(value),
                len(degraded),
            )
            return

        logger.error("Storage full writing %s even without evidence", key)
        raise StorageFullError(key) from last_error
