from .backend import FileBackend, KeyValueBackend, MemoryBackend
from .context import StorageKey
from .errors import (
    DuplicateSubmissionError,
    EvidenceTooLargeError,
    InvalidEvidenceError,
    ReservedIdentityError,
    StorageFullError,
    StoreError,
    UnknownProfileError,
)
from .events import ChangeBus, ChangeEvent, Channel, Subscription
from .ledger import EvidenceAnalyzer, points_for_hours
from .reset import ResetScope
from .store import Store

__all__ = [
    "FileBackend",
    "KeyValueBackend",
    "MemoryBackend",
    "StorageKey",
    "DuplicateSubmissionError",
    "EvidenceTooLargeError",
    "InvalidEvidenceError",
    "ReservedIdentityError",
    "StorageFullError",
    "StoreError",
    "UnknownProfileError",
    "ChangeBus",
    "ChangeEvent",
    "Channel",
    "Subscription",
    "EvidenceAnalyzer",
    "points_for_hours",
    "ResetScope",
    "Store",
]
