"""Errors raised by the local store."""


class StoreError(Exception):
    """Base class for errors surfaced to store callers."""


class QuotaExceededError(Exception):
    """Raised by a backend when a write would exceed its quota.

    Never escapes the store; the quota policy turns it into StorageFullError.
    """

    def __init__(self, key: str, needed_bytes: int, quota_bytes: int):
        super().__init__(f"Writing {key} needs {needed_bytes} bytes, quota is {quota_bytes}")
        self.key = key
        self.needed_bytes = needed_bytes
        self.quota_bytes = quota_bytes


class StorageFullError(StoreError):
    """A write failed even after dropping optional payloads."""

    def __init__(self, key: str):
        super().__init__("Storage is full. Your changes were not saved.")
        self.key = key


class DuplicateSubmissionError(StoreError):
    def __init__(self, email: str, date_str: str):
        super().__init__("You have already uploaded a screenshot today. Come back tomorrow!")
        self.email = email
        self.date_str = date_str


class UnknownProfileError(StoreError, LookupError):
    def __init__(self, email: str):
        super().__init__(f"No detox profile for {email}. Join the challenge first.")
        self.email = email


class ReservedIdentityError(StoreError, ValueError):
    def __init__(self, username: str):
        super().__init__(f"{username!r} is reserved for the operator and is not tracked")
        self.username = username


class InvalidEvidenceError(StoreError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "That doesn't look like a valid Screen Time screenshot. "
            "Please upload a clear image of your daily usage dashboard."
        )


def _format_size(size_bytes: int) -> str:
    if size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):g}MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:g}KB"
    return f"{size_bytes} bytes"


class EvidenceTooLargeError(StoreError):
    def __init__(self, size_bytes: int, max_bytes: int):
        super().__init__(
            f"File is too large ({size_bytes} bytes). "
            f"Please upload an image smaller than {_format_size(max_bytes)}."
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
