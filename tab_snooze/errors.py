"""Exception taxonomy shared by the snooze core and its host surfaces."""

from __future__ import annotations


class SnoozeError(Exception):
    """Base class for every error raised by the snooze core."""


class StructuralInvalidError(SnoozeError):
    """A persisted document is broken beyond automatic repair."""

    def __init__(self, errors: list[str], lost_item_count: int = 0) -> None:
        self.errors = list(errors)
        self.lost_item_count = lost_item_count
        super().__init__("; ".join(self.errors) or "Invalid document structure")


class RequestValidationError(SnoozeError, ValueError):
    """An inbound request is malformed and was never dispatched."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class SnoozeInputError(SnoozeError, ValueError):
    """A snooze request cannot be honoured (no resolvable url, bad time)."""


class HostActionError(SnoozeError):
    """Opening or closing a page in the host failed."""
