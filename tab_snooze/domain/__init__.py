"""Pure domain logic for snoozed page references."""

from tab_snooze.domain.documents import DocumentVersion, VersionedDocument
from tab_snooze.domain.item import SnoozedItem
from tab_snooze.domain.sanitize import sanitize_document
from tab_snooze.domain.settings import Settings
from tab_snooze.domain.validation import ValidationResult, validate_document

__all__ = [
    "DocumentVersion",
    "Settings",
    "SnoozedItem",
    "ValidationResult",
    "VersionedDocument",
    "sanitize_document",
    "validate_document",
]
