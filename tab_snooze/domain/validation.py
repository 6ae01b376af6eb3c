"""Schema validation for persisted snooze documents (V1 legacy and V2)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from tab_snooze.domain.documents import DocumentVersion
from tab_snooze.domain.item import bucket_key, entry_errors, parse_bucket_key

TAB_COUNT_KEY = "tabCount"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of inspecting one candidate document."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    repairable: bool = True


def validate_tab_entry(entry: object) -> ValidationResult:
    errors = entry_errors(entry)
    return ValidationResult(valid=not errors, errors=errors, repairable=not errors)


def validate_snoozed_tabs(document: object) -> ValidationResult:
    """Inspect a legacy V1 document.

    Bucket values that are not arrays make the document unrepairable: there is
    no safe way to tell what the bucket used to hold. Every other problem
    (stray keys, malformed entries, empty buckets, a wrong ``tabCount``) is
    repairable by dropping or recomputing data.
    """
    if not isinstance(document, Mapping):
        return ValidationResult(valid=False, errors=["Data must be an object"], repairable=False)

    errors: list[str] = []
    repairable = True
    total = 0

    for key, value in document.items():
        if key == TAB_COUNT_KEY:
            continue
        if parse_bucket_key(key) is None:
            errors.append(f"Invalid timestamp key: {key!r}")
        if not isinstance(value, list):
            errors.append(f"Bucket {key!r} must be an array")
            repairable = False
            continue
        if not value:
            errors.append(f"Empty bucket: {key!r}")
        total += len(value)
        for index, entry in enumerate(value):
            for problem in entry_errors(entry):
                errors.append(f"Bucket {key!r}[{index}]: {problem}")

    if TAB_COUNT_KEY not in document:
        errors.append("Missing tabCount key")
    else:
        count = document[TAB_COUNT_KEY]
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            errors.append(f"Invalid tabCount: {count!r}")
        elif count != total:
            errors.append(f"tabCount mismatch: stored {count}, actual {total}")

    return ValidationResult(valid=not errors, errors=errors, repairable=repairable)


def validate_snoozed_tabs_v2(document: object) -> ValidationResult:
    """Inspect a V2 ``{items, schedule}`` document.

    A missing ``items`` map is fatal. A missing ``schedule`` map is repairable
    because every bucket can be rebuilt from the items' own ``popTime``.
    """
    if not isinstance(document, Mapping):
        return ValidationResult(valid=False, errors=["Data must be an object"], repairable=False)

    items = document.get("items")
    if not isinstance(items, Mapping):
        return ValidationResult(valid=False, errors=["Missing items object"], repairable=False)

    errors: list[str] = []
    repairable = True

    schedule: Mapping[str, Any] = document.get("schedule")  # type: ignore[assignment]
    if not isinstance(schedule, Mapping):
        errors.append("Missing schedule object")
        schedule = {}

    sound_ids: set[str] = set()
    for key, entry in items.items():
        problems = entry_errors(entry)
        for problem in problems:
            errors.append(f"Item {key!r}: {problem}")
        if not isinstance(entry, Mapping):
            continue
        if entry.get("id") != key:
            errors.append(f"ID Validation Mismatch: key {key!r} holds item {entry.get('id')!r}")
            continue
        if not problems:
            sound_ids.add(key)

    placed: dict[str, str] = {}
    for key, ids in schedule.items():
        if parse_bucket_key(key) is None:
            errors.append(f"Invalid schedule key: {key!r}")
        if not isinstance(ids, list):
            errors.append(f"Schedule bucket {key!r} must be an array")
            repairable = False
            continue
        if not ids:
            errors.append(f"Empty schedule bucket: {key!r}")
        for item_id in ids:
            if not isinstance(item_id, str) or item_id not in items:
                errors.append(f"Schedule bucket {key!r} references missing item ID: {item_id!r}")
            elif item_id in placed:
                errors.append(f"Item ID {item_id!r} is listed in more than one schedule slot")
            else:
                placed[item_id] = key

    for item_id in sorted(sound_ids):
        expected = bucket_key(items[item_id]["popTime"])
        if placed.get(item_id) != expected:
            errors.append(f"Item {item_id!r} is not scheduled in its popTime bucket {expected}")

    return ValidationResult(valid=not errors, errors=errors, repairable=repairable)


def validate_document(document: object, version: DocumentVersion) -> ValidationResult:
    if version is DocumentVersion.V1:
        return validate_snoozed_tabs(document)
    return validate_snoozed_tabs_v2(document)
