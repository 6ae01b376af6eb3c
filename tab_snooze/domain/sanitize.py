"""Self-healing sanitizers producing the closest valid document."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from tab_snooze.domain.documents import DocumentVersion, empty_document
from tab_snooze.domain.item import bucket_key, entry_errors, parse_bucket_key
from tab_snooze.domain.validation import TAB_COUNT_KEY


def sanitize_snoozed_tabs(document: object) -> dict[str, Any]:
    """Repair a V1 document; never raises."""
    if not isinstance(document, Mapping):
        return empty_document(DocumentVersion.V1)

    buckets: dict[str, list[dict[str, Any]]] = {}
    total = 0
    for key, value in document.items():
        if key == TAB_COUNT_KEY or parse_bucket_key(key) is None:
            continue
        if not isinstance(value, list):
            continue
        kept = [copy.deepcopy(dict(entry)) for entry in value if not entry_errors(entry)]
        if kept:
            buckets[key] = kept
            total += len(kept)

    return {TAB_COUNT_KEY: total, **buckets}


def sanitize_snoozed_tabs_v2(document: object) -> dict[str, Any]:
    """Repair a V2 document; never raises.

    Surviving items end up listed exactly once, in the bucket keyed by their
    own ``popTime``. Ids already listed keep their relative order; unlisted
    items are appended in ``items`` order.
    """
    if not isinstance(document, Mapping):
        return empty_document(DocumentVersion.V2)

    raw_items = document.get("items")
    if not isinstance(raw_items, Mapping):
        return empty_document(DocumentVersion.V2)

    items: dict[str, dict[str, Any]] = {}
    for key, entry in raw_items.items():
        if not isinstance(key, str) or entry_errors(entry):
            continue
        if entry.get("id") != key:
            continue
        items[key] = copy.deepcopy(dict(entry))

    raw_schedule = document.get("schedule")
    if not isinstance(raw_schedule, Mapping):
        raw_schedule = {}

    schedule: dict[str, list[str]] = {}
    placed: set[str] = set()
    for ids in raw_schedule.values():
        if not isinstance(ids, list):
            continue
        for item_id in ids:
            if not isinstance(item_id, str) or item_id not in items or item_id in placed:
                continue
            schedule.setdefault(bucket_key(items[item_id]["popTime"]), []).append(item_id)
            placed.add(item_id)

    for item_id, entry in items.items():
        if item_id not in placed:
            schedule.setdefault(bucket_key(entry["popTime"]), []).append(item_id)
            placed.add(item_id)

    return {"items": items, "schedule": schedule}


def sanitize_document(document: object, version: DocumentVersion) -> dict[str, Any]:
    if version is DocumentVersion.V1:
        return sanitize_snoozed_tabs(document)
    return sanitize_snoozed_tabs_v2(document)
