"""Versioned store documents and pure V2 mutations."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable, Mapping

from tab_snooze.domain.item import SnoozedItem, bucket_key


class DocumentVersion(IntEnum):
    """Explicit storage schema version tag."""

    V1 = 1
    V2 = 2


@dataclass(frozen=True, slots=True)
class VersionedDocument:
    """Tagged union over the legacy and current document shapes."""

    version: DocumentVersion
    data: Any


def empty_document(version: DocumentVersion) -> dict[str, Any]:
    if version is DocumentVersion.V1:
        return {"tabCount": 0}
    return {"items": {}, "schedule": {}}


def count_entries(document: object, version: DocumentVersion) -> int:
    """Best-effort count of the item records a (possibly broken) document holds."""
    if not isinstance(document, Mapping):
        return 0

    if version is DocumentVersion.V1:
        total = sum(len(value) for key, value in document.items() if key != "tabCount" and isinstance(value, list))
        stored = document.get("tabCount")
        if isinstance(stored, int) and not isinstance(stored, bool) and stored > total:
            return stored
        return total

    items = document.get("items")
    if isinstance(items, Mapping):
        return len(items)
    schedule = document.get("schedule")
    if not isinstance(schedule, Mapping):
        return 0
    ids: set[str] = set()
    for value in schedule.values():
        if isinstance(value, list):
            ids.update(item_id for item_id in value if isinstance(item_id, str))
    return len(ids)


def item_count(document: Mapping[str, Any]) -> int:
    return len(document.get("items", {}))


def list_items(document: Mapping[str, Any]) -> list[SnoozedItem]:
    """Items of a sanitized V2 document ordered by wake time then listing order."""
    ordered: list[SnoozedItem] = []
    schedule = document["schedule"]
    for key in sorted(schedule, key=int):
        for item_id in schedule[key]:
            ordered.append(SnoozedItem.from_dict(document["items"][item_id]))
    return ordered


def due_bucket_keys(document: Mapping[str, Any], now_ms: int) -> list[str]:
    return sorted((key for key in document["schedule"] if int(key) <= now_ms), key=int)


def add_item(document: Mapping[str, Any], item: SnoozedItem) -> dict[str, Any]:
    updated = copy.deepcopy(dict(document))
    updated["items"][item.id] = item.to_dict()
    updated["schedule"].setdefault(item.bucket, []).append(item.id)
    return updated


def remove_items(document: Mapping[str, Any], item_ids: Iterable[str]) -> tuple[dict[str, Any], list[SnoozedItem]]:
    """Drop ``item_ids`` from items and schedule; unknown ids are skipped."""
    updated = copy.deepcopy(dict(document))
    removed: list[SnoozedItem] = []
    for item_id in item_ids:
        raw = updated["items"].pop(item_id, None)
        if raw is None:
            continue
        removed.append(SnoozedItem.from_dict(raw))
        _unschedule(updated["schedule"], item_id, bucket_key(raw["popTime"]))
    return updated, removed


def reschedule_items(
    document: Mapping[str, Any],
    item_ids: Iterable[str],
    pop_time: int,
) -> tuple[dict[str, Any], list[SnoozedItem]]:
    """Move every known id to the bucket for ``pop_time`` in one pass."""
    updated = copy.deepcopy(dict(document))
    moved: list[SnoozedItem] = []
    for item_id in item_ids:
        raw = updated["items"].get(item_id)
        if raw is None:
            continue
        _unschedule(updated["schedule"], item_id, bucket_key(raw["popTime"]))
        item = SnoozedItem.from_dict(raw).rescheduled(pop_time)
        updated["items"][item_id] = item.to_dict()
        updated["schedule"].setdefault(item.bucket, []).append(item_id)
        moved.append(item)
    return updated, moved


def _unschedule(schedule: dict[str, list[str]], item_id: str, key: str) -> None:
    ids = schedule.get(key)
    if ids is None or item_id not in ids:
        for other_key, other_ids in list(schedule.items()):
            if item_id in other_ids:
                key, ids = other_key, other_ids
                break
        else:
            return
    ids.remove(item_id)
    if not ids:
        del schedule[key]
