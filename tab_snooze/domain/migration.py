"""Explicit V1 -> V2 migration and import merging."""

from __future__ import annotations

import copy
from typing import Any, Callable, Mapping
from uuid import uuid4

from tab_snooze.domain.documents import DocumentVersion, VersionedDocument
from tab_snooze.domain.item import bucket_key
from tab_snooze.domain.sanitize import sanitize_snoozed_tabs, sanitize_snoozed_tabs_v2

EXPORT_VERSION_KEY = "version"
V2_KEYS = ("items", "schedule")

IdFactory = Callable[[], str]


def _new_id() -> str:
    return str(uuid4())


def migrate_v1_to_v2(document: object, *, id_factory: IdFactory = _new_id) -> dict[str, Any]:
    """Convert a legacy bucket map into ``{items, schedule}``.

    The input is sanitized first, so malformed entries are dropped rather than
    carried across. Each surviving entry receives a fresh id.
    """
    legacy = sanitize_snoozed_tabs(document)
    items: dict[str, dict[str, Any]] = {}
    schedule: dict[str, list[str]] = {}

    for key in sorted((k for k in legacy if k != "tabCount"), key=int):
        for entry in legacy[key]:
            item_id = id_factory()
            while item_id in items:
                item_id = id_factory()
            record = copy.deepcopy(entry)
            record["id"] = item_id
            items[item_id] = record
            schedule.setdefault(bucket_key(record["popTime"]), []).append(item_id)

    return sanitize_snoozed_tabs_v2({"items": items, "schedule": schedule})


def tag_document(raw: object) -> VersionedDocument:
    """Tag an inbound document by its explicit ``version`` marker.

    ``{"version": 1}`` and ``{"version": 2}`` select the schema; the marker is
    stripped from the tagged body. Documents without a marker are legacy V1
    bucket maps, which predate the marker. An unmarked document holding
    ``items`` or ``schedule`` is rejected rather than guessed at.
    """
    if not isinstance(raw, Mapping):
        return VersionedDocument(DocumentVersion.V1, raw)

    if EXPORT_VERSION_KEY not in raw:
        if any(key in raw for key in V2_KEYS):
            raise ValueError(
                f"Missing version marker: documents with items or schedule must carry \"{EXPORT_VERSION_KEY}\": 2"
            )
        return VersionedDocument(DocumentVersion.V1, dict(raw))

    marker = raw[EXPORT_VERSION_KEY]
    if isinstance(marker, bool) or marker not in (DocumentVersion.V1, DocumentVersion.V2):
        raise ValueError(f"Unsupported export version: {marker!r}")
    body = {key: value for key, value in raw.items() if key != EXPORT_VERSION_KEY}
    return VersionedDocument(DocumentVersion(marker), body)


def export_document(document: Mapping[str, Any]) -> dict[str, Any]:
    payload = copy.deepcopy(dict(document))
    payload[EXPORT_VERSION_KEY] = int(DocumentVersion.V2)
    return payload


def merge_documents(
    current: Mapping[str, Any],
    imported: Mapping[str, Any],
    *,
    id_factory: IdFactory = _new_id,
) -> tuple[dict[str, Any], int]:
    """Append every imported item to ``current``; returns (merged, added_count).

    Colliding ids are re-keyed so that no imported item overwrites an existing
    one: the merged size is always ``len(current) + added_count``.
    """
    merged = sanitize_snoozed_tabs_v2(current)
    incoming = sanitize_snoozed_tabs_v2(imported)
    added = 0

    for key in sorted(incoming["schedule"], key=int):
        for item_id in incoming["schedule"][key]:
            record = copy.deepcopy(incoming["items"][item_id])
            new_id = item_id
            while new_id in merged["items"]:
                new_id = id_factory()
            record["id"] = new_id
            merged["items"][new_id] = record
            merged["schedule"].setdefault(bucket_key(record["popTime"]), []).append(new_id)
            added += 1

    return merged, added
