"""SnoozedItem domain entity and its field-level checks."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping


REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("url", "string"),
    ("creationTime", "number"),
    ("popTime", "number"),
)

_BUCKET_KEY_RE = re.compile(r"-?[0-9]+")

_KNOWN_FIELDS = {"id", "url", "title", "favicon", "groupId", "creationTime", "popTime"}


def is_number(value: object) -> bool:
    """JSON number check: ints and finite floats, never booleans."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def bucket_key(pop_time: int | float) -> str:
    """Schedule bucket key for an absolute wake instant in epoch ms."""
    return str(int(pop_time))


def parse_bucket_key(key: object) -> int | None:
    """Return the timestamp encoded by ``key`` or None when it is not one."""
    if not isinstance(key, str) or _BUCKET_KEY_RE.fullmatch(key) is None:
        return None
    return int(key)


def entry_errors(entry: object) -> list[str]:
    """Field-level problems of one raw item record; empty when well formed."""
    if not isinstance(entry, Mapping):
        return ["Entry must be an object"]

    errors: list[str] = []
    for name, kind in REQUIRED_FIELDS:
        if name not in entry or entry[name] is None:
            errors.append(f"Missing required field: {name}")
            continue
        value = entry[name]
        if kind == "string" and not isinstance(value, str):
            errors.append(f"{name} must be a string")
        elif kind == "number" and not is_number(value):
            errors.append(f"{name} must be a number")
    return errors


@dataclass(frozen=True, slots=True)
class SnoozedItem:
    """One snoozed page reference scheduled to pop at ``pop_time``."""

    id: str
    url: str
    creation_time: int
    pop_time: int
    title: str | None = None
    favicon: str | None = None
    group_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def bucket(self) -> str:
        return bucket_key(self.pop_time)

    def rescheduled(self, pop_time: int) -> "SnoozedItem":
        return replace(self, pop_time=int(pop_time))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "id": self.id,
                "url": self.url,
                "creationTime": self.creation_time,
                "popTime": self.pop_time,
            }
        )
        if self.title is not None:
            payload["title"] = self.title
        if self.favicon is not None:
            payload["favicon"] = self.favicon
        if self.group_id is not None:
            payload["groupId"] = self.group_id
        return payload

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, item_id: str | None = None) -> "SnoozedItem":
        problems = entry_errors(raw)
        if problems:
            raise ValueError("; ".join(problems))

        resolved_id = item_id if item_id is not None else raw.get("id")
        if not isinstance(resolved_id, str) or not resolved_id:
            raise ValueError("Missing required field: id")

        title = raw.get("title")
        favicon = raw.get("favicon", raw.get("favIconUrl"))
        group_id = raw.get("groupId")
        return cls(
            id=resolved_id,
            url=raw["url"],
            creation_time=int(raw["creationTime"]),
            pop_time=int(raw["popTime"]),
            title=title if isinstance(title, str) else None,
            favicon=favicon if isinstance(favicon, str) else None,
            group_id=group_id if isinstance(group_id, str) else None,
            extra={k: v for k, v in raw.items() if k not in _KNOWN_FIELDS},
        )
