"""Application runtime owning the snooze store, wake checks and requests."""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from threading import RLock, Timer
from typing import Any, Callable, Mapping
from uuid import uuid4

from tab_snooze.adapters.browser_tabs import BrowserTabHost
from tab_snooze.adapters.json_store import MemoryStore
from tab_snooze.adapters.terminal_notifier import TerminalNotifier
from tab_snooze.application.recovery import consume_recovery_notice, record_recovery
from tab_snooze.application.wake_scheduler import PendingNotification, WakeResolution, WakeScheduler
from tab_snooze.domain.documents import (
    DocumentVersion,
    add_item,
    count_entries,
    empty_document,
    item_count,
    list_items,
    remove_items,
)
from tab_snooze.domain.item import SnoozedItem, is_number
from tab_snooze.domain.migration import export_document, merge_documents, migrate_v1_to_v2, tag_document
from tab_snooze.domain.sanitize import sanitize_document, sanitize_snoozed_tabs_v2
from tab_snooze.domain.schedule import to_epoch_ms
from tab_snooze.domain.settings import Settings, settings_update_errors
from tab_snooze.domain.validation import validate_document, validate_snoozed_tabs, validate_snoozed_tabs_v2
from tab_snooze.errors import HostActionError, RequestValidationError, SnoozeInputError, StructuralInvalidError
from tab_snooze.ports.notifications import NotificationPort
from tab_snooze.ports.storage import StoragePort
from tab_snooze.ports.tabs import OpenTarget, TabHostPort

logger = logging.getLogger(__name__)

STORAGE_VERSION_KEY = "storageVersion"
LEGACY_KEY = "snoozedTabs"
SETTINGS_KEY = "settings"
DOCUMENT_KEYS = ("items", "schedule")


class SnoozeRuntime:
    """Single-process snooze engine.

    Every read-modify-write against the store happens under ``lock`` so that
    timer ticks, request threads and notification callbacks never compute
    from the same stale snapshot.
    """

    __slots__ = (
        "store",
        "session",
        "notifier",
        "tab_host",
        "lock",
        "wake",
        "_now_provider",
        "_id_factory",
        "_enable_timers",
        "_check_interval_seconds",
        "_recovery_cooldown_seconds",
        "_tick_timer",
        "_closed",
    )

    def __init__(
        self,
        *,
        store: StoragePort | None = None,
        session: StoragePort | None = None,
        notifier: NotificationPort | None = None,
        tab_host: TabHostPort | None = None,
        now_provider: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        enable_timers: bool = True,
        check_interval_seconds: int = 60,
        recovery_cooldown_seconds: int = 300,
    ) -> None:
        if check_interval_seconds < 1:
            raise ValueError("check_interval_seconds must be >= 1")

        self.store: StoragePort = store or MemoryStore()
        self.session: StoragePort = session or MemoryStore()
        self.notifier: NotificationPort = notifier or TerminalNotifier()
        self.tab_host: TabHostPort = tab_host or BrowserTabHost()
        self.lock = RLock()

        self._now_provider = now_provider or (lambda: datetime.now().astimezone())
        self._id_factory = id_factory or (lambda: str(uuid4()))
        self._enable_timers = enable_timers
        self._check_interval_seconds = check_interval_seconds
        self._recovery_cooldown_seconds = recovery_cooldown_seconds
        self._tick_timer: Timer | None = None
        self._closed = False

        self.wake = WakeScheduler(
            gateway=self,
            session=self.session,
            notifier=self.notifier,
            tab_host=self.tab_host,
            now_provider=self._now_provider,
        )
        self.notifier.add_button_listener(self.wake.handle_button)
        self.notifier.add_closed_listener(self.wake.handle_closed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> PendingNotification | None:
        """Load (and repair) the store, surface any recovery notice, scan once."""
        with self.lock:
            self._closed = False
            self.load_document()
            self.consume_recovery_notice()
        pending = self.check_now()
        self._arm_tick_timer()
        return pending

    def close(self) -> None:
        """Stop the periodic wake-check timer."""
        with self.lock:
            self._closed = True
            self._cancel_tick_timer()

    def now(self) -> datetime:
        return self._now_provider()

    # ------------------------------------------------------------------
    # Store document
    # ------------------------------------------------------------------
    def load_document(self) -> dict[str, Any]:
        """Return the current V2 document, migrating or repairing it first.

        Valid data is used as is. Repairable data is sanitized and written
        back. Unrepairable data is replaced by an empty document and a
        recovery flag is left in session state.
        """
        with self.lock:
            raw = self.store.get([STORAGE_VERSION_KEY, LEGACY_KEY, *DOCUMENT_KEYS])
            marker = raw.get(STORAGE_VERSION_KEY)

            if LEGACY_KEY in raw and marker in (None, DocumentVersion.V1):
                return self._migrate_legacy_unlocked(raw[LEGACY_KEY])

            if marker is None and not any(key in raw for key in DOCUMENT_KEYS):
                document = empty_document(DocumentVersion.V2)
                self.save_document(document)
                return document

            if marker != DocumentVersion.V2:
                logger.warning("Unknown storage version %r; validating as version 2", marker)

            candidate = {key: raw[key] for key in DOCUMENT_KEYS if key in raw}
            try:
                document = self._checked_document(candidate, DocumentVersion.V2)
            except StructuralInvalidError as exc:
                logger.warning("Store unrepairable, resetting (%d item(s) lost): %s", exc.lost_item_count, exc)
                document = empty_document(DocumentVersion.V2)
                self.save_document(document)
                record_recovery(self.session, exc.lost_item_count)
                return document

            if document != candidate or marker != DocumentVersion.V2:
                self.save_document(document)
            return document

    def save_document(self, document: Mapping[str, Any]) -> None:
        with self.lock:
            self.store.set(
                {
                    "items": document["items"],
                    "schedule": document["schedule"],
                    STORAGE_VERSION_KEY: int(DocumentVersion.V2),
                }
            )

    def _migrate_legacy_unlocked(self, legacy: object) -> dict[str, Any]:
        result = validate_snoozed_tabs(legacy)
        if not result.valid and not result.repairable:
            lost = count_entries(legacy, DocumentVersion.V1)
            logger.warning("Legacy store unrepairable, resetting (%d item(s) lost)", lost)
            document = empty_document(DocumentVersion.V2)
            record_recovery(self.session, lost)
        else:
            if not result.valid:
                logger.info("Repairing legacy store before migration: %s", ", ".join(result.errors))
            document = migrate_v1_to_v2(legacy, id_factory=self._id_factory)
            logger.info("Migrated %d legacy item(s) to storage version 2", item_count(document))

        self.save_document(document)
        self.store.remove([LEGACY_KEY])
        return document

    def _checked_document(self, candidate: object, version: DocumentVersion) -> dict[str, Any]:
        result = validate_document(candidate, version)
        if result.valid:
            return copy.deepcopy(dict(candidate))  # type: ignore[arg-type]
        if not result.repairable:
            raise StructuralInvalidError(result.errors, count_entries(candidate, version))
        logger.info("Repairing store: %s", ", ".join(result.errors))
        return sanitize_document(candidate, version)

    # ------------------------------------------------------------------
    # Request operations
    # ------------------------------------------------------------------
    def get_snoozed_tabs(self) -> dict[str, Any]:
        return self.load_document()

    def list_snoozed(self) -> list[SnoozedItem]:
        return list_items(self.load_document())

    def set_snoozed_tabs(self, data: object) -> dict[str, Any]:
        """Replace the whole document; tagged V1 documents are migrated first."""
        if not isinstance(data, Mapping):
            raise RequestValidationError(["Data must be an object"])
        try:
            tagged = tag_document(data)
        except ValueError as exc:
            raise RequestValidationError([str(exc)]) from exc
        version = tagged.version
        try:
            document = self._checked_document(tagged.data, version)
        except StructuralInvalidError as exc:
            raise RequestValidationError(exc.errors) from exc
        if version is DocumentVersion.V1:
            document = migrate_v1_to_v2(document, id_factory=self._id_factory)
        with self.lock:
            self.save_document(document)
        return document

    def get_settings(self) -> Settings:
        stored = self.store.get([SETTINGS_KEY]).get(SETTINGS_KEY)
        return Settings.from_mapping(stored)

    def set_settings(self, update: Mapping[str, Any]) -> Settings:
        errors = settings_update_errors(update)
        if errors:
            raise RequestValidationError(errors)
        with self.lock:
            stored = self.store.get([SETTINGS_KEY]).get(SETTINGS_KEY)
            merged = Settings.from_mapping(stored).to_mapping()
            merged.update(update)
            settings = Settings.from_mapping(merged)
            self.store.set({SETTINGS_KEY: settings.to_mapping()})
            return settings

    def snooze(self, tab: Mapping[str, Any], pop_time: float, group_id: str | None = None) -> SnoozedItem:
        """Schedule ``tab`` to wake at ``pop_time`` (epoch ms).

        When ``tab`` carries a host reference under ``id`` the page is closed
        after the store write succeeds.
        """
        url = tab.get("url") if isinstance(tab, Mapping) else None
        if not isinstance(url, str) or not url.strip():
            raise SnoozeInputError("Cannot snooze a tab without a URL")
        if not is_number(pop_time):
            raise SnoozeInputError("popTime must be a number")
        if group_id is not None and not isinstance(group_id, str):
            raise SnoozeInputError("groupId must be a string")

        title = tab.get("title")
        favicon = tab.get("favicon") or tab.get("favIconUrl")

        with self.lock:
            document = self.load_document()
            taken = {raw["creationTime"] for raw in document["items"].values()}
            creation_time = to_epoch_ms(self.now())
            while creation_time in taken:
                creation_time += 1

            item_id = self._id_factory()
            while item_id in document["items"]:
                item_id = self._id_factory()

            item = SnoozedItem(
                id=item_id,
                url=url,
                creation_time=creation_time,
                pop_time=int(pop_time),
                title=title if isinstance(title, str) else None,
                favicon=favicon if isinstance(favicon, str) else None,
                group_id=group_id,
            )
            self.save_document(add_item(document, item))

        logger.info("Snoozed %s until %s", url, item.pop_time)
        ref = tab.get("id")
        if ref is not None and not isinstance(ref, bool):
            try:
                self.tab_host.close(ref)
            except HostActionError as exc:
                logger.warning("Snoozed %s but could not close it: %s", url, exc)
        return item

    def remove_snoozed_tab(self, tab: Mapping[str, Any]) -> list[SnoozedItem]:
        """Remove by ``id``; legacy callers without an id match on creationTime."""
        with self.lock:
            document = self.load_document()
            item_id = tab.get("id")
            if isinstance(item_id, str) and item_id in document["items"]:
                ids = [item_id]
            else:
                creation_time = tab.get("creationTime")
                ids = [
                    key
                    for key, raw in document["items"].items()
                    if is_number(creation_time) and raw["creationTime"] == creation_time
                ]
            document, removed = remove_items(document, ids)
            if removed:
                self.save_document(document)
            return removed

    def clear_all(self) -> None:
        with self.lock:
            self.save_document(empty_document(DocumentVersion.V2))
        logger.info("Cleared all snoozed items")

    def remove_window_group(self, group_id: str) -> list[SnoozedItem]:
        with self.lock:
            document = self.load_document()
            document, removed = remove_items(document, self._group_ids(document, group_id))
            if removed:
                self.save_document(document)
            return removed

    def restore_window_group(self, group_id: str) -> list[SnoozedItem]:
        """Open every item of a window group together, then forget them."""
        with self.lock:
            document = self.load_document()
            document, removed = remove_items(document, self._group_ids(document, group_id))
            if removed:
                self.save_document(document)

        for index, item in enumerate(removed):
            target = OpenTarget.NEW_WINDOW if index == 0 else OpenTarget.CURRENT_WINDOW
            try:
                self.tab_host.open(item.url, target)
            except HostActionError as exc:
                logger.warning("Could not restore %s from group %s: %s", item.url, group_id, exc)
        return removed

    def import_tabs(self, data: object) -> dict[str, Any]:
        """Merge an export (V2 with marker, or legacy V1) into the store."""
        try:
            tagged = tag_document(data)
        except ValueError as exc:
            return {"success": False, "error": str(exc)}

        if tagged.version is DocumentVersion.V1:
            result = validate_snoozed_tabs(tagged.data)
        else:
            result = validate_snoozed_tabs_v2(tagged.data)
        if not result.valid and not result.repairable:
            return {"success": False, "error": ", ".join(result.errors)}

        if tagged.version is DocumentVersion.V1:
            incoming = migrate_v1_to_v2(tagged.data, id_factory=self._id_factory)
        else:
            incoming = sanitize_snoozed_tabs_v2(tagged.data)

        with self.lock:
            merged, added = merge_documents(self.load_document(), incoming, id_factory=self._id_factory)
            self.save_document(merged)
        logger.info("Imported %d item(s)", added)
        return {"success": True, "addedCount": added}

    def export_tabs(self) -> dict[str, Any]:
        return export_document(self.load_document())

    def badge_text(self) -> str:
        if not self.get_settings().badge:
            return ""
        count = item_count(self.load_document())
        return str(count) if count else ""

    # ------------------------------------------------------------------
    # Wake checks
    # ------------------------------------------------------------------
    def check_now(self) -> PendingNotification | None:
        return self.wake.scan()

    def consume_recovery_notice(self) -> bool:
        return consume_recovery_notice(
            self.session,
            self.notifier,
            now_ms=to_epoch_ms(self.now()),
            cooldown_seconds=self._recovery_cooldown_seconds,
        )

    def respond(self, notification_id: str, button_index: int | None) -> WakeResolution | None:
        """Deliver a notification response directly (None means closed)."""
        if button_index is None:
            return self.wake.handle_closed(notification_id)
        return self.wake.handle_button(notification_id, button_index)

    def _arm_tick_timer(self) -> None:
        if not self._enable_timers or self._closed:
            return

        self._cancel_tick_timer()
        self._tick_timer = Timer(self._check_interval_seconds, self._on_tick_timer)
        self._tick_timer.daemon = True
        self._tick_timer.start()

    def _on_tick_timer(self) -> None:
        try:
            self.check_now()
        except Exception:
            logger.exception("Wake check failed")
        with self.lock:
            self._arm_tick_timer()

    def _cancel_tick_timer(self) -> None:
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None

    @staticmethod
    def _group_ids(document: Mapping[str, Any], group_id: str) -> list[str]:
        return [
            item.id
            for item in list_items(document)
            if item.group_id == group_id
        ]
