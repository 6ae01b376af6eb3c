"""Periodic wake check: due-bucket scan, one notification, response handling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import Any, Callable, Mapping, Protocol

from tab_snooze.application.recovery import RECOVERY_NOTIFICATION_ID
from tab_snooze.domain.documents import due_bucket_keys, remove_items, reschedule_items
from tab_snooze.domain.item import SnoozedItem
from tab_snooze.domain.schedule import hours_from_now, to_epoch_ms
from tab_snooze.domain.settings import Settings
from tab_snooze.errors import HostActionError
from tab_snooze.ports.notifications import NotificationPort
from tab_snooze.ports.storage import StoragePort
from tab_snooze.ports.tabs import OpenTarget, TabHostPort

logger = logging.getLogger(__name__)

PENDING_NOTIFICATION_KEY = "pendingNotification"
NOTIFICATION_TITLE = "Tab Snooze"
BUTTON_OPEN_NOW = 0
BUTTON_POSTPONE = 1
BUTTON_LABELS = ("Open now", "Postpone")
POSTPONE_HOURS = 1


class WakeState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    NOTIFICATION_PENDING = "notification_pending"
    RESOLVED = "resolved"


class WakeAction(str, Enum):
    OPEN = "open"
    POSTPONE = "postpone"


class DocumentGateway(Protocol):
    """What the wake scheduler needs from the runtime that owns the store."""

    lock: RLock

    def load_document(self) -> dict[str, Any]:
        ...

    def save_document(self, document: Mapping[str, Any]) -> None:
        ...

    def get_settings(self) -> Settings:
        ...


@dataclass(frozen=True, slots=True)
class PendingNotification:
    """Batch awaiting a user response; lives in session state only."""

    notification_id: str
    ids: tuple[str, ...]
    bucket_keys: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "notificationId": self.notification_id,
            "ids": list(self.ids),
            "bucketKeys": list(self.bucket_keys),
        }

    @classmethod
    def from_dict(cls, raw: object) -> "PendingNotification | None":
        if not isinstance(raw, Mapping):
            return None
        notification_id = raw.get("notificationId")
        ids = raw.get("ids")
        keys = raw.get("bucketKeys", [])
        if not isinstance(notification_id, str) or not isinstance(ids, list):
            return None
        return cls(
            notification_id=notification_id,
            ids=tuple(item_id for item_id in ids if isinstance(item_id, str)),
            bucket_keys=tuple(key for key in keys if isinstance(key, str)) if isinstance(keys, list) else (),
        )


@dataclass(slots=True)
class WakeResolution:
    """Outcome of one processed notification response."""

    notification_id: str
    action: WakeAction
    items: list[SnoozedItem] = field(default_factory=list)
    failed_urls: list[str] = field(default_factory=list)


def notification_message(count: int) -> str:
    return f"{count} tab is back" if count == 1 else f"{count} tabs are back"


class WakeScheduler:
    """State machine: Idle -> Scanning -> NotificationPending -> Resolved -> Idle.

    The batch under consideration is never held in memory between events: it
    is written to session state when the notification is issued and read back
    when the response arrives, so a restart between the two loses nothing.
    """

    __slots__ = ("_gateway", "_session", "_notifier", "_tab_host", "_now_provider", "_state")

    def __init__(
        self,
        *,
        gateway: DocumentGateway,
        session: StoragePort,
        notifier: NotificationPort,
        tab_host: TabHostPort,
        now_provider: Callable[[], datetime],
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._notifier = notifier
        self._tab_host = tab_host
        self._now_provider = now_provider
        self._state = WakeState.IDLE

    @property
    def state(self) -> WakeState:
        return self._state

    def pending(self) -> PendingNotification | None:
        raw = self._session.get([PENDING_NOTIFICATION_KEY]).get(PENDING_NOTIFICATION_KEY)
        return PendingNotification.from_dict(raw)

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------
    def scan(self) -> PendingNotification | None:
        """Issue one notification for every due item, unless one is showing."""
        with self._gateway.lock:
            active = [
                notification_id
                for notification_id in self._notifier.get_all_active()
                if notification_id != RECOVERY_NOTIFICATION_ID
            ]
            if active:
                logger.debug("Skipping wake scan; %d notification(s) active", len(active))
                return None

            self._state = WakeState.SCANNING
            stale = self.pending()
            if stale is not None:
                logger.debug("Dropping stale pending batch %s", stale.notification_id)
                self._session.remove([PENDING_NOTIFICATION_KEY])

            document = self._gateway.load_document()
            now_ms = to_epoch_ms(self._now_provider())
            keys = due_bucket_keys(document, now_ms)

            ids: list[str] = []
            seen: set[str] = set()
            for key in keys:
                for item_id in document["schedule"][key]:
                    if item_id not in seen:
                        seen.add(item_id)
                        ids.append(item_id)

            if not ids:
                self._state = WakeState.IDLE
                return None

            notification_id = self._notifier.create(
                NOTIFICATION_TITLE,
                notification_message(len(ids)),
                BUTTON_LABELS,
            )
            record = PendingNotification(
                notification_id=notification_id,
                ids=tuple(ids),
                bucket_keys=tuple(keys),
            )
            self._session.set({PENDING_NOTIFICATION_KEY: record.to_dict()})
            self._state = WakeState.NOTIFICATION_PENDING
            logger.info("Issued wake notification %s for %d item(s)", notification_id, len(ids))
            return record

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------
    def handle_button(self, notification_id: str, button_index: int) -> WakeResolution | None:
        if button_index == BUTTON_OPEN_NOW:
            return self._resolve(notification_id, WakeAction.OPEN)
        if button_index == BUTTON_POSTPONE:
            return self._resolve(notification_id, WakeAction.POSTPONE)
        logger.debug("Ignoring unknown button %s on %s", button_index, notification_id)
        return None

    def handle_closed(self, notification_id: str, by_user: bool = True) -> WakeResolution | None:
        """Closing without a button postpones, whoever closed it."""
        logger.debug("Notification %s closed (by_user=%s)", notification_id, by_user)
        return self._resolve(notification_id, WakeAction.POSTPONE)

    def _resolve(self, notification_id: str, action: WakeAction) -> WakeResolution | None:
        with self._gateway.lock:
            record = self.pending()
            if record is None or record.notification_id != notification_id:
                logger.debug("Ignoring response for unknown notification %s", notification_id)
                return None

            document = self._gateway.load_document()
            if action is WakeAction.OPEN:
                document, items = remove_items(document, record.ids)
            else:
                pop_time = hours_from_now(self._now_provider(), POSTPONE_HOURS)
                document, items = reschedule_items(document, record.ids, pop_time)
            self._gateway.save_document(document)

            self._session.remove([PENDING_NOTIFICATION_KEY])
            self._notifier.clear(notification_id)
            self._state = WakeState.RESOLVED
            settings = self._gateway.get_settings()

        resolution = WakeResolution(notification_id=notification_id, action=action, items=items)
        if action is WakeAction.OPEN:
            target = OpenTarget.CURRENT_WINDOW if settings.open_new_tab else OpenTarget.NEW_WINDOW
            for item in items:
                try:
                    self._tab_host.open(item.url, target)
                except HostActionError as exc:
                    logger.warning("Could not open woken item %s: %s", item.id, exc)
                    resolution.failed_urls.append(item.url)

        logger.info("Resolved notification %s: %s %d item(s)", notification_id, action.value, len(items))
        self._state = WakeState.IDLE
        return resolution
