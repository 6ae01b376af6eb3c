"""One-shot recovery notice raised after an unrepairable store was reset."""

from __future__ import annotations

import logging

from tab_snooze.ports.notifications import NotificationPort
from tab_snooze.ports.storage import StoragePort

logger = logging.getLogger(__name__)

PENDING_RECOVERY_KEY = "pendingRecoveryNotification"
LAST_RECOVERY_NOTIFIED_KEY = "lastRecoveryNotifiedAt"
RECOVERY_NOTIFICATION_ID = "recovery-notification"


def record_recovery(session: StoragePort, lost_item_count: int) -> None:
    session.set({PENDING_RECOVERY_KEY: int(lost_item_count)})


def recovery_message(lost_item_count: int) -> str:
    if lost_item_count <= 0:
        return "Snoozed tabs data was reset due to corruption."
    noun = "item" if lost_item_count == 1 else "items"
    return f"Snoozed tabs data was reset due to corruption; {lost_item_count} {noun} lost."


def consume_recovery_notice(
    session: StoragePort,
    notifier: NotificationPort,
    *,
    now_ms: int,
    cooldown_seconds: int,
) -> bool:
    """Surface the pending recovery flag at most once per cooldown window.

    The flag is cleared whether or not a notification was shown. Returns True
    when a notification was created.
    """
    state = session.get([PENDING_RECOVERY_KEY, LAST_RECOVERY_NOTIFIED_KEY])
    if PENDING_RECOVERY_KEY not in state:
        return False

    lost = state[PENDING_RECOVERY_KEY]
    last_notified = state.get(LAST_RECOVERY_NOTIFIED_KEY)
    shown = False

    if not isinstance(last_notified, int) or now_ms - last_notified > cooldown_seconds * 1000:
        notifier.create(
            "Snooze Data Recovered",
            recovery_message(lost if isinstance(lost, int) else 0),
            notification_id=RECOVERY_NOTIFICATION_ID,
        )
        session.set({LAST_RECOVERY_NOTIFIED_KEY: now_ms})
        shown = True
    else:
        logger.debug("Recovery notice suppressed; last shown at %s", last_notified)

    session.remove([PENDING_RECOVERY_KEY])
    return shown
