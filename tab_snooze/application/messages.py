"""Inbound request contract: per-action validation and dispatch."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.domain.item import is_number
from tab_snooze.errors import RequestValidationError, SnoozeError

logger = logging.getLogger(__name__)

GET_SNOOZED_TABS = "getSnoozedTabs"
SET_SNOOZED_TABS = "setSnoozedTabs"
GET_SETTINGS = "getSettings"
SET_SETTINGS = "setSettings"
SNOOZE = "snooze"
REMOVE_SNOOZED_TAB = "removeSnoozedTab"
CLEAR_ALL_SNOOZED_TABS = "clearAllSnoozedTabs"
REMOVE_WINDOW_GROUP = "removeWindowGroup"
RESTORE_WINDOW_GROUP = "restoreWindowGroup"
IMPORT_TABS = "importTabs"
EXPORT_TABS = "exportTabs"

# Older popups still ask for the V2 document under its previous name.
ACTION_ALIASES = {"getSnoozedTabsV2": GET_SNOOZED_TABS}

ACK: dict[str, Any] = {"success": True}

Handler = Callable[[SnoozeRuntime, Mapping[str, Any]], Any]


def validate_message_request(request: object) -> list[str]:
    """Problems with ``request``; empty when it may be dispatched."""
    if not isinstance(request, Mapping):
        return ["Request must be an object"]

    errors: list[str] = []
    action = request.get("action")
    if not isinstance(action, str) or not action:
        return ["Request must have an action property of type string"]

    action = ACTION_ALIASES.get(action, action)
    if action not in MESSAGE_HANDLERS:
        return [f"Unknown action: {action}"]

    if action == SET_SNOOZED_TABS:
        if not request.get("data"):
            errors.append("setSnoozedTabs requires data property")
    elif action in (SET_SETTINGS, IMPORT_TABS):
        if not isinstance(request.get("data"), Mapping):
            errors.append(f"{action} requires data object")
    elif action == SNOOZE:
        if not isinstance(request.get("tab"), Mapping):
            errors.append("snooze requires tab property")
        if not is_number(request.get("popTime")):
            errors.append("snooze requires popTime (number)")
        group_id = request.get("groupId")
        if group_id is not None and not isinstance(group_id, str):
            errors.append("snooze groupId must be a string")
    elif action == REMOVE_SNOOZED_TAB:
        if not isinstance(request.get("tab"), Mapping):
            errors.append("removeSnoozedTab requires tab property")
    elif action in (REMOVE_WINDOW_GROUP, RESTORE_WINDOW_GROUP):
        group_id = request.get("groupId")
        if not isinstance(group_id, str) or not group_id:
            errors.append(f"{action} requires groupId (string)")
    return errors


def _set_snoozed_tabs(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.set_snoozed_tabs(request["data"])
    return ACK


def _set_settings(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.set_settings(request["data"])
    return ACK


def _snooze(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.snooze(request["tab"], request["popTime"], request.get("groupId"))
    return ACK


def _remove_snoozed_tab(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.remove_snoozed_tab(request["tab"])
    return ACK


def _clear_all(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.clear_all()
    return ACK


def _remove_window_group(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.remove_window_group(request["groupId"])
    return ACK


def _restore_window_group(runtime: SnoozeRuntime, request: Mapping[str, Any]) -> Any:
    runtime.restore_window_group(request["groupId"])
    return ACK


MESSAGE_HANDLERS: dict[str, Handler] = {
    GET_SNOOZED_TABS: lambda runtime, request: runtime.get_snoozed_tabs(),
    SET_SNOOZED_TABS: _set_snoozed_tabs,
    GET_SETTINGS: lambda runtime, request: runtime.get_settings().to_mapping(),
    SET_SETTINGS: _set_settings,
    SNOOZE: _snooze,
    REMOVE_SNOOZED_TAB: _remove_snoozed_tab,
    CLEAR_ALL_SNOOZED_TABS: _clear_all,
    REMOVE_WINDOW_GROUP: _remove_window_group,
    RESTORE_WINDOW_GROUP: _restore_window_group,
    IMPORT_TABS: lambda runtime, request: runtime.import_tabs(request["data"]),
    EXPORT_TABS: lambda runtime, request: runtime.export_tabs(),
}


class MessageDispatcher:
    """Routes validated requests to the runtime; failures become ``{"error"}``."""

    __slots__ = ("_runtime",)

    def __init__(self, runtime: SnoozeRuntime) -> None:
        self._runtime = runtime

    def dispatch(self, request: object) -> Any:
        try:
            return self.dispatch_or_raise(request)
        except (SnoozeError, ValueError) as exc:
            logger.info("Request rejected: %s", exc)
            return {"error": str(exc)}

    def dispatch_or_raise(self, request: Any) -> Any:
        errors = validate_message_request(request)
        if errors:
            raise RequestValidationError(errors)
        action = ACTION_ALIASES.get(request["action"], request["action"])
        return MESSAGE_HANDLERS[action](self._runtime, request)
