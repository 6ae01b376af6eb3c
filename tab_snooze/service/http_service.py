"""Loopback HTTP transport for the snooze request contract."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from threading import RLock
from typing import Any
from urllib.parse import urlparse

from tab_snooze.application.cache import StoreMirror
from tab_snooze.application.messages import MessageDispatcher
from tab_snooze.application.runtime import SnoozeRuntime

logger = logging.getLogger(__name__)

_BUTTON_RE = re.compile(r"^/api/notifications/(?P<notification_id>[^/]+)/buttons/(?P<index>\d+)$")
_CLOSE_RE = re.compile(r"^/api/notifications/(?P<notification_id>[^/]+)/close$")


class _SnoozeThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


class SnoozeHttpService:
    """Owns the request endpoint lifecycle."""

    __slots__ = (
        "runtime",
        "dispatcher",
        "mirror",
        "host",
        "port",
        "_httpd",
        "_running",
        "_lock",
    )

    def __init__(
        self,
        *,
        runtime: SnoozeRuntime,
        host: str,
        port: int,
        mirror: StoreMirror | None = None,
    ) -> None:
        self.runtime = runtime
        self.dispatcher = MessageDispatcher(runtime)
        self.mirror = mirror
        self.host = host
        self.port = port

        self._httpd: _SnoozeThreadingHTTPServer | None = None
        self._running = False
        self._lock = RLock()

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def bind(self) -> int:
        """Open the listening socket; port 0 picks a free port."""
        with self._lock:
            if self._httpd is None:
                handler = build_request_handler(self)
                self._httpd = _SnoozeThreadingHTTPServer((self.host, self.port), handler)
                self.port = self._httpd.server_address[1]
            return self.port

    def serve_forever(self) -> None:
        self.bind()
        with self._lock:
            self._running = True
            httpd = self._httpd

        logger.info("Snooze endpoint ready at %s", self.base_url)
        try:
            httpd.serve_forever(poll_interval=0.5)
        finally:
            with self._lock:
                self._running = False

    def stop(self) -> None:
        with self._lock:
            httpd = self._httpd
            self._httpd = None
            running = self._running

        if httpd is not None:
            if running:
                httpd.shutdown()
            httpd.server_close()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def health_payload(self) -> dict[str, Any]:
        if self.mirror is not None:
            count = len(self.mirror.get("items") or {})
        else:
            count = len(self.runtime.get_snoozed_tabs()["items"])
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "snoozed": count,
            "wake_state": self.runtime.wake.state.value,
        }


def build_request_handler(service: SnoozeHttpService) -> type[BaseHTTPRequestHandler]:
    """Bind service instance into a request handler class."""

    class SnoozeRequestHandler(BaseHTTPRequestHandler):
        server_version = "TabSnoozeHTTP/1.0"

        def do_GET(self) -> None:  # noqa: N802
            path = urlparse(self.path).path

            try:
                if path == "/api/health":
                    self._write_json(service.health_payload())
                    return

                if path == "/api/snoozed":
                    self._write_json(service.runtime.get_snoozed_tabs())
                    return

                if path == "/api/settings":
                    self._write_json(service.runtime.get_settings().to_mapping())
                    return

                self._write_error(404, "Unknown endpoint")
            except KeyError as exc:
                self._write_error(404, str(exc))
            except ValueError as exc:
                self._write_error(400, str(exc))
            except Exception as exc:  # pragma: no cover - safety net for manual runs
                logger.exception("GET %s failed", path)
                self._write_error(500, f"Internal error: {exc}")

        def do_POST(self) -> None:  # noqa: N802
            path = urlparse(self.path).path

            try:
                if path == "/api/messages":
                    result = service.dispatcher.dispatch(self._read_json_body())
                    failed = isinstance(result, dict) and "error" in result and not result.get("success")
                    self._write_json(result, status=400 if failed else 200)
                    return

                button_match = _BUTTON_RE.match(path)
                if button_match:
                    resolution = service.runtime.respond(
                        button_match.group("notification_id"),
                        int(button_match.group("index")),
                    )
                    self._write_resolution(button_match.group("notification_id"), resolution)
                    return

                close_match = _CLOSE_RE.match(path)
                if close_match:
                    resolution = service.runtime.respond(close_match.group("notification_id"), None)
                    self._write_resolution(close_match.group("notification_id"), resolution)
                    return

                self._write_error(404, "Unknown endpoint")
            except KeyError as exc:
                self._write_error(404, str(exc))
            except ValueError as exc:
                self._write_error(400, str(exc))
            except Exception as exc:  # pragma: no cover - safety net for manual runs
                logger.exception("POST %s failed", path)
                self._write_error(500, f"Internal error: {exc}")

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("%s - %s", self.address_string(), format % args)

        def _read_json_body(self) -> Any:
            content_length = int(self.headers.get("Content-Length", "0"))
            if content_length <= 0:
                return {}
            raw = self.rfile.read(content_length)
            if not raw:
                return {}
            return json.loads(raw.decode("utf-8"))

        def _write_resolution(self, notification_id: str, resolution: Any) -> None:
            if resolution is None:
                self._write_error(404, f"No pending batch for notification {notification_id}")
                return
            self._write_json(
                {
                    "notificationId": resolution.notification_id,
                    "action": resolution.action.value,
                    "ids": [item.id for item in resolution.items],
                    "failedUrls": resolution.failed_urls,
                }
            )

        def _write_json(self, payload: Any, status: int = 200) -> None:
            encoded = json.dumps(payload).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(encoded)))
            self.end_headers()
            self.wfile.write(encoded)

        def _write_error(self, status: int, message: str) -> None:
            self._write_json({"error": message}, status=status)

    return SnoozeRequestHandler
