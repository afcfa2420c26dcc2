"""Tiny HTTP trigger for on-demand runs.

Endpoints:
  /, /health  liveness
  /run        run one monitoring pass (409 while another is in progress)
  /status     last run summary as JSON
"""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional
from urllib.parse import urlparse

from .monitor import RunReport

logger = logging.getLogger(__name__)

RunCallback = Callable[[], RunReport]
SavedAt = Callable[[], Optional[str]]


class TriggerHandler(BaseHTTPRequestHandler):
    server: "TriggerServer"

    def log_message(self, format, *args):
        """Route access logs through logging instead of stderr."""
        logger.info("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        path = urlparse(self.path).path
        if path in ("/", "/health"):
            self._send_text(200, "Restock monitor is ready.")
        elif path == "/run":
            self._handle_run()
        elif path == "/status":
            self._send_json(200, self.server.status())
        else:
            self._send_text(404, "Not found")

    def _handle_run(self):
        trigger = self.server
        if not trigger.run_lock.acquire(blocking=False):
            self._send_text(409, "A run is already in progress.")
            return
        try:
            report = trigger.run_callback()
            trigger.last_report = report
            trigger.last_error = None
        except Exception as e:
            logger.exception("Triggered run failed")
            trigger.last_error = str(e) or e.__class__.__name__
            self._send_text(500, "Run failed.")
            return
        finally:
            trigger.run_lock.release()
        self._send_json(200, report.summary())

    def _send_text(self, status: int, body: str):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_json(self, status: int, payload: dict):
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


class TriggerServer(ThreadingHTTPServer):
    """HTTP server that serialises runs behind a lock."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], run_callback: RunCallback, saved_at: Optional[SavedAt] = None):
        super().__init__(address, TriggerHandler)
        self.run_callback = run_callback
        self.saved_at = saved_at
        self.run_lock = threading.Lock()
        self.last_report: Optional[RunReport] = None
        self.last_error: Optional[str] = None

    def status(self) -> dict:
        return {
            "running": self.run_lock.locked(),
            "last_run": self.last_report.summary() if self.last_report else None,
            "last_error": self.last_error,
            "baseline_saved_at": self._baseline_saved_at(),
        }

    def _baseline_saved_at(self) -> Optional[str]:
        if self.saved_at is None:
            return None
        try:
            return self.saved_at()
        except Exception:
            logger.warning("Could not read ledger save time", exc_info=True)
            return None


def serve(host: str, port: int, run_callback: RunCallback, saved_at: Optional[SavedAt] = None) -> None:
    """Serve until interrupted."""
    httpd = TriggerServer((host, port), run_callback, saved_at)
    logger.info("Trigger server listening on http://%s:%d", host, httpd.server_address[1])
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Stopping trigger server")
    finally:
        httpd.server_close()


__all__ = ["TriggerServer", "TriggerHandler", "serve"]
