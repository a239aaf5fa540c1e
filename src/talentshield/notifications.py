"""Out-of-band alerts for suspicion events."""

from __future__ import annotations

import json
import queue
import threading
from http.client import HTTPException
from typing import Any, Protocol, runtime_checkable
from urllib import request

import structlog

from .schemas import SuspicionEvent


@runtime_checkable
class Notifier(Protocol):
    """Receives events that need human attention."""

    def notify(self, event: SuspicionEvent) -> None:
        """Send an alert. Must tolerate repeated calls for the same event."""


def build_alert_payload(event: SuspicionEvent) -> dict[str, Any]:
    """Construct the alert body. Evidence is reduced to its kind."""

    return {
        "event_id": event.event_id,
        "employer_id": event.employer_id,
        "candidate_id": event.candidate_id,
        "activity_type": event.activity_type,
        "severity": event.severity,
        "status": event.status,
        "created_at": event.created_at.isoformat(),
        "evidence_kind": event.evidence.kind if event.evidence is not None else None,
        "description": event.description,
    }


class HTTPAlertNotifier:
    """POSTs alerts to an admin webhook, once per event id and status.

    ``notify`` only queues the alert; a background thread does the HTTP
    call so a slow or failing webhook never holds up the caller. A failed
    send forgets the dedup key so the next notify for that event retries.
    """

    def __init__(
        self,
        endpoint: str | None,
        api_key: str | None = None,
        *,
        timeout: float = 10.0,
        max_pending: int = 1000,
    ):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._sent: set[tuple[str, str]] = set()
        self._pending: queue.Queue[tuple[tuple[str, str], dict[str, Any]] | None] = queue.Queue(
            maxsize=max_pending
        )
        self._worker: threading.Thread | None = None

    def notify(self, event: SuspicionEvent) -> None:
        if not self._endpoint:
            return
        key = (event.event_id, event.status)
        with self._lock:
            if key in self._sent:
                return
            self._sent.add(key)
            self._ensure_worker()
        try:
            self._pending.put_nowait((key, build_alert_payload(event)))
        except queue.Full:
            self._forget(key)
            self._logger.warning("notify.queue_full", event_id=event.event_id)

    def flush(self) -> None:
        """Block until every queued alert has been attempted."""
        self._pending.join()

    def close(self) -> None:
        with self._lock:
            worker, self._worker = self._worker, None
        if worker is None:
            return
        self._pending.put(None)
        worker.join()

    def _ensure_worker(self) -> None:
        if self._worker is None or not self._worker.is_alive():
            self._worker = threading.Thread(target=self._drain, name="alert-notifier", daemon=True)
            self._worker.start()

    def _drain(self) -> None:
        while True:
            item = self._pending.get()
            try:
                if item is None:
                    return
                key, payload = item
                self._send(key, payload)
            finally:
                self._pending.task_done()

    def _send(self, key: tuple[str, str], payload: dict[str, Any]) -> None:
        event_id, status = key
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json", "Idempotency-Key": f"{event_id}:{status}"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = request.Request(self._endpoint, data=data, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self._timeout) as resp:
                resp.read()
        except (OSError, HTTPException, ValueError) as exc:
            self._forget(key)
            self._logger.warning("notify.request_failed", event_id=event_id, error=str(exc))
            return
        self._logger.info("notify.sent", event_id=event_id, severity=payload["severity"])

    def _forget(self, key: tuple[str, str]) -> None:
        with self._lock:
            self._sent.discard(key)


class RecordingNotifier:
    """Keeps alerts in memory. Used by the replay pipeline and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: set[tuple[str, str]] = set()
        self.alerts: list[dict[str, Any]] = []

    def notify(self, event: SuspicionEvent) -> None:
        key = (event.event_id, event.status)
        with self._lock:
            if key in self._seen:
                return
            self._seen.add(key)
            self.alerts.append(build_alert_payload(event))


__all__ = ["HTTPAlertNotifier", "Notifier", "RecordingNotifier", "build_alert_payload"]
