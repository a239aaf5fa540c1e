"""Replay of inbound collaborator events through the engine."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any

import pendulum
import structlog
from pydantic import TypeAdapter, ValidationError

from . import __version__
from .core import (
    AccessLevelPolicy,
    AgreementLedger,
    MessageGate,
    SuspicionMonitor,
    UpgradeResult,
)
from .errors import TalentShieldError
from .schemas import (
    CandidateReportFiled,
    ClauseAccepted,
    InboundEvent,
    OpenConversation,
    PaymentConfirmed,
    SendMessage,
    UpgradeRequested,
)

_EVENT_ADAPTER: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


class ReplayLoadError(ValueError):
    """Raised when an event file contains invalid records."""

    def __init__(self, errors: list[str], partial: list[tuple[int, InboundEvent]]):
        super().__init__("Event loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Event loading failed: {self.errors}"


class EventLoader:
    """Load inbound events from JSON lines, keeping their line numbers."""

    def load(self, path: Path) -> list[tuple[int, InboundEvent]]:
        events: list[tuple[int, InboundEvent]] = []
        errors: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw:
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                if not isinstance(record, dict) or "type" not in record:
                    errors.append(f"line {idx}: missing type field")
                    continue
                try:
                    events.append((idx, _EVENT_ADAPTER.validate_python(record)))
                except ValidationError as exc:
                    errors.append(f"line {idx}: {exc.errors(include_url=False)}")
        if errors:
            raise ReplayLoadError(errors, events)
        return events


class OutputWriter:
    """Persist replay results."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False, default=str))
            handle.write("\n")


class ReplayPipeline:
    """Feeds recorded UI and payment events to the engine in order."""

    def __init__(
        self,
        *,
        ledger: AgreementLedger,
        policy: AccessLevelPolicy,
        gate: MessageGate,
        monitor: SuspicionMonitor,
        loader: EventLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._ledger = ledger
        self._policy = policy
        self._gate = gate
        self._monitor = monitor
        self._events = loader or EventLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        *,
        events_path: Path,
        output_path: Path,
        audit_logger: AuditLogger | None = None,
        stats_window: timedelta | None = None,
    ) -> list[dict]:
        load_errors: list[str] = []
        try:
            events = self._events.load(events_path)
        except ReplayLoadError as exc:
            events = exc.partial
            load_errors.extend(exc.errors)
            self._logger.warning("replay.partial_load", errors=exc.errors)

        results: list[dict] = []
        for line, event in events:
            try:
                outcome = self.dispatch(event)
                entry = {"line": line, "type": event.type, "status": "ok", **outcome}
            except (TalentShieldError, ValueError) as exc:
                entry = {
                    "line": line,
                    "type": event.type,
                    "status": "rejected",
                    "error": type(exc).__name__,
                    "detail": str(exc),
                }
                remaining = getattr(exc, "remaining", None)
                if remaining is not None:
                    entry["remaining"] = list(remaining)
            results.append(entry)

            if audit_logger:
                audit_logger.append(entry)
            self._logger.info(
                "replay.event",
                line=line,
                event_type=event.type,
                status=entry["status"],
            )

        window = stats_window or pendulum.duration(hours=24)
        metadata = {
            "event_count": len(events),
            "errors": load_errors,
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
        }
        payload = {
            "metadata": metadata,
            "results": results,
            "stats": self._monitor.stats(window).model_dump(mode="json"),
            "suspicion_events": [
                event.model_dump(mode="json") for event in self._monitor.list_events()
            ],
        }
        self._writer.write(output_path, payload)
        return results

    def dispatch(self, event: InboundEvent) -> dict[str, Any]:
        """Apply one event and return a JSON-safe summary of the outcome."""
        if isinstance(event, ClauseAccepted):
            acceptance = self._ledger.handle_clause_accepted(event)
            return {
                "employer_id": event.employer_id,
                "clause_id": acceptance.clause_id,
                "accepted_at": acceptance.accepted_at.isoformat(),
            }
        if isinstance(event, PaymentConfirmed):
            result = self._policy.handle_payment_confirmed(event)
            return _upgrade_summary(event.employer_id, event.candidate_id, result)
        if isinstance(event, UpgradeRequested):
            result = self._policy.request_upgrade(
                event.employer_id, event.candidate_id, event.target_level
            )
            return _upgrade_summary(event.employer_id, event.candidate_id, result)
        if isinstance(event, OpenConversation):
            conversation = self._gate.open_conversation(
                event.employer_id,
                event.candidate_id,
                conversation_id=event.conversation_id,
            )
            return {
                "conversation_id": conversation.conversation_id,
                "level": conversation.level_snapshot,
            }
        if isinstance(event, SendMessage):
            result = self._gate.handle_send_message(event)
            return {
                "conversation_id": event.conversation_id,
                **result.sender_view(),
                "risk_level": result.verdict.risk_level,
                "categories": list(result.verdict.category_names),
                "reason": result.reason,
            }
        if isinstance(event, CandidateReportFiled):
            flagged = self._monitor.report_from_candidate(
                event.candidate_id,
                event.employer_id,
                event.report_type,
                event.description,
            )
            return {"event_id": flagged.event_id, "severity": flagged.severity}
        raise ValueError(f"Unsupported event type: {type(event).__name__}")


def _upgrade_summary(employer_id: str, candidate_id: str, result: UpgradeResult) -> dict[str, Any]:
    return {
        "employer_id": employer_id,
        "candidate_id": candidate_id,
        "granted": result.granted,
        "changed": result.changed,
        "level": result.level,
        "reason": result.reason,
    }


__all__ = [
    "AuditLogger",
    "EventLoader",
    "OutputWriter",
    "ReplayLoadError",
    "ReplayPipeline",
]
