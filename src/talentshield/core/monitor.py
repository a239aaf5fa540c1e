"""Suspicion tracking, scoring and escalation."""

from __future__ import annotations

import threading
import uuid
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable

import pendulum
import structlog

from ..errors import InvalidStatusTransition, UnknownSuspicionEvent
from ..schemas import (
    ActivityEvidence,
    EventFilter,
    ReportEvidence,
    StatusChange,
    SuspicionEvent,
    SuspicionReport,
    WindowStats,
)
from ..schemas.monitoring import SEVERITIES, EventStatus
from ..stores import EventStore, InMemoryEventStore

if TYPE_CHECKING:
    from ..notifications import Notifier

logger = structlog.get_logger(__name__)

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "flagged": frozenset({"reviewed", "escalated"}),
    "reviewed": frozenset({"resolved"}),
    "resolved": frozenset(),
    "escalated": frozenset(),
}

EXCESSIVE_PROFILE_VIEWING = "EXCESSIVE_PROFILE_VIEWING"
MESSAGE_SENT = "MESSAGE_SENT"
PROFILE_VIEWED = "PROFILE_VIEWED"
SYSTEM_REVIEWER = "system"

_ALERT_SEVERITIES = frozenset({"critical", "high"})


@dataclass
class SuspicionMonitorConfig:
    """Configuration for aggregation, scoring and pattern detection."""

    bucket_seconds: int = 60
    severity_weights: dict[str, float] = field(
        default_factory=lambda: {"low": 1.0, "medium": 3.0, "high": 6.0, "critical": 10.0}
    )
    escalation_threshold: float = 20.0
    excessive_view_threshold: int = 10
    activity_window_hours: float = 24.0
    top_activity_types: int = 5
    top_employers: int = 10
    # buckets older than this are dropped; stats windows beyond it undercount
    retention_hours: float = 168.0


@dataclass(slots=True)
class _Bucket:
    entries: list[tuple[float, str, str, str]] = field(default_factory=list)
    severity: Counter = field(default_factory=Counter)
    activity: Counter = field(default_factory=Counter)
    employers: Counter = field(default_factory=Counter)

    def add(self, timestamp: float, event: SuspicionEvent) -> None:
        self.entries.append((timestamp, event.severity, event.activity_type, event.employer_id))
        self.severity[event.severity] += 1
        self.activity[event.activity_type] += 1
        self.employers[event.employer_id] += 1


class SuspicionMonitor:
    """Records suspicion events and serves windowed statistics.

    Events are indexed into fixed-width time buckets, globally and per
    employer. A stats query walks only the buckets that overlap the window
    and filters entries one by one only in the two boundary buckets.
    """

    def __init__(
        self,
        *,
        store: EventStore | None = None,
        config: SuspicionMonitorConfig | None = None,
        notifier: Notifier | None = None,
        now_provider: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store or InMemoryEventStore()
        self._config = config or SuspicionMonitorConfig()
        self._notifier = notifier
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._lock = threading.RLock()
        self._buckets: dict[int, _Bucket] = {}
        self._employer_buckets: dict[str, dict[int, _Bucket]] = defaultdict(dict)
        self._bucket_order: deque[tuple[int, str | None]] = deque()
        self._pair_scores: Counter = Counter()
        self._employer_scores: Counter = Counter()
        self._restricting: dict[tuple[str, str], set[str]] = defaultdict(set)
        self._activity: dict[tuple[str, str], deque[tuple[float, str]]] = defaultdict(deque)

    # reporting

    def report(self, report: SuspicionReport) -> SuspicionEvent:
        now = self._now()
        pair = (report.employer_id, report.candidate_id)
        with self._lock:
            event = SuspicionEvent(
                event_id=self._new_id(),
                created_at=now,
                **dict(report),
            )
            self._store.add(event)
            self._index(event)

            weight = self._config.severity_weights.get(event.severity, 0.0)
            previous = self._pair_scores[pair]
            self._pair_scores[pair] = previous + weight
            self._employer_scores[report.employer_id] += weight
            if event.severity == "critical":
                self._restricting[pair].add(event.event_id)

            threshold = self._config.escalation_threshold
            if previous < threshold <= self._pair_scores[pair]:
                event = self._transition(
                    event,
                    "escalated",
                    reviewer=SYSTEM_REVIEWER,
                    note=f"risk score {self._pair_scores[pair]:g} reached {threshold:g}",
                )
                logger.warning(
                    "monitor.auto_escalated",
                    event_id=event.event_id,
                    employer_id=event.employer_id,
                    candidate_id=event.candidate_id,
                    risk_score=self._pair_scores[pair],
                )

        logger.warning(
            "monitor.flagged",
            event_id=event.event_id,
            employer_id=event.employer_id,
            candidate_id=event.candidate_id,
            activity_type=event.activity_type,
            severity=event.severity,
        )
        if event.severity in _ALERT_SEVERITIES or event.status == "escalated":
            self._alert(event)
        return event

    def report_from_candidate(
        self,
        candidate_id: str,
        employer_id: str,
        report_type: str,
        description: str = "",
    ) -> SuspicionEvent:
        """File a candidate complaint. The pair stays restricted until it is resolved."""
        event = self.report(
            SuspicionReport(
                employer_id=employer_id,
                candidate_id=candidate_id,
                activity_type=f"CANDIDATE_REPORT_{report_type.upper()}",
                severity="high",
                evidence=ReportEvidence(
                    reporter_id=candidate_id,
                    report_type=report_type,
                    description=description,
                ),
                actor_id=candidate_id,
                description=f"Candidate reported: {description}" if description else "",
            )
        )
        with self._lock:
            self._restricting[(employer_id, candidate_id)].add(event.event_id)
        return event

    def track_activity(self, employer_id: str, candidate_id: str, activity: str) -> SuspicionEvent | None:
        """Record an employer action and flag engagement-free profile harvesting."""
        now = self._now()
        timestamp = now.timestamp()
        horizon = timestamp - self._config.activity_window_hours * 3600
        pair = (employer_id, candidate_id)
        with self._lock:
            log = self._activity[pair]
            log.append((timestamp, activity))
            while log and log[0][0] < horizon:
                log.popleft()
            if activity != PROFILE_VIEWED:
                return None
            views = sum(1 for _, kind in log if kind == PROFILE_VIEWED)
            messages = sum(1 for _, kind in log if kind == MESSAGE_SENT)
            if messages or views != self._config.excessive_view_threshold + 1:
                return None
        return self.report(
            SuspicionReport(
                employer_id=employer_id,
                candidate_id=candidate_id,
                activity_type=EXCESSIVE_PROFILE_VIEWING,
                severity="high",
                evidence=ActivityEvidence(
                    pattern=EXCESSIVE_PROFILE_VIEWING,
                    counts={"profile_views": views, "messages_sent": messages},
                    window_hours=self._config.activity_window_hours,
                ),
                actor_id=employer_id,
                description="Multiple profile views without any engagement",
            )
        )

    # review workflow

    def get_event(self, event_id: str) -> SuspicionEvent:
        event = self._store.get(event_id)
        if event is None:
            raise UnknownSuspicionEvent(event_id)
        return event

    def update_status(
        self,
        event_id: str,
        new_status: EventStatus,
        *,
        reviewer: str | None = None,
        note: str | None = None,
    ) -> SuspicionEvent:
        with self._lock:
            event = self.get_event(event_id)
            updated = self._transition(event, new_status, reviewer=reviewer, note=note)
            if new_status == "resolved":
                self._restricting[(event.employer_id, event.candidate_id)].discard(event_id)
        logger.info(
            "monitor.status_changed",
            event_id=event_id,
            from_status=event.status,
            to_status=new_status,
            reviewer=reviewer,
        )
        if new_status == "escalated":
            self._alert(updated)
        return updated

    def list_events(self, event_filter: EventFilter | None = None) -> list[SuspicionEvent]:
        event_filter = event_filter or EventFilter()
        events = [event for event in self._store.iter_events() if event_filter.matches(event)]
        events.sort(key=lambda event: event.created_at)
        if event_filter.limit is not None:
            events = events[: event_filter.limit]
        return events

    # scoring

    def risk_score(self, employer_id: str, candidate_id: str | None = None) -> float:
        with self._lock:
            if candidate_id is None:
                return float(self._employer_scores[employer_id])
            return float(self._pair_scores[(employer_id, candidate_id)])

    def is_restricted(self, employer_id: str, candidate_id: str) -> bool:
        """True while a critical event or candidate report for the pair is unresolved."""
        with self._lock:
            return bool(self._restricting.get((employer_id, candidate_id)))

    # statistics

    def stats(
        self,
        window: timedelta | float,
        *,
        employer_id: str | None = None,
    ) -> WindowStats:
        seconds = window.total_seconds() if isinstance(window, timedelta) else float(window)
        if seconds <= 0:
            raise ValueError("window must be positive")
        end = self._now().timestamp()
        start = end - seconds
        width = self._config.bucket_seconds
        first, last = int(start // width), int(end // width)

        severity: Counter = Counter()
        activity: Counter = Counter()
        employers: Counter = Counter()
        with self._lock:
            buckets = self._buckets if employer_id is None else self._employer_buckets.get(employer_id, {})
            for index in range(first, last + 1):
                bucket = buckets.get(index)
                if bucket is None:
                    continue
                if index == first or index == last:
                    for timestamp, level, kind, owner in bucket.entries:
                        if start <= timestamp <= end:
                            severity[level] += 1
                            activity[kind] += 1
                            employers[owner] += 1
                else:
                    severity.update(bucket.severity)
                    activity.update(bucket.activity)
                    employers.update(bucket.employers)

        return WindowStats(
            window_seconds=seconds,
            total=sum(severity.values()),
            critical=severity["critical"],
            high=severity["high"],
            by_severity={level: severity[level] for level in SEVERITIES},
            top_activity_types=activity.most_common(self._config.top_activity_types),
            top_employers=employers.most_common(self._config.top_employers),
        )

    def _index(self, event: SuspicionEvent) -> None:
        timestamp = event.created_at.timestamp()
        index = int(timestamp // self._config.bucket_seconds)
        if index not in self._buckets:
            self._buckets[index] = _Bucket()
            self._bucket_order.append((index, None))
        self._buckets[index].add(timestamp, event)
        owned = self._employer_buckets[event.employer_id]
        if index not in owned:
            owned[index] = _Bucket()
            self._bucket_order.append((index, event.employer_id))
        owned[index].add(timestamp, event)
        self._prune(timestamp)

    def _prune(self, now: float) -> None:
        horizon = int((now - self._config.retention_hours * 3600) // self._config.bucket_seconds)
        order = self._bucket_order
        while order and order[0][0] < horizon:
            index, employer_id = order.popleft()
            if employer_id is None:
                self._buckets.pop(index, None)
                continue
            owned = self._employer_buckets.get(employer_id)
            if owned is None:
                continue
            owned.pop(index, None)
            if not owned:
                del self._employer_buckets[employer_id]

    def _transition(
        self,
        event: SuspicionEvent,
        new_status: str,
        *,
        reviewer: str | None,
        note: str | None,
    ) -> SuspicionEvent:
        if new_status not in STATUS_TRANSITIONS.get(event.status, frozenset()):
            raise InvalidStatusTransition(event.event_id, event.status, new_status)
        change = StatusChange(
            from_status=event.status,
            to_status=new_status,
            changed_at=self._now(),
            reviewer=reviewer,
            note=note,
        )
        updated = event.model_copy(
            update={"status": new_status, "status_history": event.status_history + (change,)}
        )
        self._store.replace(updated)
        return updated

    def _alert(self, event: SuspicionEvent) -> None:
        if self._notifier is None:
            return
        # the event is already stored at this point
        try:
            self._notifier.notify(event)
        except Exception:
            logger.exception("monitor.alert_failed", event_id=event.event_id, severity=event.severity)


__all__ = [
    "EXCESSIVE_PROFILE_VIEWING",
    "MESSAGE_SENT",
    "STATUS_TRANSITIONS",
    "SuspicionMonitor",
    "SuspicionMonitorConfig",
]
