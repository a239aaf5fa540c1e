"""Thread-safe in-memory store implementations."""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Hashable, Iterator

from ..errors import PersistenceError
from ..schemas import (
    AccessGrant,
    AgreementRecord,
    AuditEntry,
    Conversation,
    Message,
    SuspicionEvent,
)


class KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self.lock_for(key):
            yield


class InMemoryGrantStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._history: dict[tuple[str, str], list[AccessGrant]] = defaultdict(list)
        self._audit: dict[tuple[str, str], list[AuditEntry]] = defaultdict(list)
        self._evidence: dict[tuple[str, str, str], AccessGrant] = {}

    def get(self, employer_id: str, candidate_id: str) -> AccessGrant | None:
        with self._lock:
            versions = self._history.get((employer_id, candidate_id))
            return versions[-1] if versions else None

    def save(self, grant: AccessGrant, *, expected_level: int | None) -> None:
        with self._lock:
            versions = self._history[grant.key]
            current_level = versions[-1].level if versions else None
            if current_level != expected_level:
                raise PersistenceError(
                    f"grant {grant.key} changed concurrently "
                    f"(expected level {expected_level}, found {current_level})"
                )
            versions.append(grant)

    def history(self, employer_id: str, candidate_id: str) -> list[AccessGrant]:
        with self._lock:
            return list(self._history.get((employer_id, candidate_id), []))

    def append_audit(self, entry: AuditEntry) -> None:
        with self._lock:
            self._audit[(entry.employer_id, entry.candidate_id)].append(entry)

    def audit(self, employer_id: str, candidate_id: str) -> list[AuditEntry]:
        with self._lock:
            return list(self._audit.get((employer_id, candidate_id), []))

    def evidence_applied(
        self, employer_id: str, candidate_id: str, evidence_id: str
    ) -> AccessGrant | None:
        with self._lock:
            return self._evidence.get((employer_id, candidate_id, evidence_id))

    def mark_evidence(self, evidence_id: str, grant: AccessGrant) -> None:
        with self._lock:
            self._evidence.setdefault((*grant.key, evidence_id), grant)


class InMemoryAgreementStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, AgreementRecord] = {}

    def get(self, employer_id: str) -> AgreementRecord | None:
        with self._lock:
            return self._records.get(employer_id)

    def save(self, record: AgreementRecord) -> None:
        with self._lock:
            existing = self._records.get(record.employer_id)
            if existing is not None and (
                record.acceptances[: len(existing.acceptances)] != existing.acceptances
                or record.revocations[: len(existing.revocations)] != existing.revocations
            ):
                raise PersistenceError(
                    f"agreement record for {record.employer_id} may only be appended to"
                )
            self._records[record.employer_id] = record


class InMemoryConversationStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: dict[str, Conversation] = {}
        self._by_pair: dict[tuple[str, str], str] = {}
        self._messages: dict[str, list[Message]] = defaultdict(list)
        self._message_ids: set[str] = set()

    def get(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def find(self, employer_id: str, candidate_id: str) -> Conversation | None:
        with self._lock:
            conversation_id = self._by_pair.get((employer_id, candidate_id))
            return self._conversations.get(conversation_id) if conversation_id else None

    def save(self, conversation: Conversation) -> None:
        with self._lock:
            self._conversations[conversation.conversation_id] = conversation
            self._by_pair[conversation.participants()] = conversation.conversation_id

    def append_message(self, message: Message) -> None:
        with self._lock:
            if message.message_id in self._message_ids:
                raise PersistenceError(f"message {message.message_id} already persisted")
            if message.conversation_id not in self._conversations:
                raise PersistenceError(f"conversation {message.conversation_id} not stored")
            self._messages[message.conversation_id].append(message)
            self._message_ids.add(message.message_id)

    def messages(self, conversation_id: str) -> list[Message]:
        with self._lock:
            return list(self._messages.get(conversation_id, []))


class InMemoryEventStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, SuspicionEvent] = {}

    def add(self, event: SuspicionEvent) -> None:
        with self._lock:
            if event.event_id in self._events:
                raise PersistenceError(f"suspicion event {event.event_id} already stored")
            self._events[event.event_id] = event

    def replace(self, event: SuspicionEvent) -> None:
        with self._lock:
            if event.event_id not in self._events:
                raise PersistenceError(f"suspicion event {event.event_id} not stored")
            self._events[event.event_id] = event

    def get(self, event_id: str) -> SuspicionEvent | None:
        with self._lock:
            return self._events.get(event_id)

    def iter_events(self) -> Iterator[SuspicionEvent]:
        with self._lock:
            snapshot = list(self._events.values())
        return iter(snapshot)
