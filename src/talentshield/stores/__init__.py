"""Persistence contracts for grants, agreements, conversations and events."""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

from ..schemas import (
    AccessGrant,
    AgreementRecord,
    AuditEntry,
    Conversation,
    Message,
    SuspicionEvent,
)
from .memory import (
    InMemoryAgreementStore,
    InMemoryConversationStore,
    InMemoryEventStore,
    InMemoryGrantStore,
    KeyedLocks,
)


@runtime_checkable
class GrantStore(Protocol):
    """Grant storage keyed by (employer_id, candidate_id).

    Superseded grants are kept in history; nothing is deleted.
    """

    def get(self, employer_id: str, candidate_id: str) -> AccessGrant | None:
        """Return the current grant, if any."""

    def save(self, grant: AccessGrant, *, expected_level: int | None) -> None:
        """Store a new current grant, failing if the stored level moved."""

    def history(self, employer_id: str, candidate_id: str) -> list[AccessGrant]:
        """Return all grant versions, oldest first."""

    def append_audit(self, entry: AuditEntry) -> None:
        """Append an audit entry."""

    def audit(self, employer_id: str, candidate_id: str) -> list[AuditEntry]:
        """Return audit entries for a pair."""

    def evidence_applied(
        self, employer_id: str, candidate_id: str, evidence_id: str
    ) -> AccessGrant | None:
        """Return the grant an evidence id produced for this pair, if any."""

    def mark_evidence(self, evidence_id: str, grant: AccessGrant) -> None:
        """Record that an evidence id produced the given grant for its pair."""


@runtime_checkable
class AgreementStore(Protocol):
    def get(self, employer_id: str) -> AgreementRecord | None:
        """Return the employer's agreement record."""

    def save(self, record: AgreementRecord) -> None:
        """Replace the stored record with an extended copy."""


@runtime_checkable
class ConversationStore(Protocol):
    def get(self, conversation_id: str) -> Conversation | None:
        """Return a conversation by id."""

    def find(self, employer_id: str, candidate_id: str) -> Conversation | None:
        """Return the conversation for a pair."""

    def save(self, conversation: Conversation) -> None:
        """Create or update conversation metadata."""

    def append_message(self, message: Message) -> None:
        """Persist a message. Must raise PersistenceError if not durable."""

    def messages(self, conversation_id: str) -> list[Message]:
        """Return messages in submission order."""


@runtime_checkable
class EventStore(Protocol):
    def add(self, event: SuspicionEvent) -> None:
        """Store a new event."""

    def replace(self, event: SuspicionEvent) -> None:
        """Store an updated copy of an existing event."""

    def get(self, event_id: str) -> SuspicionEvent | None:
        """Return an event by id."""

    def iter_events(self) -> Iterator[SuspicionEvent]:
        """Iterate events in creation order."""


__all__ = [
    "AgreementStore",
    "ConversationStore",
    "EventStore",
    "GrantStore",
    "InMemoryAgreementStore",
    "InMemoryConversationStore",
    "InMemoryEventStore",
    "InMemoryGrantStore",
    "KeyedLocks",
]
