from __future__ import annotations

import datetime as dt

import pytest

from talentshield.errors import PersistenceError
from talentshield.schemas import (
    AccessGrant,
    AgreementRecord,
    ClauseAcceptance,
    Conversation,
    Message,
    SignerInfo,
    SuspicionEvent,
    Verdict,
)
from talentshield.stores import (
    AgreementStore,
    ConversationStore,
    EventStore,
    GrantStore,
    InMemoryAgreementStore,
    InMemoryConversationStore,
    InMemoryEventStore,
    InMemoryGrantStore,
)

NOW = dt.datetime(2025, 1, 6, 9, 0, tzinfo=dt.timezone.utc)


def grant(level: int) -> AccessGrant:
    return AccessGrant(employer_id="E1", candidate_id="C1", level=level, granted_at=NOW)


def test_in_memory_stores_satisfy_protocols():
    assert isinstance(InMemoryGrantStore(), GrantStore)
    assert isinstance(InMemoryAgreementStore(), AgreementStore)
    assert isinstance(InMemoryConversationStore(), ConversationStore)
    assert isinstance(InMemoryEventStore(), EventStore)


def test_grant_store_compare_and_swap():
    store = InMemoryGrantStore()
    store.save(grant(1), expected_level=None)
    store.save(grant(2), expected_level=1)

    with pytest.raises(PersistenceError):
        store.save(grant(3), expected_level=1)
    with pytest.raises(PersistenceError):
        store.save(grant(1), expected_level=None)

    assert store.get("E1", "C1").level == 2
    assert [item.level for item in store.history("E1", "C1")] == [1, 2]
    assert store.get("E1", "C2") is None


def test_grant_store_remembers_first_evidence_use():
    store = InMemoryGrantStore()
    first, second = grant(2), grant(3)

    store.mark_evidence("PAY-1", first)
    store.mark_evidence("PAY-1", second)

    assert store.evidence_applied("E1", "C1", "PAY-1") == first
    assert store.evidence_applied("E1", "C1", "PAY-2") is None
    assert store.evidence_applied("E1", "C2", "PAY-1") is None


def test_agreement_store_is_append_only():
    store = InMemoryAgreementStore()
    acceptance = ClauseAcceptance(clause_id="no_poaching", signer=SignerInfo(name="A"), accepted_at=NOW)
    store.save(AgreementRecord(employer_id="E1", acceptances=(acceptance,)))

    with pytest.raises(PersistenceError):
        store.save(AgreementRecord(employer_id="E1"))

    assert store.get("E1").acceptances == (acceptance,)


def test_conversation_store_persists_messages_once():
    store = InMemoryConversationStore()
    store.save(Conversation(conversation_id="CONV-1", employer_id="E1", candidate_id="C1", created_at=NOW))
    message = Message(
        message_id="M1",
        conversation_id="CONV-1",
        sender_id="C1",
        content="hello",
        sent_at=NOW,
        verdict=Verdict.allowed(),
        status="delivered",
    )

    store.append_message(message)
    with pytest.raises(PersistenceError):
        store.append_message(message)
    with pytest.raises(PersistenceError):
        store.append_message(message.model_copy(update={"message_id": "M2", "conversation_id": "CONV-X"}))

    assert store.messages("CONV-1") == [message]
    assert store.find("E1", "C1").conversation_id == "CONV-1"
    assert store.find("E2", "C1") is None


def test_event_store_add_and_replace():
    store = InMemoryEventStore()
    event = SuspicionEvent(
        event_id="EV-1",
        employer_id="E1",
        candidate_id="C1",
        activity_type="MESSAGE_POLICY_VIOLATION",
        severity="low",
        created_at=NOW,
    )
    store.add(event)

    with pytest.raises(PersistenceError):
        store.add(event)
    with pytest.raises(PersistenceError):
        store.replace(event.model_copy(update={"event_id": "EV-2"}))

    store.replace(event.model_copy(update={"status": "reviewed"}))
    assert store.get("EV-1").status == "reviewed"
    assert [item.event_id for item in store.iter_events()] == ["EV-1"]
