"""Message gate: classify, persist, then deliver or withhold."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import pendulum
import structlog

from ..errors import (
    ClassifierInconclusive,
    DeliveryUnavailable,
    PersistenceError,
    UnknownConversation,
)
from ..schemas import (
    ClassifierEvidence,
    Conversation,
    GateResult,
    Message,
    SendMessage,
    SuspicionReport,
    Verdict,
)
from ..schemas.messaging import FEATURE_LOCKED_NOTICE, GENERIC_BLOCK_NOTICE, MessageType
from ..stores import ConversationStore, InMemoryConversationStore, KeyedLocks
from .classifier import Classifier
from .monitor import MESSAGE_SENT, SuspicionMonitor
from .policy import AccessLevelPolicy

logger = structlog.get_logger(__name__)

MESSAGE_POLICY_VIOLATION = "MESSAGE_POLICY_VIOLATION"
CONTACT_EXCHANGE_BELOW_LEVEL = "CONTACT_EXCHANGE_BELOW_LEVEL"


@dataclass
class MessageGateConfig:
    """Minimum access levels for gated message actions."""

    interview_min_level: int = 3
    contact_min_level: int = 4


class MessageGate:
    """Single entry point for every outbound message.

    Order per submission: classify, snapshot the access level, persist the
    message with its verdict, then deliver. A message whose verdict cannot
    be stored is never delivered.
    """

    def __init__(
        self,
        classifier: Classifier,
        policy: AccessLevelPolicy,
        monitor: SuspicionMonitor,
        *,
        store: ConversationStore | None = None,
        config: MessageGateConfig | None = None,
        on_deliver: Callable[[Message], None] | None = None,
        now_provider: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._classifier = classifier
        self._policy = policy
        self._monitor = monitor
        self._store = store or InMemoryConversationStore()
        self._config = config or MessageGateConfig()
        self._on_deliver = on_deliver
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._locks = KeyedLocks()

    def open_conversation(
        self,
        employer_id: str,
        candidate_id: str,
        *,
        conversation_id: str | None = None,
    ) -> Conversation:
        """Return the pair's conversation, creating it on first contact."""
        with self._locks.hold((employer_id, candidate_id)):
            existing = self._store.find(employer_id, candidate_id)
            if existing is not None:
                return existing
            grant = self._policy.ensure_grant(employer_id, candidate_id)
            conversation = Conversation(
                conversation_id=conversation_id or self._new_id(),
                employer_id=employer_id,
                candidate_id=candidate_id,
                created_at=self._now(),
                level_snapshot=grant.level,
            )
            self._store.save(conversation)
        logger.info(
            "gate.conversation_opened",
            conversation_id=conversation.conversation_id,
            employer_id=employer_id,
            candidate_id=candidate_id,
        )
        return conversation

    def conversation(self, conversation_id: str) -> Conversation:
        conversation = self._store.get(conversation_id)
        if conversation is None:
            raise UnknownConversation(conversation_id)
        return conversation

    def messages(self, conversation_id: str) -> list[Message]:
        self.conversation(conversation_id)
        return self._store.messages(conversation_id)

    def submit(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        message_type: MessageType = "text",
    ) -> GateResult:
        conversation = self.conversation(conversation_id)
        if sender_id not in conversation.participants():
            raise ValueError(f"{sender_id} is not a participant of {conversation_id}")
        message_id = self._new_id()

        verdict = self._classify(text, conversation_id=conversation_id, message_id=message_id)
        conversation = self._refresh_level(conversation)
        locked_reason = self._feature_lock(conversation, message_type)

        if verdict.should_block:
            status = "blocked"
        elif locked_reason is not None:
            status = "withheld"
        else:
            status = "delivered"

        message = Message(
            message_id=message_id,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=text if isinstance(text, str) else "",
            sent_at=self._now(),
            message_type=message_type,
            verdict=verdict,
            status=status,
        )
        try:
            self._store.append_message(message)
        except PersistenceError as exc:
            logger.error(
                "gate.persist_failed",
                conversation_id=conversation_id,
                message_id=message_id,
                error=str(exc),
            )
            raise DeliveryUnavailable(
                f"message {message_id} was not delivered, verdict could not be recorded"
            ) from exc

        employer_id, candidate_id = conversation.participants()
        if status == "delivered":
            if self._on_deliver is not None:
                self._on_deliver(message)
            if sender_id == employer_id:
                self._monitor.track_activity(employer_id, candidate_id, MESSAGE_SENT)
            logger.info("gate.delivered", conversation_id=conversation_id, message_id=message_id)
            return GateResult(delivered=True, verdict=verdict, message_id=message_id)

        if status == "blocked":
            self._monitor.report(
                SuspicionReport(
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    activity_type=MESSAGE_POLICY_VIOLATION,
                    severity=verdict.risk_level if verdict.risk_level != "none" else "medium",
                    evidence=ClassifierEvidence(
                        message_id=message_id,
                        conversation_id=conversation_id,
                        categories=verdict.category_names,
                        confidence=verdict.confidence,
                        masked=tuple(
                            sample for item in verdict.categories for sample in item.masked
                        ),
                    ),
                    actor_id=sender_id,
                    description="Message contains off-platform contact details",
                )
            )
            logger.warning(
                "gate.blocked",
                conversation_id=conversation_id,
                message_id=message_id,
                sender_id=sender_id,
                categories=list(verdict.category_names),
                risk_level=verdict.risk_level,
            )
            return GateResult(
                delivered=False,
                verdict=verdict,
                message_id=message_id,
                notice=GENERIC_BLOCK_NOTICE,
                reason="classifier",
            )

        if (
            message_type == "contact_exchange"
            and conversation.level_snapshot < self._config.contact_min_level
        ):
            self._monitor.report(
                SuspicionReport(
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    activity_type=CONTACT_EXCHANGE_BELOW_LEVEL,
                    severity="medium",
                    actor_id=sender_id,
                    description=f"Contact exchange attempted at level {conversation.level_snapshot}",
                )
            )
        logger.info(
            "gate.withheld",
            conversation_id=conversation_id,
            message_id=message_id,
            message_type=message_type,
            reason=locked_reason,
        )
        return GateResult(
            delivered=False,
            verdict=verdict,
            message_id=message_id,
            notice=FEATURE_LOCKED_NOTICE,
            reason=locked_reason,
        )

    def handle_send_message(self, event: SendMessage) -> GateResult:
        return self.submit(event.conversation_id, event.sender_id, event.text, event.message_type)

    def _classify(self, text: str, *, conversation_id: str, message_id: str) -> Verdict:
        try:
            return self._classifier.classify(text)
        except ClassifierInconclusive as exc:
            logger.warning(
                "classifier.inconclusive",
                conversation_id=conversation_id,
                message_id=message_id,
                error=str(exc),
            )
            return Verdict.allowed(inconclusive=True)

    def _refresh_level(self, conversation: Conversation) -> Conversation:
        level = self._policy.current_level(*conversation.participants())
        if level == conversation.level_snapshot:
            return conversation
        refreshed = conversation.model_copy(update={"level_snapshot": level})
        self._store.save(refreshed)
        return refreshed

    def _feature_lock(self, conversation: Conversation, message_type: MessageType) -> str | None:
        level = conversation.level_snapshot
        if message_type == "interview_request" and level < self._config.interview_min_level:
            return f"interview_request_requires_level_{self._config.interview_min_level}"
        if message_type == "contact_exchange":
            if level < self._config.contact_min_level:
                return f"contact_exchange_requires_level_{self._config.contact_min_level}"
            if self._monitor.is_restricted(*conversation.participants()):
                return "pair_restricted"
        return None


__all__ = [
    "CONTACT_EXCHANGE_BELOW_LEVEL",
    "MESSAGE_POLICY_VIOLATION",
    "MessageGate",
    "MessageGateConfig",
]
