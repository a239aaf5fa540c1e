"""Error taxonomy for the disclosure and enforcement engine."""

from __future__ import annotations

from typing import Iterable


class TalentShieldError(Exception):
    """Base class for engine errors."""


class GatingNotSatisfied(TalentShieldError):
    """Raised when an upgrade is requested before its requirements hold.

    Recoverable: callers should present ``remaining`` to the employer.
    """

    def __init__(self, target_level: int, remaining: Iterable[str]):
        self.target_level = target_level
        self.remaining = list(remaining)
        super().__init__(
            f"Requirements for level {target_level} not met: {', '.join(self.remaining)}"
        )


class InvalidTransition(TalentShieldError):
    """Raised for level transitions that skip, repeat downward or leave 1..4."""

    def __init__(self, current_level: int, target_level: int, reason: str):
        self.current_level = current_level
        self.target_level = target_level
        self.reason = reason
        super().__init__(
            f"Cannot move from level {current_level} to {target_level}: {reason}"
        )


class InvalidStatusTransition(TalentShieldError):
    def __init__(self, event_id: str, current: str, requested: str):
        self.event_id = event_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Suspicion event {event_id} cannot move from {current!r} to {requested!r}"
        )


class ClassifierInconclusive(TalentShieldError):
    """Raised by a classifier that cannot score its input."""


class PersistenceError(TalentShieldError):
    """Raised by stores when a write cannot be made durable."""


class DeliveryUnavailable(TalentShieldError):
    """Message was not delivered because its verdict could not be recorded.

    Retryable: nothing was delivered to the counterparty.
    """

    retryable = True


class UnknownClause(TalentShieldError, KeyError):
    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown agreement clause: {self.args[0]!r}"


class UnknownConversation(TalentShieldError, KeyError):
    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown conversation: {self.args[0]!r}"


class UnknownSuspicionEvent(TalentShieldError, KeyError):
    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Unknown suspicion event: {self.args[0]!r}"


__all__ = [
    "ClassifierInconclusive",
    "DeliveryUnavailable",
    "GatingNotSatisfied",
    "InvalidStatusTransition",
    "InvalidTransition",
    "PersistenceError",
    "TalentShieldError",
    "UnknownClause",
    "UnknownConversation",
    "UnknownSuspicionEvent",
]
