"""Dependency injection container for the enforcement engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import (
    AccessLevelPolicy,
    AccessPolicyConfig,
    AgreementLedger,
    MessageGate,
    MessageGateConfig,
    PatternClassifier,
    PatternClassifierConfig,
    ProfileProjector,
    SuspicionMonitor,
    SuspicionMonitorConfig,
)
from .notifications import HTTPAlertNotifier, RecordingNotifier
from .pipeline import ReplayPipeline
from .stores import (
    InMemoryAgreementStore,
    InMemoryConversationStore,
    InMemoryEventStore,
    InMemoryGrantStore,
)


class EngineContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    grant_store = providers.Singleton(InMemoryGrantStore)
    agreement_store = providers.Singleton(InMemoryAgreementStore)
    conversation_store = providers.Singleton(InMemoryConversationStore)
    event_store = providers.Singleton(InMemoryEventStore)

    notifier = providers.Singleton(RecordingNotifier)

    classifier = providers.Singleton(PatternClassifier)

    ledger = providers.Singleton(
        AgreementLedger,
        store=agreement_store,
    )

    policy = providers.Singleton(
        AccessLevelPolicy,
        ledger=ledger,
        store=grant_store,
    )

    monitor = providers.Singleton(
        SuspicionMonitor,
        store=event_store,
        notifier=notifier,
    )

    projector = providers.Singleton(
        ProfileProjector,
        policy=policy,
        monitor=monitor,
    )

    gate = providers.Singleton(
        MessageGate,
        classifier=classifier,
        policy=policy,
        monitor=monitor,
        store=conversation_store,
    )

    pipeline = providers.Factory(
        ReplayPipeline,
        ledger=ledger,
        policy=policy,
        gate=gate,
        monitor=monitor,
    )


def create_container(*, settings: dict | None = None) -> EngineContainer:
    """Instantiate container with optional overrides."""

    container = EngineContainer()

    if not settings:
        return container

    policy_settings = dict(settings.get("policy", {})) if isinstance(settings, dict) else {}
    required_clauses = policy_settings.pop("required_clauses", None)
    if required_clauses is not None:
        container.ledger.override(
            providers.Singleton(
                AgreementLedger,
                store=container.agreement_store,
                required_clauses=required_clauses,
            )
        )

    if "classifier" in settings:
        classifier_config = PatternClassifierConfig(**settings["classifier"])
        container.classifier.override(
            providers.Singleton(PatternClassifier, config=classifier_config)
        )

    if policy_settings:
        policy_config = AccessPolicyConfig(**policy_settings)
        container.policy.override(
            providers.Singleton(
                AccessLevelPolicy,
                ledger=container.ledger,
                store=container.grant_store,
                config=policy_config,
            )
        )

    if "gate" in settings:
        gate_config = MessageGateConfig(**settings["gate"])
        container.gate.override(
            providers.Singleton(
                MessageGate,
                classifier=container.classifier,
                policy=container.policy,
                monitor=container.monitor,
                store=container.conversation_store,
                config=gate_config,
            )
        )

    if "monitor" in settings:
        monitor_config = SuspicionMonitorConfig(**settings["monitor"])
        container.monitor.override(
            providers.Singleton(
                SuspicionMonitor,
                store=container.event_store,
                notifier=container.notifier,
                config=monitor_config,
            )
        )

    notification_settings = settings.get("notifications", {})
    if notification_settings.get("endpoint"):
        container.notifier.override(
            providers.Singleton(
                HTTPAlertNotifier,
                notification_settings["endpoint"],
                notification_settings.get("api_key"),
                timeout=notification_settings.get("timeout", 10.0),
            )
        )

    return container
