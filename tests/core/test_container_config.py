from __future__ import annotations

import pytest
from pydantic import ValidationError

from talentshield.config import ConfigManager
from talentshield.container import create_container
from talentshield.notifications import HTTPAlertNotifier, RecordingNotifier
from talentshield.schemas.config import AppConfig, load_config


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "classifier": {"fuzzy_threshold": 92.0, "extra_platforms": ["slack"]},
            "policy": {"one_time_fee": 65.0, "required_clauses": {2: ["no_poaching"]}},
            "gate": {"interview_min_level": 2},
            "monitor": {"bucket_seconds": 30, "escalation_threshold": 15.0},
        }
    )

    classifier = container.classifier()
    policy = container.policy()
    gate = container.gate()
    monitor = container.monitor()

    assert classifier._config.fuzzy_threshold == 92.0
    assert classifier.classify("ping me on slack").category_names == ("external_platform",)
    assert policy._config.one_time_fee == 65.0
    assert policy.ledger.required_for(2) == ("no_poaching",)
    assert gate._config.interview_min_level == 2
    assert monitor._config.bucket_seconds == 30
    assert monitor._config.escalation_threshold == 15.0


def test_container_shares_singletons():
    container = create_container()

    gate = container.gate()
    projector = container.projector()

    assert gate._policy is projector._policy
    assert gate._monitor is projector._monitor
    assert container.policy().ledger is container.ledger()
    assert isinstance(container.notifier(), RecordingNotifier)
    assert container.pipeline() is not container.pipeline()


def test_overridden_policy_keeps_shared_ledger():
    container = create_container(settings={"policy": {"currency": "EUR"}})

    assert container.policy().ledger is container.ledger()
    assert container.gate()._policy is container.policy()


def test_notification_endpoint_selects_webhook():
    container = create_container(
        settings={"notifications": {"endpoint": "https://alerts.example/hooks", "api_key": "k", "timeout": 2.5}}
    )

    notifier = container.notifier()

    assert isinstance(notifier, HTTPAlertNotifier)
    assert notifier._timeout == 2.5
    assert container.monitor()._notifier is notifier


def test_load_config_validation():
    data = {
        "policy": {"one_time_fee": 60, "required_clauses": {"4": ["success_fee_commitment"]}},
        "monitor": {"bucket_seconds": 120},
    }
    app_config = load_config(data)
    assert isinstance(app_config, AppConfig)
    settings = app_config.to_settings()
    assert settings["policy"]["one_time_fee"] == 60
    assert settings["policy"]["required_clauses"] == {4: ["success_fee_commitment"]}
    assert settings["monitor"] == {"bucket_seconds": 120}
    assert "gate" not in settings


@pytest.mark.parametrize("raw", [None, ["policy"], "policy: 1"])
def test_load_config_rejects_non_mapping(raw):
    with pytest.raises(ValidationError):
        load_config(raw)


def test_load_config_rejects_bad_types():
    with pytest.raises(ValidationError):
        load_config({"gate": {"interview_min_level": "soon"}})


def test_config_manager_reads_yaml(tmp_path):
    (tmp_path / "engine.yaml").write_text(
        "classifier:\n  extra_platforms: [slack, teams]\ngate:\n  contact_min_level: 3\n",
        encoding="utf-8",
    )
    (tmp_path / "empty.yaml").write_text("", encoding="utf-8")
    manager = ConfigManager(tmp_path)

    settings = manager.settings("engine")

    assert settings == {
        "classifier": {"extra_platforms": ["slack", "teams"]},
        "gate": {"contact_min_level": 3},
    }
    assert manager.load("empty") == {}
    assert create_container(settings=settings).gate()._config.contact_min_level == 3
