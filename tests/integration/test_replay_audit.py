from __future__ import annotations

import json
from pathlib import Path

import pytest

from talentshield.container import create_container
from talentshield.core.ledger import SKILLS_ACCESS_CLAUSES
from talentshield.pipeline import AuditLogger, EventLoader, ReplayLoadError

SIGNER = {"name": "Priya Shah", "position": "Recruitment Lead"}


def write_events(path: Path, events: list[dict]) -> None:
    path.write_text("\n".join(json.dumps(event) for event in events) + "\n", encoding="utf-8")


def test_pipeline_writes_audit_log_without_message_text(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    output_path = tmp_path / "results.json"
    audit_path = tmp_path / "audit" / "audit.jsonl"
    write_events(
        events_path,
        [
            {"type": "open_conversation", "employer_id": "E7", "candidate_id": "C7", "conversation_id": "CONV-7"},
            {
                "type": "send_message",
                "conversation_id": "CONV-7",
                "sender_id": "C7",
                "text": "my email is jane.doe@gmail.com, add me on whatsapp",
            },
            {
                "type": "send_message",
                "conversation_id": "CONV-7",
                "sender_id": "E7",
                "text": "Could we arrange an interview?",
                "message_type": "interview_request",
            },
        ],
    )

    container = create_container()
    pipeline = container.pipeline()

    results = pipeline.run(
        events_path=events_path,
        output_path=output_path,
        audit_logger=AuditLogger(audit_path),
    )

    assert [entry["status"] for entry in results] == ["ok", "ok", "ok"]
    assert results[1]["delivered"] is False
    assert set(results[1]["categories"]) >= {"email_address", "external_platform"}
    assert results[2]["reason"] == "interview_request_requires_level_3"

    audit_lines = audit_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(audit_lines) == 3
    assert json.loads(audit_lines[0])["conversation_id"] == "CONV-7"
    assert "jane.doe" not in audit_path.read_text(encoding="utf-8")
    assert "gmail" not in output_path.read_text(encoding="utf-8")

    stored = container.gate().messages("CONV-7")
    assert [message.status for message in stored] == ["blocked", "withheld"]


def test_pipeline_reports_rejections_in_order(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    output_path = tmp_path / "results.json"
    events = [
        {"type": "clause_accepted", "employer_id": "E1", "clause_id": clause_id, "signer": SIGNER}
        for clause_id in SKILLS_ACCESS_CLAUSES[:3]
    ]
    events.append({"type": "upgrade_requested", "employer_id": "E1", "candidate_id": "C1", "target_level": 2})
    events.append({"type": "clause_accepted", "employer_id": "E1", "clause_id": "bogus", "signer": SIGNER})
    events.append({"type": "send_message", "conversation_id": "missing", "sender_id": "E1", "text": "hi"})
    write_events(events_path, events)

    results = create_container().pipeline().run(events_path=events_path, output_path=output_path)

    rejected = [entry for entry in results if entry["status"] == "rejected"]
    assert [entry["error"] for entry in rejected] == [
        "GatingNotSatisfied",
        "UnknownClause",
        "UnknownConversation",
    ]
    assert rejected[0]["remaining"] == list(SKILLS_ACCESS_CLAUSES[3:])
    rendered = json.loads(output_path.read_text(encoding="utf-8"))
    assert rendered["metadata"]["errors"] == []
    assert rendered["stats"]["total"] == 0


def test_event_loader_collects_line_errors(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    events_path.write_text(
        "\n".join(
            [
                json.dumps({"type": "upgrade_requested", "employer_id": "E1", "candidate_id": "C1", "target_level": 2}),
                "",
                "{broken",
                json.dumps({"employer_id": "E1"}),
                json.dumps({"type": "upgrade_requested", "employer_id": "E1"}),
            ]
        ),
        encoding="utf-8",
    )

    with pytest.raises(ReplayLoadError) as excinfo:
        EventLoader().load(events_path)

    errors = excinfo.value.errors
    assert errors[0].startswith("line 3: invalid JSON")
    assert errors[1] == "line 4: missing type field"
    assert errors[2].startswith("line 5:")
    assert [line for line, _ in excinfo.value.partial] == [1]
