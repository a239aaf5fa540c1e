"""Typer CLI entrypoint for the enforcement engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import pendulum
import typer
from pydantic import ValidationError

from .config import load_settings
from .container import create_container
from .core import project as project_profile
from .logging import configure_logging
from .notifications import HTTPAlertNotifier
from .pipeline import AuditLogger
from .schemas import MAX_LEVEL, MIN_LEVEL, CandidateRecord

app = typer.Typer(help="Candidate disclosure and contact-leak enforcement CLI.")


def _settings(config: Path | None) -> dict[str, Any]:
    if config is None:
        return {}
    try:
        return load_settings(config)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid config: {exc}", param_name="config") from exc


@app.command()
def classify(
    text: str = typer.Argument(..., help="Message text to score."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
) -> None:
    """Score one message and print the verdict as JSON."""
    configure_logging(log_level)
    container = create_container(settings=_settings(config))
    verdict = container.classifier().classify(text)
    typer.echo(json.dumps(verdict.model_dump(mode="json"), ensure_ascii=False, indent=2))
    if verdict.should_block:
        raise typer.Exit(code=1)


@app.command()
def project(
    candidate: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Candidate record JSON path."),
    level: int = typer.Option(MIN_LEVEL, min=MIN_LEVEL, max=MAX_LEVEL, help="Access level to render."),
    employer_id: Optional[str] = typer.Option(None, help="Employer id used for media watermarks."),
    today: Optional[str] = typer.Option(None, help="Reference date (ISO) for age bands."),
) -> None:
    """Print the staged profile visible at LEVEL."""
    try:
        record = CandidateRecord.model_validate_json(candidate.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid candidate record: {exc}", param_name="candidate") from exc
    reference = pendulum.parse(today).date() if today else None
    profile = project_profile(record, level, employer_id=employer_id, today=reference)
    typer.echo(json.dumps(profile.model_dump(mode="json"), ensure_ascii=False, indent=2))


@app.command()
def replay(
    events: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Inbound events JSONL path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    notify_endpoint: Optional[str] = typer.Option(None, help="Webhook receiving suspicion alerts."),
    notify_api_key: Optional[str] = typer.Option(None, help="Webhook API key."),
    window_hours: float = typer.Option(24.0, min=0.01, help="Statistics window in hours."),
) -> None:
    """Replay recorded collaborator events through the engine."""
    settings = _settings(config)
    if notify_endpoint:
        settings.setdefault("notifications", {})["endpoint"] = notify_endpoint
        if notify_api_key:
            settings["notifications"]["api_key"] = notify_api_key

    configure_logging(log_level)

    container = create_container(settings=settings)
    pipeline = container.pipeline()
    audit_logger = AuditLogger(audit_log) if audit_log else None

    results = pipeline.run(
        events_path=events,
        output_path=output,
        audit_logger=audit_logger,
        stats_window=pendulum.duration(seconds=int(window_hours * 3600)),
    )
    notifier = container.notifier()
    if isinstance(notifier, HTTPAlertNotifier):
        notifier.close()
    rejected = sum(1 for entry in results if entry["status"] != "ok")
    recorded = getattr(notifier, "alerts", None)
    alerts = f" {len(recorded)} alerts raised." if recorded is not None else ""
    typer.echo(
        f"Replayed {len(results)} events ({rejected} rejected). Results saved to {output}.{alerts}"
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
