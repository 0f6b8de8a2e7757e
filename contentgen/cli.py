"""CLI entry-point: inspect stages, estimate cost, run a generation."""

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from contentgen.config import get_settings
from contentgen.errors import ContentGenError, InvalidRequest, StorageError
from contentgen.pipeline import (
    CompositeReporter,
    GenerationService,
    LoggingReporter,
    RichConsoleReporter,
    build_registry,
    estimate as estimate_cost,
)
from contentgen.pipeline.service import parse_request
from contentgen.providers import get_gateway
from contentgen.schemas.models import ContentType, SessionStatus
from contentgen.sessions import get_session_store

app = typer.Typer(help="SEO article generation pipeline")


def _build_request(
    topics: list[str],
    content_type: str,
    audience: str | None,
    industry: str | None,
    length: str | None,
    disable: list[str],
    images: int | None,
    request_file: str | None,
):
    data: dict = {}
    if request_file:
        with open(request_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    if topics:
        data["seed_topics"] = topics
    data.setdefault("content_type", content_type)
    if audience:
        data["target_audience"] = audience
    if industry:
        data["industry"] = industry
    if length:
        data["content_length"] = length
    if images is not None:
        data["image_count"] = images
    if disable:
        enabled = dict(data.get("enabled") or {})
        enabled.update({stage_id: False for stage_id in disable})
        data["enabled"] = enabled
    return parse_request(data)


@app.command()
def stages():
    """List pipeline stages in execution order."""
    console = Console()
    settings = get_settings()
    table = Table(title="Pipeline stages")
    table.add_column("#", justify="right")
    table.add_column("Stage")
    table.add_column("Name")
    table.add_column("Required")
    table.add_column("Depends on")
    table.add_column("Weight", justify="right")
    for i, stage in enumerate(build_registry(settings.mandatory_stage_list), start=1):
        table.add_row(
            str(i),
            stage.id,
            stage.name,
            "optional" if stage.optional else "[bold]mandatory[/bold]",
            ", ".join(sorted(stage.depends_on)) or "-",
            str(stage.weight),
        )
    console.print(table)


@app.command()
def estimate(
    topic: list[str] = typer.Option([], "--topic", "-t", help="Seed topic (repeatable)"),
    content_type: str = typer.Option(ContentType.PILLAR.value, "--type", help="Content type"),
    disable: list[str] = typer.Option([], "--disable", help="Stage id to switch off (repeatable)"),
    request_file: str = typer.Option(None, "--request", help="JSON file with a full generation request"),
):
    """Estimate the provider cost of a request without running it."""
    console = Console()
    settings = get_settings()
    try:
        request = _build_request(topic, content_type, None, None, None, disable, None, request_file)
    except (InvalidRequest, OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    result = estimate_cost(request, settings.unit_prices, build_registry(settings.mandatory_stage_list))
    table = Table(title="Estimated cost")
    table.add_column("Stage")
    table.add_column("Capability")
    table.add_column("Unit cost", justify="right")
    table.add_column("Included")
    for item in result.items:
        table.add_row(item.stage_id, item.capability, f"${item.unit_cost:.3f}", "yes" if item.included else "no")
    console.print(table)
    console.print(f"Total: [bold]${result.total:.3f}[/bold]")


@app.command()
def generate(
    topic: list[str] = typer.Option([], "--topic", "-t", help="Seed topic (repeatable)"),
    content_type: str = typer.Option(ContentType.PILLAR.value, "--type", help="Content type"),
    audience: str = typer.Option(None, help="Target audience"),
    industry: str = typer.Option(None, help="Industry"),
    length: str = typer.Option(None, help="Content length class, e.g. 5000+"),
    disable: list[str] = typer.Option([], "--disable", help="Stage id to switch off (repeatable)"),
    images: int = typer.Option(None, "--images", help="Number of images (1-6)"),
    request_file: str = typer.Option(None, "--request", help="JSON file with a full generation request"),
    out: str = typer.Option(None, "--out", help="Output directory (default: <data_dir>/output/<session_id>)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every stage transition"),
):
    """Run the full pipeline for one request and write artifact.json + session.json."""
    console = Console()
    settings = get_settings()
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)
    try:
        request = _build_request(
            topic, content_type, audience, industry, length, disable, images, request_file
        )
    except (InvalidRequest, OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    reporter = RichConsoleReporter(console)
    if verbose:
        reporter = CompositeReporter(reporter, LoggingReporter())
    gateway = get_gateway(settings)
    service = GenerationService(
        gateway,
        store=get_session_store(),
        max_workers=1,
        reporter=reporter,
        registry=build_registry(settings.mandatory_stage_list),
        prices=settings.unit_prices,
    )
    console.print(f"Generating content for: [bold]{', '.join(request.seed_topics)}[/bold]")
    try:
        session = service.run(request)
    except ContentGenError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        service.shutdown()
        gateway.close()

    out_dir = Path(out) if out else settings.output_dir / session.id
    out_dir.mkdir(parents=True, exist_ok=True)
    with open(out_dir / "session.json", "w", encoding="utf-8") as f:
        f.write(session.model_dump_json(indent=2))
    console.print(f"Wrote {out_dir / 'session.json'}")

    if session.status == SessionStatus.FAILED:
        console.print(f"[red]Failed at {session.failed_stage}: {session.error}[/red]")
        raise typer.Exit(1)
    with open(out_dir / "artifact.json", "w", encoding="utf-8") as f:
        f.write(session.artifact.model_dump_json(indent=2))
    console.print(f"Wrote {out_dir / 'artifact.json'}")
    if session.ephemeral:
        console.print("[yellow]Warning: session store unavailable; session was not persisted.[/yellow]")
    console.print(f"[green]Done.[/green] {session.artifact.title} (estimated cost ${session.estimated_cost:.3f})")


@app.command()
def status(session_id: str = typer.Argument(..., help="Session id")):
    """Show a stored session's status and stage progress."""
    console = Console()
    try:
        session = get_session_store().get(session_id)
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    if session is None:
        console.print(f"[red]Error: session not found: {session_id}[/red]")
        raise typer.Exit(1)
    table = Table(title=f"{session.id}: {session.status.value} ({session.progress}%)")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Error")
    for result in session.stages.values():
        table.add_row(result.stage_id, result.status.value, f"{result.progress}%", result.error or "")
    console.print(table)
    if session.failed_stage:
        console.print(f"[red]Failed at {session.failed_stage}: {session.error}[/red]")


@app.command()
def history(limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of sessions to show")):
    """List recent generation sessions, newest first."""
    console = Console()
    try:
        sessions = get_session_store().list_recent(limit)
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    if not sessions:
        console.print("No generation sessions yet.")
        return
    table = Table(title="Recent generations")
    table.add_column("Session")
    table.add_column("Created")
    table.add_column("Topic")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Title")
    for session in sessions:
        table.add_row(
            session.id,
            session.created_at.strftime("%Y-%m-%d %H:%M"),
            session.request.primary_topic,
            session.status.value,
            f"{session.progress}%",
            session.artifact.title if session.artifact else "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
