"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cv_gap_analyzer.config import load_config
from cv_gap_analyzer.handler import build_orchestrator
from cv_gap_analyzer.logging.cost_calculator import calculate_cost
from cv_gap_analyzer.logging.models import UsageLog
from cv_gap_analyzer.logging.usage_store import UsageStore
from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.response import AnalysisResponse
from cv_gap_analyzer.stores.document_store import SQLiteDocumentStore

app = typer.Typer(
    name="cv-gap-analyzer",
    help="CV gap analysis against talent profiles and career paths",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_documents(file: Path) -> list[dict]:
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)
    data = json.loads(file.read_text(encoding="utf-8"))
    return data if isinstance(data, list) else [data]


def _print_report(response: AnalysisResponse) -> None:
    report = response.analysis
    meta = response.metadata
    source = "[yellow]fallback[/yellow]" if meta.used_fallback else "[green]AI[/green]"
    career = meta.career_path.title if meta.career_path else "none selected"
    console.print(
        Panel(
            f"Talent: {meta.talent.fullname} ({meta.talent.career_stage})\n"
            f"Career path: {career}\n"
            f"[bold]Overall: {report.overall_score}[/bold] | "
            f"Alignment: {report.career_alignment.alignment_score} | "
            f"Marketability: {report.marketability.score}\n"
            f"Source: {source} | {meta.execution_time}ms",
            title=meta.file_name,
        )
    )
    for title, items in (
        ("Strengths", report.strengths),
        ("Weaknesses", report.weaknesses),
        ("Missing skills", report.career_alignment.missing_skills),
        ("Recommendations", report.recommendations),
        ("Next steps", report.next_steps),
    ):
        if items:
            console.print(f"\n[bold]{title}:[/bold]")
            for item in items:
                console.print(f"  - {item}")


@app.command()
def analyze(
    talent_id: str = typer.Argument(help="Talent key to analyse against"),
    file: Path = typer.Argument(help="CV file (PDF, DOC, DOCX, JPG, PNG)"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the JSON response here"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    no_usage_log: bool = typer.Option(False, "--no-usage-log", help="Do not record usage"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Analyse a CV file against a stored talent profile."""
    _setup_logging(verbose)
    if not file.exists():
        console.print(f"[red]CV file not found: {file}[/red]")
        raise typer.Exit(1)

    config = load_config(config_path)
    orchestrator = build_orchestrator(config)
    payload = {
        "talentId": talent_id,
        "fileName": file.name,
        "fileData": base64.b64encode(file.read_bytes()).decode("ascii"),
    }

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Analysing CV...", total=None)
        response = asyncio.run(orchestrator.run(payload))

    if not no_usage_log:
        tokens = orchestrator.llm.get_token_summary() if orchestrator.llm else {}
        store = UsageStore(config.storage.resolved_usage_db_path)
        store.save_log(
            UsageLog.from_response(
                response,
                talent_id=talent_id,
                token_summary=tokens,
                estimated_cost_usd=calculate_cost(tokens.get("calls", [])),
            )
        )

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(response.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[green]Response saved: {output}[/green]")

    if not response.success:
        console.print(f"[red]{response.status_code}: {response.error}[/red]")
        raise typer.Exit(1)
    _print_report(response)


@app.command("import-profiles")
def import_profiles(
    file: Path = typer.Argument(help="JSON file with one profile or a list of profiles"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Load talent profiles into the local document store."""
    config = load_config(config_path)
    store = SQLiteDocumentStore(config.storage.resolved_db_path)
    try:
        profiles = [Profile.model_validate(doc) for doc in _load_documents(file)]
    except ValidationError as e:
        console.print(f"[red]Invalid profile document: {e}[/red]")
        raise typer.Exit(1)
    for profile in profiles:
        store.put_profile(profile)
    console.print(f"[green]Imported {len(profiles)} profile(s).[/green]")


@app.command("import-careers")
def import_careers(
    file: Path = typer.Argument(help="JSON file with one career path or a list of them"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
) -> None:
    """Load career paths into the local document store."""
    config = load_config(config_path)
    store = SQLiteDocumentStore(config.storage.resolved_db_path)
    try:
        targets = [CareerTarget.model_validate(doc) for doc in _load_documents(file)]
    except ValidationError as e:
        console.print(f"[red]Invalid career path document: {e}[/red]")
        raise typer.Exit(1)
    for target in targets:
        store.put_career_target(target)
    console.print(f"[green]Imported {len(targets)} career path(s).[/green]")


@app.command()
def usage(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    limit: int = typer.Option(10, "--limit", "-n", help="Number of recent runs to list"),
) -> None:
    """Show usage statistics for the current month."""
    config = load_config(config_path)
    store = UsageStore(config.storage.resolved_usage_db_path)
    stats = store.get_monthly_stats()
    avg = stats["avg_overall_score"]
    console.print(
        Panel(
            f"Runs: {stats['total_runs']} | Success: {stats['success_rate']:.0f}% | "
            f"Fallback: {stats['fallback_rate']:.0f}%\n"
            f"Tokens: {stats['total_input_tokens']} in / {stats['total_output_tokens']} out\n"
            f"Cost: ${stats['total_cost_usd']:.4f} | Avg score: {avg if avg is not None else '-'}",
            title=f"Usage {stats['month']}",
        )
    )

    logs = store.get_logs(limit=limit)
    if not logs:
        return
    table = Table("Time", "Talent", "File", "Status", "Score", "Source")
    for log in logs:
        table.add_row(
            log.timestamp.strftime("%Y-%m-%d %H:%M"),
            log.talent_id or "-",
            log.file_name or "-",
            str(log.status_code),
            str(log.overall_score) if log.overall_score is not None else "-",
            "fallback" if log.used_fallback else "AI",
        )
    console.print(table)


if __name__ == "__main__":
    app()
