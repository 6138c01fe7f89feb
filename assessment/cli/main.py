"""
Typer CLI for the assessment session engine.

Commands:
    assessment db init          - Initialize database tables
    assessment db check         - Check database connectivity
    assessment preview diagnostic - Show what a diagnostic selection would contain
    assessment preview mock     - Show what a mock test selection would contain
    assessment tests            - List active mock tests
    assessment report TOKEN     - Print a finished attempt's report
    assessment sweep            - Abandon idle diagnostics, complete expired mock tests
    assessment serve            - Run the HTTP API

Usage:
    assessment --help
    assessment db init
    assessment sweep
"""

from __future__ import annotations

import json
import random
from collections import Counter

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from assessment import __version__
from assessment.core.errors import AssessmentError
from assessment.core.log_config import configure_logging

app = typer.Typer(
    help="assessment: diagnostic and mock test session engine",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Assessment session engine CLI."""
    configure_logging(level="DEBUG" if verbose else None)


# ========================================
# Database Commands
# ========================================

db_app = typer.Typer(help="Database management (init, check)")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from assessment.db.database import init_db

    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("check")
def db_check() -> None:
    """Check database connectivity."""
    from assessment.db.database import check_connection

    status, error = check_connection()
    if status != "ok":
        rprint(f"[red]✗[/red] Database unreachable: {error}")
        raise typer.Exit(code=1)
    rprint("[green]✓[/green] Database reachable")


# ========================================
# Selection Preview
# ========================================

preview_app = typer.Typer(help="Dry-run question selection against the item store")
app.add_typer(preview_app, name="preview")


@preview_app.command("diagnostic")
def preview_diagnostic(
    seed: int = typer.Option(None, "--seed", help="Seed the shuffle for a reproducible order"),
) -> None:
    """Show the items a new diagnostic would receive (no attempt is created)."""
    from assessment.db.database import session_scope
    from assessment.engine.item_store import SqlItemStore
    from assessment.engine.selector import QuestionSelector, SelectionQuota

    quota = SelectionQuota.default()
    with session_scope() as session:
        store = SqlItemStore(session)
        candidates = {c.id: c for c in store.load_active_candidates()}
        result = QuestionSelector(random.Random(seed)).select(candidates.values(), quota)

    table = Table(title=f"Diagnostic selection ({len(result)}/{result.requested})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Subject", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Concept")
    table.add_column("Weight", justify="right")
    for position, item_id in enumerate(result, start=1):
        c = candidates[item_id]
        table.add_row(str(position), c.subject.value, c.difficulty.value, c.concept, f"{c.frequency_weight:.2f}")
    console.print(table)

    if result.is_short:
        for subject, missing in result.shortfall_by_subject.items():
            rprint(f"[yellow]⚠[/yellow] {subject.value}: short by {missing}")


@preview_app.command("mock")
def preview_mock(
    seed: int = typer.Option(None, "--seed", help="Seed the shuffle for a reproducible selection"),
) -> None:
    """Show per-subject section and difficulty counts for a new mock test."""
    from assessment.db.database import session_scope
    from assessment.engine.item_store import SqlItemStore
    from assessment.engine.mock_selector import MockBlueprint, MockTestSelector

    blueprint = MockBlueprint.default()
    with session_scope() as session:
        candidates = {c.id: c for c in SqlItemStore(session).load_active_candidates()}
    selection = MockTestSelector(random.Random(seed)).select(candidates.values(), blueprint)

    table = Table(title="Mock test selection")
    table.add_column("Subject", style="cyan")
    table.add_column("Selected", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Easy / Medium / Hard")
    table.add_column("Chapters", justify="right")
    for subject, ids in selection.items():
        difficulties = Counter(candidates[i].difficulty.value for i in ids)
        chapters = {candidates[i].chapter for i in ids}
        table.add_row(
            subject.value,
            str(len(ids)),
            str(blueprint.questions_per_subject),
            f"{difficulties['EASY']} / {difficulties['MEDIUM']} / {difficulties['HARD']}",
            str(len(chapters)),
        )
    console.print(table)


# ========================================
# Attempts & Reports
# ========================================


@app.command("tests")
def list_tests() -> None:
    """List active mock tests (creates the default test if none exists)."""
    from assessment.engine.mock_test import MockTestAttemptManager

    table = Table(title="Mock tests")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("Questions", justify="right")
    for test in MockTestAttemptManager().list_tests():
        table.add_row(test.id, test.name, f"{test.duration_seconds // 60} min", str(test.total_questions))
    console.print(table)


@app.command("report")
def show_report(token: str = typer.Argument(..., help="Report token")) -> None:
    """Print a finished attempt's report as JSON."""
    from assessment.engine.report import ReportService

    try:
        report = ReportService().get_report(token)
    except AssessmentError as e:
        rprint(f"[red]✗[/red] {e.message}")
        raise typer.Exit(code=1)
    console.print_json(json.dumps(report, default=str))


@app.command("sweep")
def sweep() -> None:
    """Abandon idle diagnostics and force-complete expired mock tests."""
    from assessment.engine.diagnostic import DiagnosticAttemptManager
    from assessment.engine.locks import AttemptLocks
    from assessment.engine.mock_test import MockTestAttemptManager
    from assessment.engine.sweeper import AttemptSweeper

    locks = AttemptLocks(get_settings().attempt_lock_timeout_seconds)
    sweeper = AttemptSweeper(
        DiagnosticAttemptManager(locks=locks),
        MockTestAttemptManager(locks=locks),
    )
    report = sweeper.run()

    rprint("\n[bold cyan]Sweep Results[/bold cyan]")
    rprint(f"  Abandoned diagnostics: {len(report.abandoned)}")
    rprint(f"  Completed mock tests: {len(report.completed)}")
    if report.busy:
        rprint(f"\n[yellow]⚠[/yellow] {len(report.busy)} attempts busy, retry later")


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (defaults to API_HOST)"),
    port: int = typer.Option(None, "--port", help="Port (defaults to API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "assessment.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("version")
def show_version() -> None:
    """Show version information."""
    rprint(f"[bold]assessment-engine[/bold] v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
