"""
Mock Interview CLI - timed technical interviews in the terminal.

Usage:
    mockinterview start resume.txt        # Register and start an interview
    mockinterview resume                  # Continue an interrupted interview
    mockinterview status                  # Show the interview in progress
    mockinterview dashboard --sort name   # Interviewer view of all candidates
    mockinterview show jane               # Per-question detail for a candidate
    mockinterview view interviewer        # Switch the active view
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from mockinterview import __version__
from mockinterview.candidates.profile import CONTACT_FIELDS, ProfileForm, ProfileService
from mockinterview.config import Settings, get_settings
from mockinterview.core.errors import MockInterviewError
from mockinterview.core.log_setup import configure_logging
from mockinterview.dashboard import (
    SORT_KEYS,
    build_rows,
    score_band,
    search_rows,
    sort_rows,
)
from mockinterview.engine.models import Candidate, Session, SessionStatus, ViewTab
from mockinterview.engine.orchestrator import SessionOrchestrator
from mockinterview.engine.store import SessionStore

from .interactive import BAND_STYLES, ConsoleObserver, run_interview

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mockinterview",
    help="Mock Interview - timed technical interviews with AI scoring",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

STATUS_STYLES = {
    "Completed": "green",
    "In Progress": "blue",
    "Paused": "yellow",
    "Not Started": "dim",
}

UNSUPPORTED_RESUME_SUFFIXES = (".pdf", ".docx", ".doc")


def _store(settings: Settings) -> SessionStore:
    return SessionStore(settings.state_path)


def _run_async(coro) -> None:
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted. Progress is saved; run [cyan]mockinterview resume[/cyan].[/yellow]")
        raise typer.Exit(130)
    except MockInterviewError as e:
        logger.opt(exception=e).debug("Command failed")
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _truncate(text: str | None, width: int = 60) -> str:
    if not text:
        return ""
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 3] + "..."


def _session_panel(session: Session, candidate: Candidate | None, title: str) -> Panel:
    answered = len(session.answered_questions)
    who = candidate.name if candidate and candidate.name else session.candidate_id
    return Panel(
        f"Candidate: [bold]{who}[/bold]\n"
        f"Status: [bold]{session.status.value.upper()}[/bold]\n"
        f"Started: {session.started_at.isoformat()[:19]}\n"
        f"Progress: {answered}/{len(session.questions)} answered\n"
        f"Score so far: {session.score_sum()}",
        title=title,
        border_style="cyan",
        box=box.ROUNDED,
    )


def _collect_profile(profiles: ProfileService, candidate: Candidate) -> Candidate:
    """Prompt for contact fields until they validate."""
    console.print(
        Panel(
            "We couldn't extract all the required information from your resume.\n"
            "Please fill in the missing details to start your interview.",
            title="Complete Your Profile",
            border_style="yellow",
            box=box.ROUNDED,
        )
    )
    values = {name: getattr(candidate, name) for name in CONTACT_FIELDS}
    while True:
        for name in CONTACT_FIELDS:
            values[name] = Prompt.ask(name.capitalize(), default=values[name] or None) or ""
        try:
            form = ProfileForm(**values)
        except ValidationError as e:
            for error in e.errors():
                field = error["loc"][0] if error["loc"] else "profile"
                console.print(f"[red]{field}: {error['msg'].removeprefix('Value error, ')}[/red]")
            continue
        return profiles.complete_profile(candidate.id, form)


# =============================================================================
# Interview Commands
# =============================================================================


@app.command()
def start(
    resume_file: Annotated[
        Path, typer.Argument(help="Plain-text resume (extract PDF/DOCX text first)")
    ],
    name: Annotated[str | None, typer.Option("--name", help="Candidate name")] = None,
    email: Annotated[str | None, typer.Option("--email", help="Candidate email")] = None,
    phone: Annotated[str | None, typer.Option("--phone", help="Candidate phone")] = None,
) -> None:
    """
    Register a candidate from a resume and start a timed interview.

    Missing contact details are prompted for before the first question.
    """
    settings = get_settings()
    store = _store(settings)

    resumable = store.load_resumable()
    if resumable is not None:
        session, candidate = resumable
        console.print(_session_panel(session, candidate, "Interview In Progress"))
        console.print("Continue it with: [cyan]mockinterview resume[/cyan]")
        raise typer.Exit(1)

    if not resume_file.exists():
        console.print(f"[red]Resume not found: {resume_file}[/red]")
        raise typer.Exit(1)
    if resume_file.suffix.lower() in UNSUPPORTED_RESUME_SUFFIXES:
        console.print("[red]Only plain-text resumes are supported. Extract the text first.[/red]")
        raise typer.Exit(1)

    resume_text = resume_file.read_text(encoding="utf-8", errors="replace")
    if not resume_text.strip():
        console.print("[red]The resume file is empty.[/red]")
        raise typer.Exit(1)

    profiles = ProfileService(store)
    candidate = profiles.register(resume_text, name=name or "", email=email or "", phone=phone or "")
    if not profiles.can_start_interview(candidate):
        candidate = _collect_profile(profiles, candidate)

    console.print(f"\nWelcome, [bold]{candidate.name}[/bold]! Your interview is starting.\n")

    async def _run() -> None:
        orchestrator = SessionOrchestrator.from_settings(settings, observer=ConsoleObserver(console))
        try:
            await orchestrator.start_session(candidate)
        except MockInterviewError:
            await orchestrator.shutdown()
            raise
        await run_interview(orchestrator, console)

    _run_async(_run())


@app.command()
def resume() -> None:
    """
    Resume the interrupted interview, if any.

    The current question restarts with its full time limit.
    """
    settings = get_settings()

    async def _run() -> None:
        orchestrator = SessionOrchestrator.from_settings(settings, observer=ConsoleObserver(console))
        session = await orchestrator.restore()
        if session is None:
            await orchestrator.shutdown()
            console.print(
                Panel(
                    "[yellow]No saved interview found[/yellow]\n\n"
                    "Start a new one with: [cyan]mockinterview start RESUME.txt[/cyan]",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        console.print(_session_panel(session, orchestrator.current.candidate, "Welcome Back"))
        if session.status == SessionStatus.PAUSED:
            if not Confirm.ask("Resume this interview?", default=True):
                await orchestrator.shutdown()
                return
            await orchestrator.resume()
        await run_interview(orchestrator, console)

    _run_async(_run())


@app.command()
def status() -> None:
    """Show the interview in progress and the active view."""
    store = _store(get_settings())
    preferences = store.load_ui_preferences()

    resumable = store.load_resumable()
    if resumable is None:
        console.print("[dim]No interview in progress.[/dim]")
    else:
        session, candidate = resumable
        console.print(_session_panel(session, candidate, "Interview In Progress"))
    console.print(f"[dim]Active view: {preferences.active_tab.value}[/dim]")


# =============================================================================
# Interviewer Commands
# =============================================================================


@app.command()
def dashboard(
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Filter by name or email")
    ] = None,
    sort: Annotated[
        str, typer.Option("--sort", help=f"Sort order: {', '.join(SORT_KEYS)}")
    ] = "score",
) -> None:
    """List candidates with their latest interview results."""
    if sort not in SORT_KEYS:
        raise typer.BadParameter(f"expected one of {', '.join(SORT_KEYS)}", param_hint="--sort")

    store = _store(get_settings())
    rows = build_rows(store.list_candidates(), store.list_sessions())
    rows = sort_rows(search_rows(rows, search), sort)

    if not rows:
        console.print(
            Panel(
                "[dim]No candidates match your search criteria.[/dim]",
                title="No candidates found",
                box=box.ROUNDED,
            )
        )
        return

    table = Table(title="[bold cyan]CANDIDATES[/bold cyan]", box=box.HEAVY)
    table.add_column("Name")
    table.add_column("Email", style="dim")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Registered", style="dim")

    for row in rows:
        status_style = STATUS_STYLES.get(row.status_label, "white")
        score_style = BAND_STYLES[score_band(row.total_score)]
        table.add_row(
            row.name or "[dim]-[/dim]",
            row.email,
            f"[{status_style}]{row.status_label}[/{status_style}]",
            row.progress,
            f"[{score_style}]{row.total_score}[/{score_style}]",
            row.candidate.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    candidate: Annotated[str, typer.Argument(help="Candidate id, or part of a name or email")],
) -> None:
    """Show per-question answers, scores and the summary for a candidate."""
    store = _store(get_settings())
    rows = build_rows(store.list_candidates(), store.list_sessions())
    matches = [row for row in rows if row.candidate.id == candidate] or search_rows(rows, candidate)

    if not matches:
        console.print(f"[red]No candidate matches {candidate!r}[/red]")
        raise typer.Exit(1)
    if len(matches) > 1:
        console.print(f"[yellow]{len(matches)} candidates match; showing the first.[/yellow]")
    row = matches[0]

    console.print(
        Panel(
            f"[bold]{row.name}[/bold]\n{row.email}\n{row.candidate.phone}\n\n"
            f"Status: {row.status_label}  |  Score: {row.total_score}",
            title=row.candidate.id,
            box=box.ROUNDED,
        )
    )
    if row.session is None:
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right")
    table.add_column("Difficulty")
    table.add_column("Question")
    table.add_column("Answer")
    table.add_column("Score", justify="right")
    table.add_column("Feedback", style="dim")
    for index, question in enumerate(row.session.questions, start=1):
        table.add_row(
            str(index),
            question.difficulty.value,
            _truncate(question.text, 50),
            _truncate(question.answer, 50) if question.is_answered else "[dim]-[/dim]",
            "-" if question.score is None else str(question.score),
            _truncate(question.feedback, 60),
        )
    console.print(table)

    if row.session.summary:
        console.print(Panel(row.session.summary, title="AI Summary", border_style="green"))


@app.command()
def view(
    tab: Annotated[
        ViewTab | None, typer.Argument(help="interviewee or interviewer", case_sensitive=False)
    ] = None,
) -> None:
    """Show or switch the active view."""
    store = _store(get_settings())
    if tab is None:
        console.print(f"Active view: [bold]{store.load_ui_preferences().active_tab.value}[/bold]")
        return

    orchestrator = SessionOrchestrator(store=store, observer=ConsoleObserver(console))
    orchestrator.switch_view(tab)


# =============================================================================
# Entry Point
# =============================================================================


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"mockinterview {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """
    Mock Interview - timed technical interviews with AI scoring

    \b
    Quick Start:
      mockinterview start resume.txt   # Start an interview
      mockinterview resume             # Continue after an interruption
      mockinterview dashboard          # Review candidates
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
