"""
Interactive interview loop for the terminal.

Stdin is read on a daemon thread and fed into an asyncio queue so the
question timer keeps running while the candidate types:

    any text        appended to the answer draft
    empty line      submit the draft
    /submit         submit the draft
    /pause          pause the interview and exit (resume later)
"""

from __future__ import annotations

import asyncio
import sys
import threading

from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel

from mockinterview.core.errors import SubmissionFailed
from mockinterview.dashboard import score_band
from mockinterview.engine.models import Question, Session, SessionStatus, ViewTab
from mockinterview.engine.orchestrator import SessionObserver, SessionOrchestrator

SUBMIT_COMMANDS = ("", "/submit")
PAUSE_COMMAND = "/pause"

DIFFICULTY_STYLES = {"easy": "green", "medium": "yellow", "hard": "red"}
BAND_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


def countdown_visible(remaining: int) -> bool:
    """Countdown marks worth printing: every 15s, then each of the last 5."""
    return remaining <= 5 or remaining % 15 == 0


class ConsoleObserver(SessionObserver):
    """Renders orchestrator events with rich."""

    def __init__(self, console: Console):
        self.console = console

    def on_question_started(self, question: Question, index: int, total: int) -> None:
        style = DIFFICULTY_STYLES.get(question.difficulty.value, "white")
        self.console.print(
            Panel(
                f"{question.text}\n\n"
                f"[dim]Type your answer. Empty line or /submit to submit, /pause to pause.[/dim]",
                title=f"Question {index + 1}/{total}",
                subtitle=f"[{style}]{question.difficulty.value.upper()}[/{style}] | {question.time_limit_seconds}s",
                border_style="cyan",
                box=box.ROUNDED,
            )
        )

    def on_tick(self, remaining: int) -> None:
        if remaining > 0 and countdown_visible(remaining):
            color = "red" if remaining <= 5 else "dim"
            self.console.print(f"[{color}]{remaining}s left[/{color}]")

    def on_answer_recorded(self, question: Question, index: int, forced: bool) -> None:
        if forced:
            self.console.print("[yellow]Time's up! Your answer has been submitted.[/yellow]")
        self.console.print(
            f"[bold]Score:[/bold] {question.score}/10  [dim]{question.feedback or ''}[/dim]\n"
        )

    def on_paused(self, session: Session) -> None:
        self.console.print(
            Panel(
                f"Interview paused at question {session.current_index + 1}/{len(session.questions)}.\n\n"
                "Continue later with: [cyan]mockinterview resume[/cyan]",
                border_style="yellow",
                box=box.ROUNDED,
            )
        )

    def on_resumed(self, session: Session) -> None:
        self.console.print("[green]Interview resumed. The timer restarts for this question.[/green]")

    def on_completed(self, session: Session) -> None:
        total = session.total_score or 0
        style = BAND_STYLES[score_band(total)]
        self.console.print(
            Panel(
                f"[bold {style}]Final score: {total}/{session.max_score}[/bold {style}]\n\n"
                f"{session.summary or ''}",
                title="Interview Complete",
                border_style=style,
                box=box.DOUBLE,
            )
        )

    def on_view_changed(self, tab: ViewTab) -> None:
        self.console.print(f"[dim]Active view: {tab.value}[/dim]")

    def on_error(self, error: Exception) -> None:
        self.console.print(f"[red]Error:[/red] {error}")


class StdinReader:
    """Pumps stdin lines into an asyncio queue from a daemon thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop, stream=None):
        self.loop = loop
        self.stream = stream or sys.stdin
        self.queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._pump, name="stdin-reader", daemon=True)
        self._thread.start()

    def _pump(self) -> None:
        for line in self.stream:
            if not self._deliver(line.rstrip("\r\n")):
                return
        # EOF
        self._deliver(None)

    def _deliver(self, item: str | None) -> bool:
        if self.loop.is_closed():
            return False
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
        except RuntimeError:
            # Loop closed between the check and the call
            return False
        return True

    async def readline(self) -> str | None:
        return await self.queue.get()


async def run_interview(
    orchestrator: SessionOrchestrator,
    console: Console,
    reader: StdinReader | None = None,
) -> Session | None:
    """
    Drive the bound session from terminal input until it completes or pauses.

    Returns:
        The completed session, or None when the interview was paused
    """
    if reader is None:
        reader = StdinReader(asyncio.get_running_loop())
        reader.start()

    completed = asyncio.ensure_future(orchestrator.wait_completed())
    try:
        while not completed.done():
            read = asyncio.ensure_future(reader.readline())
            done, _ = await asyncio.wait({read, completed}, return_when=asyncio.FIRST_COMPLETED)
            if read not in done:
                read.cancel()
                break

            line = read.result()
            if line is None:
                logger.info("Input closed; pausing interview")
                await _pause_if_active(orchestrator)
                break

            command = line.strip()
            if command == PAUSE_COMMAND:
                await _pause_if_active(orchestrator)
                break

            if command in SUBMIT_COMMANDS:
                try:
                    outcome = await orchestrator.submit()
                except SubmissionFailed as e:
                    console.print(f"[red]{e.retry_hint}[/red]")
                    continue
                if outcome.completed:
                    break
                if not outcome.accepted:
                    console.print(f"[dim]Submission ignored: {outcome.reason}[/dim]")
                continue

            orchestrator.append_draft(line)
    finally:
        completed.cancel()
        await orchestrator.shutdown()

    return orchestrator.last_completed


async def _pause_if_active(orchestrator: SessionOrchestrator) -> None:
    if orchestrator.current.status == SessionStatus.ACTIVE:
        await orchestrator.pause()
