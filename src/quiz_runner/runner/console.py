"""Rich-powered console front end for a test session.

The loop renders the question under the session pointer, reads one command
per iteration from an injectable input provider and forwards it to the
:class:`~quiz_runner.runner.session.Session`. All state lives in the
session; this module only draws it and translates keystrokes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import ValidationError
from .questions import Question
from .session import QuestionStatus, Session, SessionPhase, SessionResult
from .timer import format_elapsed

InputProvider = Callable[[], str]
ExitAction = Literal["finished", "quit", "empty"]

STATUS_STYLES = {
    QuestionStatus.NOT_VISITED: "dim",
    QuestionStatus.CURRENT: "bold cyan",
    QuestionStatus.ANSWERED: "bold green",
    QuestionStatus.SKIPPED: "bold yellow",
}


def option_key(position: int) -> str:
    """Letter shown next to an option (``0 -> "A"``)."""

    return chr(ord("A") + position)


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["select", "next", "prev", "skip", "goto", "finish", "quit"]
    value: Optional[int] = None


@dataclass(frozen=True)
class ConsoleRunResult:
    exit_action: ExitAction
    result: Optional[SessionResult]


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse raw user input into a structured command.

    Option letters select an answer; ``goto``/``g`` take a 1-based question
    number. A bare ``n``, ``p``, ``s`` or ``q`` is read as a command, so
    options with those letters are chosen as ``o N`` (or ``option N``).
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"s", "skip"}:
        return SessionCommand("skip")
    if lowered in {"finish", "submit"}:
        return SessionCommand("finish")
    if lowered in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    head, _, tail = lowered.partition(" ")
    if head in {"g", "goto"} and tail.strip().isdigit():
        return SessionCommand("goto", int(tail.strip()))
    if lowered.startswith("#") and lowered[1:].isdigit():
        return SessionCommand("goto", int(lowered[1:]))
    letter = tail.strip()
    if head in {"o", "option"} and len(letter) == 1 and letter.isalpha():
        return SessionCommand("select", ord(letter.upper()) - ord("A"))
    if len(text) == 1 and text.isalpha():
        return SessionCommand("select", ord(text.upper()) - ord("A"))
    return None


def run_console_session(
    session: Session,
    subset: Sequence[Question],
    console: Console,
    input_provider: InputProvider,
    *,
    show_explanations: bool = True,
) -> ConsoleRunResult:
    """Run one test over ``subset`` using Rich-rendered prompts."""

    if not subset:
        console.print(
            Panel(
                "No questions match the selection.",
                title="Quiz Runner",
                border_style="yellow",
            )
        )
        return ConsoleRunResult("empty", None)

    session.start(subset)
    exit_action: ExitAction = "quit"
    while session.phase is SessionPhase.ACTIVE:
        _render_question(console, session)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        exit_candidate = _apply_command(command, session, console)
        if exit_candidate:
            exit_action = exit_candidate
            break

    if session.phase is SessionPhase.ACTIVE:
        session.finish()
    result = session.result

    if exit_action == "finished" and result is not None:
        _render_summary(console, result, show_explanations=show_explanations)
    return ConsoleRunResult(exit_action, result)


def _apply_command(
    command: SessionCommand,
    session: Session,
    console: Console,
) -> Optional[ExitAction]:
    if command.type == "select" and command.value is not None:
        try:
            session.select_answer(command.value)
        except ValidationError:
            console.print(
                "[red]'%s' is not a valid choice for this question.[/red]"
                % option_key(command.value),
            )
            return None
        console.print(f"Selected [bold]{option_key(command.value)}[/].")
        return None
    if command.type == "next":
        session.next()
        return None
    if command.type == "prev":
        session.previous()
        return None
    if command.type == "goto" and command.value is not None:
        if not session.move_to(command.value - 1):
            console.print(
                f"[red]There is no question {command.value}.[/red]"
            )
        return None
    if command.type == "skip":
        return "finished" if session.skip() is not None else None
    if command.type == "finish":
        session.finish()
        return "finished"
    if command.type == "quit":
        console.print("\n[bold yellow]Ending test without a result.[/]")
        return "quit"
    return None


def render_grid(session: Session) -> Text:
    """Navigation grid: one number per question, colored by status."""

    grid = Text()
    for cell in session.grid():
        label = f"[{cell.number}]" if cell.is_pointer else f" {cell.number} "
        grid.append(label, style=STATUS_STYLES[cell.status])
    return grid


def _render_question(console: Console, session: Session) -> None:
    question = session.current_question
    if question is None:
        return
    header = Text.assemble(
        (f"Q{session.index + 1}", "bold cyan"),
        (f" / {session.total}", "dim"),
        ("  ", ""),
        (format_elapsed(session.elapsed_seconds()), "magenta"),
    )
    console.print()
    console.rule(header)
    console.print(
        Text(
            f"Set: {question.question_set or '-'} | "
            f"Module: {question.module or '-'} | "
            f"Chapter: {question.chapter or '-'}",
            style="dim",
        )
    )
    console.print(Text(question.question, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")

    selected = session.selected_for()
    for position, option in enumerate(question.options):
        marker = "•" if position == selected else " "
        option_text = Text(option)
        if position == selected:
            option_text.stylize("bold green")
        row = Text(marker + " ")
        row += option_text
        table.add_row(option_key(position), row)
    console.print(table)

    console.print(render_grid(session))
    keys = ", ".join(option_key(i) for i in range(len(question.options)))
    console.print(
        Text(
            f"Answered {session.answered_count}/{session.total} | "
            f"Commands: options [{keys}] or o <letter>, n (next), "
            "p (prev), s (skip), g <number>, finish, quit",
            style="dim",
        )
    )


def _render_summary(
    console: Console,
    result: SessionResult,
    *,
    show_explanations: bool,
) -> None:
    console.print()
    console.rule(Text("Test Completed", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Score", f"{result.score} / {result.total}")
    overview.add_row("Attempted", str(result.attempted))
    overview.add_row("Percentage", f"{result.percentage}%")
    overview.add_row("Time", format_elapsed(result.elapsed_seconds))
    console.print(overview)

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer")
    responses.add_column("Correct answer")
    responses.add_column("Result", justify="center")
    for response in result.responses:
        selected = (
            option_key(response.selected)
            if response.selected is not None
            else "—"
        )
        outcome = "✅" if response.is_correct else "❌"
        responses.add_row(
            str(response.position + 1),
            response.question.question,
            selected,
            option_key(response.question.answer_index),
            outcome,
        )
    console.print(responses)

    if not show_explanations:
        return
    for response in result.responses:
        if not response.explanation:
            continue
        console.print(
            Panel(
                response.explanation,
                title=f"Explanation — Q{response.position + 1}",
                border_style="green" if response.is_correct else "red",
            )
        )
