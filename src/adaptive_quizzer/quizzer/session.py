"""Rich console front end for an adaptive quiz session.

The loop owns no quiz state: it asks the :class:`QuizSession` for the next
prompt, reads one command through ``input_provider`` and renders whatever the
engine returns. Input and the pause between questions are injectable so the
loop can be exercised with a recording console in tests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine import AnswerResult, QuestionPrompt, QuizSession, SessionComplete
from .models import OPTION_KEYS
from .recorder import SessionReport
from .selector import MASTERY_HARD, MASTERY_MEDIUM

__all__ = [
    "QuizRunResult",
    "SessionCommand",
    "parse_session_command",
    "render_report",
    "run_quiz_session",
]

InputProvider = Callable[[], str]
Sleeper = Callable[[float], None]
ExitAction = Literal["completed", "quit"]


@dataclass(frozen=True)
class SessionCommand:
    type: Literal["answer", "quit"]
    index: int | None = None


@dataclass(frozen=True)
class QuizRunResult:
    report: SessionReport
    exit_action: ExitAction


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Map ``A``-``D``, ``1``-``4`` or ``quit`` to a command."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    if text.lower() in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    key = text.upper()
    if key in OPTION_KEYS:
        return SessionCommand("answer", OPTION_KEYS.index(key))
    if key.isdigit() and 1 <= int(key) <= len(OPTION_KEYS):
        return SessionCommand("answer", int(key) - 1)
    return None


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    delay: float = 0.0,
    sleep: Sleeper = time.sleep,
) -> QuizRunResult:
    """Drive ``session`` to completion (or until the learner quits)."""

    exit_action: ExitAction = "completed"
    while True:
        prompt = session.next_question()
        if isinstance(prompt, SessionComplete):
            break
        _render_question(console, prompt)
        command = _read_command(console, input_provider)
        if command is None or command.type == "quit":
            console.print("\n[bold yellow]Session ended early.[/]")
            exit_action = "quit"
            break
        assert command.index is not None
        result = session.submit_answer(command.index)
        _render_feedback(console, prompt, result)
        if delay > 0:
            sleep(delay)

    report = session.report()
    render_report(console, report)
    return QuizRunResult(report=report, exit_action=exit_action)


def _read_command(
    console: Console, input_provider: InputProvider
) -> SessionCommand | None:
    while True:
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            return None
        command = parse_session_command(raw)
        if command is not None:
            return command
        keys = "/".join(OPTION_KEYS)
        console.print(f"[red]Answer with {keys} (or 1-4), or 'quit'.[/]")


def _render_question(console: Console, prompt: QuestionPrompt) -> None:
    header = Text.assemble(
        (f"Question {prompt.number}", "bold cyan"),
        (f" / {prompt.total}", "dim"),
        (f"  [{prompt.difficulty.label}]", "magenta"),
    )
    console.print()
    console.rule(header)
    if prompt.topic:
        console.print(Text(f"Topic: {prompt.topic}", style="dim"))
    console.print(Text(prompt.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    for key, option in zip(OPTION_KEYS, prompt.options):
        table.add_row(key, Text(option))
    console.print(table)


def _render_feedback(
    console: Console, prompt: QuestionPrompt, result: AnswerResult
) -> None:
    if result.correct:
        console.print("[bold green]Correct![/]")
    else:
        key = OPTION_KEYS[result.correct_index]
        answer = prompt.options[result.correct_index]
        console.print(
            Text.assemble(
                ("Wrong.", "bold red"), f" The answer was {key}) {answer}"
            )
        )
    if result.mastery is not None:
        console.print(
            Text(f"{prompt.topic} mastery: {result.mastery:.2f}", style="dim")
        )


def _mastery_label(probability: float) -> str:
    if probability >= MASTERY_HARD:
        return "strong"
    if probability >= MASTERY_MEDIUM:
        return "developing"
    return "needs work"


def render_report(console: Console, report: SessionReport) -> None:
    """Print the end-of-session summary tables."""

    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Mode", report.mode)
    overview.add_row("Level", str(report.level))
    overview.add_row("Answered", f"{report.served}/{report.total_questions}")
    overview.add_row("Score", f"{report.score}/{report.total_questions}")
    overview.add_row("Accuracy", f"{report.accuracy * 100:.1f}%")
    console.print(overview)

    if report.is_partial:
        console.print(
            Panel(
                "The session ended before all questions were served.",
                border_style="yellow",
            )
        )

    if report.mastery:
        mastery = Table(title="Knowledge states", box=box.SIMPLE)
        mastery.add_column("Topic")
        mastery.add_column("Mastery", justify="right")
        mastery.add_column("Status")
        for topic, probability in report.mastery.items():
            mastery.add_row(
                Text(topic), f"{probability:.2f}", _mastery_label(probability)
            )
        console.print(mastery)

    if report.responses:
        responses = Table(title="Responses", box=box.SIMPLE, expand=True)
        responses.add_column("#", justify="right")
        responses.add_column("Question", overflow="fold")
        responses.add_column("Tier")
        responses.add_column("Your answer")
        responses.add_column("Correct answer")
        responses.add_column("Result", justify="center")
        for number, response in enumerate(report.responses, start=1):
            responses.add_row(
                str(number),
                Text(response.question.text),
                response.question.difficulty.label,
                OPTION_KEYS[response.selected_index],
                OPTION_KEYS[response.question.correct_index],
                "yes" if response.is_correct else "no",
            )
        console.print(responses)
