"""Command entry points: ``check``, ``play``, ``tui`` and ``report``."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import random
import time
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adaptive_quizzer.core.logging import configure_logger
from adaptive_quizzer.core.workspace import (
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

from .config import QuizzerConfig, load_config
from .engine import SESSION_MODES, QuizSession, SessionConfig
from .models import ConfigurationError, Difficulty
from .parser import BANK_FORMATS, BankParser, ParseError
from .recorder import SessionReport, csv_filename
from .selector import SELECTION_POLICIES
from .session import render_report, run_quiz_session

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


@dataclasses.dataclass(frozen=True)
class _Prepared:
    layout: WorkspaceLayout
    config: QuizzerConfig
    session_config: SessionConfig
    bank_path: Path
    seed: Optional[int]
    delay: float
    export: bool


def _add_session_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "bank",
        nargs="?",
        type=Path,
        help=(
            "Question bank file (defaults to bank.path or "
            "bank.directory/bank.filename_pattern for the level)."
        ),
    )
    parser.add_argument("--config", type=Path, help="Path to quizzer.toml.")
    parser.add_argument("--mode", choices=SESSION_MODES)
    parser.add_argument("--policy", choices=SELECTION_POLICIES)
    parser.add_argument("--level", type=int)
    parser.add_argument(
        "--num", type=int, help="Number of questions in adaptive mode."
    )
    parser.add_argument("--seed", type=int, help="Seed the question order.")
    parser.add_argument(
        "--delay", type=float, help="Seconds before the next question."
    )
    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Skip writing the CSV and JSON results.",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Echo logs to stderr."
    )


def _build_play_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    _add_session_arguments(parser)
    return parser


def _prepare(
    args: argparse.Namespace, env: Optional[Mapping[str, str]]
) -> _Prepared:
    layout = ensure_workspace(env=env)
    config = load_config(explicit_path=args.config, env=env, workspace=layout)
    configure_logger(
        "adaptive_quizzer",
        log_dir=layout.path_for("logs"),
        level=config.logging.level,
        verbose=config.logging.verbose or args.verbose,
    )

    overrides = {
        "mode": args.mode,
        "selection_policy": args.policy,
        "level": args.level,
        "total_questions": args.num,
    }
    session_config = dataclasses.replace(
        config.session_config(),
        **{key: value for key, value in overrides.items() if value is not None},
    )
    session_config.validate()

    bank_path = args.bank or config.bank.resolve(session_config.level)
    return _Prepared(
        layout=layout,
        config=config,
        session_config=session_config,
        bank_path=bank_path,
        seed=args.seed if args.seed is not None else config.session.seed,
        delay=(
            args.delay
            if args.delay is not None
            else config.session.next_question_delay
        ),
        export=not args.no_export,
    )


def _load_session(prepared: _Prepared) -> QuizSession:
    try:
        text = prepared.bank_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Question bank not found: {prepared.bank_path}"
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(
            f"Cannot read question bank {prepared.bank_path}: {exc}"
        ) from exc
    rng = random.Random(prepared.seed)
    return QuizSession.from_text(text, prepared.session_config, rng=rng)


def _export(
    report: SessionReport, prepared: _Prepared, console: Console
) -> int:
    export = prepared.config.export
    if not prepared.export or not (export.csv or export.json):
        return EXIT_OK
    directory = export.directory(prepared.layout)
    csv_path = directory / csv_filename(report.mode, report.level)
    try:
        if export.csv:
            report.write_csv(csv_path)
            console.print(f"Results saved to {csv_path}", soft_wrap=True)
        if export.json:
            json_path = report.write_json(csv_path.with_suffix(".json"))
            console.print(f"Report saved to {json_path}", soft_wrap=True)
    except OSError as exc:
        logger.error(
            "Failed to export session results",
            extra={"path": str(directory), "reason": str(exc)},
        )
        console.print(f"[red]Could not save results: {escape(str(exc))}[/]")
        return EXIT_FAILURE
    return EXIT_OK


def _run_prepared(
    argv: Optional[Sequence[str]],
    parser: argparse.ArgumentParser,
    env: Optional[Mapping[str, str]],
    console: Console,
    runner: Callable[[QuizSession, _Prepared], SessionReport],
) -> int:
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        prepared = _prepare(args, env)
        session = _load_session(prepared)
    except ParseError as exc:
        console.print(f"[red]Invalid question bank:[/] {escape(str(exc))}")
        return EXIT_FAILURE
    except (ConfigurationError, WorkspaceError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return EXIT_USAGE

    for error in session.parse_errors:
        console.print(f"[yellow]Skipped record:[/] {escape(str(error))}")
    report = runner(session, prepared)
    return _export(report, prepared, console)


def play_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[Callable[[], str]] = None,
    env: Optional[Mapping[str, str]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    out = console or Console()
    ask = input_provider or (lambda: out.input("[bold]Answer (A-D, quit):[/] "))
    parser = _build_play_parser(
        "quizzer play", "Run an adaptive quiz in the terminal."
    )

    def runner(session: QuizSession, prepared: _Prepared) -> SessionReport:
        result = run_quiz_session(
            session, out, ask, delay=prepared.delay, sleep=sleep
        )
        return result.report

    return _run_prepared(argv, parser, env, out, runner)


def tui_main(
    argv: Optional[Sequence[str]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    from .view.quiz import QuizApp

    out = Console()
    parser = _build_play_parser(
        "quizzer tui", "Run an adaptive quiz in a Textual app."
    )

    def runner(session: QuizSession, prepared: _Prepared) -> SessionReport:
        QuizApp(session, delay=prepared.delay).run()
        report = session.report()
        render_report(out, report)
        return report

    return _run_prepared(argv, parser, env, out, runner)


def check_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
) -> int:
    out = console or Console()
    parser = argparse.ArgumentParser(
        prog="quizzer check",
        description="Validate a question bank and summarise its contents.",
    )
    parser.add_argument("bank", type=Path)
    parser.add_argument("--format", choices=BANK_FORMATS, default="auto")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject the bank on the first malformed record.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    bank_parser = BankParser(
        fmt=args.format, on_error="raise" if args.strict else "skip"
    )
    try:
        text = args.bank.read_text(encoding="utf-8-sig")
        questions = bank_parser.parse(text)
    except FileNotFoundError:
        out.print(
            f"[red]Question bank not found:[/] {escape(str(args.bank))}"
        )
        return EXIT_FAILURE
    except (OSError, UnicodeDecodeError) as exc:
        detail = escape(f"{args.bank}: {exc}")
        out.print(f"[red]Cannot read question bank:[/] {detail}")
        return EXIT_FAILURE
    except ParseError as exc:
        out.print(f"[red]Invalid question bank:[/] {escape(str(exc))}")
        return EXIT_FAILURE

    out.print(f"{args.bank}: {len(questions)} question(s)", soft_wrap=True)
    tiers = Table(title="Per tier")
    tiers.add_column("Tier")
    tiers.add_column("Questions", justify="right")
    for tier in Difficulty:
        count = sum(1 for q in questions if q.difficulty is tier)
        tiers.add_row(tier.label, str(count))
    out.print(tiers)

    topics: dict[str, int] = {}
    for question in questions:
        name = question.topic or "(none)"
        topics[name] = topics.get(name, 0) + 1
    topic_table = Table(title="Topics")
    topic_table.add_column("Topic")
    topic_table.add_column("Questions", justify="right")
    for name, count in sorted(topics.items()):
        topic_table.add_row(name, str(count))
    out.print(topic_table)

    for error in bank_parser.errors:
        out.print(f"[yellow]Skipped record:[/] {escape(str(error))}")
    return EXIT_OK


def report_main(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
) -> int:
    out = console or Console()
    parser = argparse.ArgumentParser(
        prog="quizzer report", description="Show a saved session report."
    )
    parser.add_argument("file", type=Path, help="JSON report written by play.")
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        data = json.loads(args.file.read_text(encoding="utf-8"))
        report = SessionReport.from_dict(data)
    except FileNotFoundError:
        out.print(f"[red]Report not found:[/] {escape(str(args.file))}")
        return EXIT_FAILURE
    except (ValueError, TypeError, AttributeError) as exc:
        out.print(f"[red]Unreadable report:[/] {escape(str(exc))}")
        return EXIT_FAILURE
    render_report(out, report)
    return EXIT_OK
