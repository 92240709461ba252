"""Unified ``quizzer`` entry point."""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Iterable, Mapping, Optional, Sequence


CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    summary: str
    handler: Optional[CommandHandler] = None
    is_tui: bool = False


def _module_handler(func_name: str, command: str, module: str) -> CommandHandler:
    return lambda argv: _run_module_command(
        module, func_name, f"quizzer {command}", argv
    )


_MAIN = "adaptive_quizzer.quizzer._main"

_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Create the workspace and a starter quizzer.toml.",
        handler=_module_handler("main", "init", "adaptive_quizzer.workspace.cli"),
    ),
    CommandSpec(
        name="check",
        summary="Validate a question bank and count questions per tier.",
        handler=_module_handler("check_main", "check", _MAIN),
    ),
    CommandSpec(
        name="play",
        summary="Run an adaptive quiz session in the terminal.",
        handler=_module_handler("play_main", "play", _MAIN),
    ),
    CommandSpec(
        name="tui",
        summary="Run an adaptive quiz session in a Textual app.",
        is_tui=True,
        handler=_module_handler("tui_main", "tui", _MAIN),
    ),
    CommandSpec(
        name="report",
        summary="Show a saved JSON session report.",
        handler=_module_handler("report_main", "report", _MAIN),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def _sorted_specs() -> Iterable[CommandSpec]:
    return _COMMAND_SPECS


def format_command_table() -> str:
    width = max(len(spec.name) for spec in _sorted_specs())
    lines = ["Available commands:"]
    for spec in _sorted_specs():
        suffix = " (TUI)" if spec.is_tui else ""
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    return "\n".join(
        [
            "Usage: quizzer <command> [args...]",
            "Run `quizzer list` for commands or `quizzer help <name>` for "
            "details.",
            "",
            format_command_table(),
        ]
    )


def _print(
    text: str, *, stream: Optional[Callable[[str], None]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _handle_version() -> int:
    try:
        version = metadata.version("adaptive-quizzer")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if not spec:
        _print(f"Unknown command '{argv[0]}'.", stream=sys.stderr.write)
        _print(format_command_table(), stream=sys.stderr.write)
        return 2
    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `quizzer {spec.name} --help` for its options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        _print(format_usage())
        return 2

    head, *tail = args
    if head in ("-h", "--help"):
        _print(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _handle_version()
    if head == "list":
        _print(format_command_table())
        return 0
    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec and spec.handler:
        return spec.handler(tail)

    _print(f"Unknown command '{head}'.", stream=sys.stderr.write)
    _print(format_command_table(), stream=sys.stderr.write)
    return 2


def _run_module_command(
    module_name: str,
    func_name: str,
    prog_name: str,
    argv: Sequence[str],
) -> int:
    module = import_module(module_name)
    return _invoke_main(getattr(module, func_name), prog_name, argv)


def _invoke_main(
    func: Callable[..., object], prog_name: str, argv: Sequence[str]
) -> int:
    args = list(argv)
    old_argv = sys.argv
    sys.argv = [prog_name, *args]
    try:
        result = func(args) if _accepts_argv(func) else func()
    except SystemExit as exc:
        return _normalize_system_exit(exc)
    finally:
        sys.argv = old_argv
    if isinstance(result, int):
        return result
    return 0


def _accepts_argv(func: Callable[..., object]) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    return any(
        param.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        )
        for param in signature.parameters.values()
    )


def _normalize_system_exit(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _print(str(code), stream=sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
