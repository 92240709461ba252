"""``quizzer init``: prepare the workspace and its config file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from adaptive_quizzer.core import config_templates
from adaptive_quizzer.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizzer init",
        description=(
            "Create the quizzer workspace (config, logs, results) and write "
            "a starter quizzer.toml."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to ADAPTIVE_QUIZZER_HOME "
            "or ~/.adaptive-quizzer)."
        ),
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing quizzer.toml with the template.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _status(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1

    template = config_templates.get_template("quizzer")
    try:
        installed = template.install(layout, force=args.force)
    except (config_templates.ConfigTemplateError, OSError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1

    if args.quiet:
        return 0

    lines = [f"Workspace ready at {layout.home} ({_status(layout.created, 'home')})"]
    lines.append("Subdirectories:")
    width = max(len(name) for name in layout.directories)
    for name, directory in layout.items():
        status = _status(layout.created, name)
        lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    lines.append(f"Config: {installed.path} ({installed.status})")
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
