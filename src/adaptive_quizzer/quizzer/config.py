"""TOML configuration for quiz sessions.

The config file groups settings by concern. Every key has a default, so an
empty (or missing, when not named explicitly) file yields a working setup.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from adaptive_quizzer.core.config import (
    TomlConfigError,
    coerce_optional_int,
    coerce_optional_path,
    load_toml,
    merge_defaults,
    require_bool,
    require_choice,
    require_float_range,
    require_non_negative_int,
    require_positive_int,
)
from adaptive_quizzer.core.workspace import WorkspaceLayout

from .engine import SESSION_MODES, SessionConfig
from .models import ConfigurationError
from .parser import BANK_FORMATS, ERROR_POLICIES
from .selector import SELECTION_POLICIES

__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigError",
    "SessionSection",
    "FixedSection",
    "KnowledgeSection",
    "BankSection",
    "ExportSection",
    "LoggingSection",
    "QuizzerConfig",
    "default_tree",
    "load_config",
    "resolve_config_path",
]

CONFIG_PATH_ENV = "QUIZZER_CONFIG"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

_DEFAULTS: Dict[str, Any] = {
    "session": {
        "total_questions": 20,
        "correct_to_level_up": 3,
        "wrong_to_level_down": 2,
        "mode": "adaptive",
        "selection_policy": "confidence_weighted",
        "level": 1,
        "next_question_delay": 1.0,
        "seed": "",
    },
    "fixed": {
        "easy_questions": 7,
        "medium_questions": 7,
        "hard_questions": 6,
    },
    "knowledge": {
        "correct_if_mastered": 0.85,
        "correct_if_not_mastered": 0.20,
        "initial_mastery": 0.5,
    },
    "bank": {
        "path": "",
        "directory": ".",
        "filename_pattern": "questions{level}.txt",
        "format": "auto",
        "on_error": "skip",
    },
    "export": {
        "results_dir": "",
        "csv": True,
        "json": True,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


class ConfigError(ConfigurationError):
    """Raised when the quizzer config cannot be read or is invalid."""


@dataclass(frozen=True)
class SessionSection:
    total_questions: int
    correct_to_level_up: int
    wrong_to_level_down: int
    mode: str
    selection_policy: str
    level: int
    next_question_delay: float
    seed: Optional[int]


@dataclass(frozen=True)
class FixedSection:
    easy_questions: int
    medium_questions: int
    hard_questions: int


@dataclass(frozen=True)
class KnowledgeSection:
    correct_if_mastered: float
    correct_if_not_mastered: float
    initial_mastery: float


@dataclass(frozen=True)
class BankSection:
    path: Optional[Path]
    directory: Path
    filename_pattern: str
    format: str
    on_error: str

    def resolve(self, level: int) -> Path:
        """Return the bank file for ``level`` unless ``path`` pins one."""

        if self.path is not None:
            return self.path
        return self.directory / self.filename_pattern.format(level=level)


@dataclass(frozen=True)
class ExportSection:
    results_dir: Optional[Path]
    csv: bool
    json: bool

    def directory(self, layout: WorkspaceLayout) -> Path:
        if self.results_dir is not None:
            return self.results_dir
        return layout.path_for("results")


@dataclass(frozen=True)
class LoggingSection:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizzerConfig:
    session: SessionSection
    fixed: FixedSection
    knowledge: KnowledgeSection
    bank: BankSection
    export: ExportSection
    logging: LoggingSection
    source: Optional[Path] = None

    def session_config(self) -> SessionConfig:
        """Flatten the relevant sections into the engine's ``SessionConfig``."""

        return SessionConfig(
            total_questions=self.session.total_questions,
            correct_to_level_up=self.session.correct_to_level_up,
            wrong_to_level_down=self.session.wrong_to_level_down,
            mode=self.session.mode,
            selection_policy=self.session.selection_policy,
            level=self.session.level,
            easy_questions=self.fixed.easy_questions,
            medium_questions=self.fixed.medium_questions,
            hard_questions=self.fixed.hard_questions,
            correct_if_mastered=self.knowledge.correct_if_mastered,
            correct_if_not_mastered=self.knowledge.correct_if_not_mastered,
            initial_mastery=self.knowledge.initial_mastery,
            bank_format=self.bank.format,
            on_parse_error=self.bank.on_error,
        )


def default_tree() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULTS)


def _build_session(section: Mapping[str, Any]) -> SessionSection:
    return SessionSection(
        total_questions=require_positive_int(
            section.get("total_questions"), field="session.total_questions"
        ),
        correct_to_level_up=require_positive_int(
            section.get("correct_to_level_up"),
            field="session.correct_to_level_up",
        ),
        wrong_to_level_down=require_positive_int(
            section.get("wrong_to_level_down"),
            field="session.wrong_to_level_down",
        ),
        mode=require_choice(
            section.get("mode"), field="session.mode", choices=SESSION_MODES
        ),
        selection_policy=require_choice(
            section.get("selection_policy"),
            field="session.selection_policy",
            choices=SELECTION_POLICIES,
        ),
        level=require_positive_int(section.get("level"), field="session.level"),
        next_question_delay=require_float_range(
            section.get("next_question_delay"),
            field="session.next_question_delay",
            min_value=0.0,
            max_value=60.0,
        ),
        seed=coerce_optional_int(section.get("seed"), field="session.seed"),
    )


def _build_fixed(section: Mapping[str, Any]) -> FixedSection:
    counts = {
        name: require_non_negative_int(section.get(name), field=f"fixed.{name}")
        for name in ("easy_questions", "medium_questions", "hard_questions")
    }
    if sum(counts.values()) == 0:
        raise TomlConfigError("fixed mode needs at least one question.")
    return FixedSection(**counts)


def _build_knowledge(section: Mapping[str, Any]) -> KnowledgeSection:
    probabilities = {
        name: require_float_range(
            section.get(name),
            field=f"knowledge.{name}",
            min_value=0.0,
            max_value=1.0,
        )
        for name in (
            "correct_if_mastered",
            "correct_if_not_mastered",
            "initial_mastery",
        )
    }
    if (
        probabilities["correct_if_mastered"]
        <= probabilities["correct_if_not_mastered"]
    ):
        raise TomlConfigError(
            "knowledge.correct_if_mastered must exceed "
            "knowledge.correct_if_not_mastered."
        )
    return KnowledgeSection(**probabilities)


def _build_bank(section: Mapping[str, Any]) -> BankSection:
    pattern = section.get("filename_pattern")
    if not isinstance(pattern, str) or not pattern.strip():
        raise TomlConfigError("'bank.filename_pattern' must be a non-empty string.")
    try:
        pattern.format(level=1)
    except (KeyError, IndexError, ValueError) as exc:
        raise TomlConfigError(
            "'bank.filename_pattern' may only use the {level} placeholder."
        ) from exc
    directory = coerce_optional_path(
        section.get("directory"), field="bank.directory"
    )
    return BankSection(
        path=coerce_optional_path(section.get("path"), field="bank.path"),
        directory=directory if directory is not None else Path("."),
        filename_pattern=pattern,
        format=require_choice(
            section.get("format"), field="bank.format", choices=BANK_FORMATS
        ),
        on_error=require_choice(
            section.get("on_error"), field="bank.on_error", choices=ERROR_POLICIES
        ),
    )


def _build_export(section: Mapping[str, Any]) -> ExportSection:
    return ExportSection(
        results_dir=coerce_optional_path(
            section.get("results_dir"), field="export.results_dir"
        ),
        csv=require_bool(section.get("csv"), field="export.csv"),
        json=require_bool(section.get("json"), field="export.json"),
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingSection:
    level = require_choice(
        section.get("level"), field="logging.level", choices=LOG_LEVELS
    )
    return LoggingSection(
        level=level.upper(),
        verbose=require_bool(section.get("verbose"), field="logging.verbose"),
    )


def _build_config(
    tree: Mapping[str, Any], *, source: Optional[Path]
) -> QuizzerConfig:
    return QuizzerConfig(
        session=_build_session(tree["session"]),
        fixed=_build_fixed(tree["fixed"]),
        knowledge=_build_knowledge(tree["knowledge"]),
        bank=_build_bank(tree["bank"]),
        export=_build_export(tree["export"]),
        logging=_build_logging(tree["logging"]),
        source=source,
    )


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace: Optional[WorkspaceLayout] = None,
) -> tuple[Optional[Path], bool]:
    """Return ``(path, required)`` for the config file to read.

    ``required`` is true when the path came from the caller or from
    ``QUIZZER_CONFIG``; the workspace file is optional.
    """

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser(), True
    env_override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser(), True
    if workspace is not None:
        return workspace.config_file, False
    return None, False


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace: Optional[WorkspaceLayout] = None,
) -> QuizzerConfig:
    """Load, merge and validate the quizzer config."""

    path, required = resolve_config_path(
        explicit_path=explicit_path, env=env, workspace=workspace
    )
    tree = default_tree()
    source: Optional[Path] = None
    try:
        if path is not None and (required or path.exists()):
            data = load_toml(path)
            merge_defaults(tree, data)
            source = path
        return _build_config(tree, source=source)
    except TomlConfigError as exc:
        raise ConfigError(str(exc)) from exc
