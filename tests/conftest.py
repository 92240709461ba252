from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from fixtures import WorkspaceBuilder  # noqa: E402

# Make src/ importable without an editable install
ROOT = TESTS_DIR.parent
for extra in (ROOT / "src",):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def quizzer_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the quizzer workspace at a throwaway directory."""

    home = tmp_path / "quizzer-home"
    monkeypatch.setenv("ADAPTIVE_QUIZZER_HOME", str(home))
    monkeypatch.delenv("QUIZZER_CONFIG", raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_quizzer_logger() -> Iterator[None]:
    """Undo handlers and propagation changes made by ``configure_logger``."""

    yield
    logger = logging.getLogger("adaptive_quizzer")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
