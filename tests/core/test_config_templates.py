from __future__ import annotations

from pathlib import Path

import pytest

from adaptive_quizzer.core import config_templates
from adaptive_quizzer.core.config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
)
from adaptive_quizzer.core.workspace import ensure_workspace


def test_quizzer_template_reads_and_writes(tmp_path: Path) -> None:
    template = config_templates.get_template("quizzer")
    assert isinstance(template, ConfigTemplate)

    contents = template.read_text()
    for table in ("[session]", "[fixed]", "[knowledge]", "[bank]", "[export]"):
        assert table in contents

    target = tmp_path / "config.toml"
    assert template.write(target) == target
    assert target.read_text(encoding="utf-8") == contents

    with pytest.raises(ConfigTemplateError):
        template.write(target)

    assert template.write(target, overwrite=True) == target


def test_iter_templates_returns_registered_templates() -> None:
    names = {template.name for template in config_templates.iter_templates()}
    assert names == {"quizzer"}


@pytest.mark.parametrize("unknown", ["missing", "", "rag"])
def test_get_template_unknown_raises(unknown: str) -> None:
    with pytest.raises(ConfigTemplateError):
        config_templates.get_template(unknown)


def test_missing_resource_raises() -> None:
    broken = ConfigTemplate(
        name="broken",
        filename="absent.toml",
        description="",
        package="adaptive_quizzer.quizzer",
    )

    with pytest.raises(ConfigTemplateError):
        broken.read_text()


def test_install_keeps_existing_file_unless_forced(tmp_path: Path) -> None:
    layout = ensure_workspace(path=tmp_path / "ws")
    template = config_templates.get_template("quizzer")

    first = template.install(layout)
    assert first.written
    assert first.path == layout.config_file
    layout.config_file.write_text("# edited\n", encoding="utf-8")

    second = template.install(layout)
    assert second.status == "kept"
    assert layout.config_file.read_text(encoding="utf-8") == "# edited\n"

    forced = template.install(layout, force=True)
    assert forced.status == "written"
    assert "[session]" in layout.config_file.read_text(encoding="utf-8")


def test_malformed_template_is_rejected(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "broken.toml").write_text("[session\n", encoding="utf-8")
    monkeypatch.setattr(
        config_templates.resources, "files", lambda package: tmp_path
    )
    broken = ConfigTemplate(
        name="broken",
        filename="broken.toml",
        description="",
        package="adaptive_quizzer.quizzer",
    )

    with pytest.raises(ConfigTemplateError, match="not valid TOML"):
        broken.write(tmp_path / "out.toml")
    assert not (tmp_path / "out.toml").exists()
