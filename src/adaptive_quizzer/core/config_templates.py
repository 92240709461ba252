"""Starter config files that ``quizzer init`` copies into a workspace.

Each template is a packaged TOML resource plus the workspace-relative path it
is installed to. Templates are parsed before they are written so a broken
resource never lands in a user's workspace.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .config import TomlConfigError, write_toml_template

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .workspace import WorkspaceLayout

__all__ = [
    "ConfigTemplate",
    "ConfigTemplateError",
    "TemplateInstall",
    "get_template",
    "iter_templates",
]


class ConfigTemplateError(RuntimeError):
    """Raised for unknown, missing or malformed config templates."""


@dataclass(frozen=True)
class TemplateInstall:
    path: Path
    written: bool

    @property
    def status(self) -> str:
        return "written" if self.written else "kept"


@dataclass(frozen=True)
class ConfigTemplate:
    name: str
    filename: str
    description: str
    package: str
    target: str = "config/quizzer.toml"

    def read_text(self) -> str:
        resource = resources.files(self.package).joinpath(self.filename)
        try:
            text = resource.read_text(encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise ConfigTemplateError(
                f"Template '{self.name}' is missing from {self.package}."
            ) from exc
        try:
            tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigTemplateError(
                f"Template '{self.name}' is not valid TOML: {exc}"
            ) from exc
        return text

    def write(
        self, path: Path, *, overwrite: bool = False, mode: int = 0o600
    ) -> Path:
        try:
            return write_toml_template(
                path, template=self.read_text(), overwrite=overwrite, mode=mode
            )
        except TomlConfigError as exc:
            raise ConfigTemplateError(str(exc)) from exc

    def install(
        self, layout: "WorkspaceLayout", *, force: bool = False
    ) -> TemplateInstall:
        """Place the template under the workspace home.

        An existing file is left alone unless ``force`` is set.
        """

        path = layout.home / self.target
        if path.exists() and not force:
            return TemplateInstall(path=path, written=False)
        self.write(path, overwrite=True)
        return TemplateInstall(path=path, written=True)


_TEMPLATES = (
    ConfigTemplate(
        name="quizzer",
        filename="template.toml",
        description="Session, bank and export defaults for quiz sessions.",
        package="adaptive_quizzer.quizzer",
    ),
)


def get_template(name: str) -> ConfigTemplate:
    for template in _TEMPLATES:
        if template.name == name:
            return template
    known = ", ".join(template.name for template in _TEMPLATES)
    raise ConfigTemplateError(
        f"Unknown config template '{name}' (known: {known})."
    )


def iter_templates() -> Iterable[ConfigTemplate]:
    return _TEMPLATES
