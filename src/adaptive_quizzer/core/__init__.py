"""Shared plumbing for quizzer commands: config, logging and workspace."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
    TemplateInstall,
    get_template,
    iter_templates,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    describe_layout,
    ensure_workspace,
)

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "ConfigTemplate",
    "ConfigTemplateError",
    "TemplateInstall",
    "get_template",
    "iter_templates",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "describe_layout",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
