"""TOML loading, merging and field validation helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - defensive guard
    raise RuntimeError("Python 3.11+ is required for tomllib support.") from exc

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "require_positive_int",
    "require_non_negative_int",
    "require_bool",
    "require_float_range",
    "require_choice",
    "coerce_optional_path",
    "coerce_optional_int",
]


class TomlConfigError(RuntimeError):
    """Raised when TOML config IO or validation fails."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document from ``path``.

    Errors are surfaced as :class:`TomlConfigError` instances so callers can
    translate them into domain-specific exceptions.
    """

    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc
    return data


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base`` rejecting unknown keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        base_value = base[key]
        if isinstance(base_value, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted,
                        type(value).__name__,
                    )
                )
            merge_defaults(base_value, value, path=f"{dotted}.")
            continue
        base[key] = value


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path`` honouring ``overwrite`` semantics."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    with path.open("w", encoding="utf-8") as handle:
        handle.write(template)
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise TomlConfigError(f"'{field}' must be a positive integer.")
    return value


def require_non_negative_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TomlConfigError(f"'{field}' must be a non-negative integer.")
    return value


def require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise TomlConfigError(f"'{field}' must be a boolean.")
    return value


def require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TomlConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise TomlConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def require_choice(value: Any, *, field: str, choices: Sequence[str]) -> str:
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise TomlConfigError(
            "'{0}' must be one of {1}.".format(field, ", ".join(choices))
        )
    return value.strip().lower()


def coerce_optional_path(value: Any, *, field: str) -> Optional[Path]:
    """Treat an empty string as "not set"; TOML has no null."""

    if value is None or value == "":
        return None
    if not isinstance(value, str) or not value.strip():
        raise TomlConfigError(f"'{field}' must be a path string when set.")
    return Path(value).expanduser()


def coerce_optional_int(value: Any, *, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TomlConfigError(f"'{field}' must be an integer when set.")
    return value
