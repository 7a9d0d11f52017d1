"""Layered TOML settings: defaults, a config file and prefixed env vars."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Mapping, Optional

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - interpreter guard
    raise RuntimeError("Python 3.11+ is required for tomllib support.") from exc

from ..errors import ConfigError

__all__ = [
    "TomlConfigError",
    "load_toml",
    "layer_table",
    "EnvReader",
    "write_toml_template",
]

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


class TomlConfigError(ConfigError):
    """Raised when a TOML file cannot be read or does not fit the defaults."""


def load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML {path}: {exc}") from exc


def layer_table(
    defaults: Mapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> dict[str, Any]:
    """Return a copy of ``defaults`` with ``override`` laid on top.

    Every key in ``override`` must already exist in ``defaults``. Tables must
    stay tables, and a scalar must keep the kind of its default: booleans stay
    booleans, numbers stay numbers (ints and floats mix freely) and strings
    stay strings. ``defaults`` itself is never modified.
    """

    layered = copy.deepcopy(dict(defaults))
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in layered:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        current = layered[key]
        if isinstance(current, Mapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected table for '{dotted}', found {type(value).__name__}."
                )
            layered[key] = layer_table(current, value, path=f"{dotted}.")
            continue
        expected = _kind(current)
        if expected is not None and _kind(value) != expected:
            raise TomlConfigError(
                f"'{dotted}' must be a {expected}, found {type(value).__name__}."
            )
        layered[key] = value
    return layered


def _kind(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


class EnvReader:
    """Typed lookups of ``<prefix><KEY>`` variables in an environment map.

    Blank values read as unset; malformed values raise ``ConfigError`` naming
    the full variable.
    """

    def __init__(self, env: Mapping[str, str], prefix: str) -> None:
        self._env = env
        self.prefix = prefix

    def string(self, key: str) -> Optional[str]:
        raw = self._env.get(f"{self.prefix}{key}")
        if raw is None:
            return None
        return raw.strip() or None

    def number(self, key: str) -> Optional[float]:
        raw = self.string(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(
                f"{self.prefix}{key} must be a number, got '{raw}'."
            ) from exc

    def boolean(self, key: str) -> Optional[bool]:
        raw = self.string(key)
        if raw is None:
            return None
        lowered = raw.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigError(f"{self.prefix}{key} must be a boolean, got '{raw}'.")


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
) -> Path:
    """Write ``template`` to ``path``; an existing file needs ``overwrite``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.write_text(template, encoding="utf-8")
    return path
