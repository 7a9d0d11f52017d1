"""Core shared helpers for quizmaster: config IO, logging and AI clients."""

from __future__ import annotations

from .ai import chat_text, load_client
from .config import (
    EnvReader,
    TomlConfigError,
    layer_table,
    load_toml,
    write_toml_template,
)
from .logging import JsonLogFormatter, configure_logger

__all__ = [
    "chat_text",
    "load_client",
    "EnvReader",
    "TomlConfigError",
    "layer_table",
    "load_toml",
    "write_toml_template",
    "configure_logger",
    "JsonLogFormatter",
]
