"""Configuration loader for quizmaster sessions and the host CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Optional

from .core.config import EnvReader, layer_table, load_toml, write_toml_template
from .engine.merge import DuplicatePolicy
from .errors import ConfigError

CONFIG_FILENAME = "quizmaster.toml"
CONFIG_ENV = "QUIZMASTER_CONFIG"
ENV_PREFIX = "QUIZMASTER_"
TEMPLATE_RESOURCE = "template.toml"

DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "exam": {
        "time_limit_minutes": 0,
        "immediate_feedback": False,
        "feedback_dwell_ms": 2000,
        "shuffle": True,
    },
    "arcade": {
        "time_per_question_seconds": 15,
        "timer_enabled": True,
        "feedback_dwell_ms": 1500,
    },
    "merge": {"duplicates": DuplicatePolicy.DISCARD.value},
    "logging": {
        "level": "INFO",
        "verbose": False,
        "dir": "~/.quizmaster/logs",
    },
    "ai": {
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "max_tokens": 2000,
    },
}


@dataclass(frozen=True)
class ExamSettings:
    time_limit_minutes: float
    immediate_feedback: bool
    feedback_dwell_ms: int
    shuffle: bool

    @property
    def time_limit_ms(self) -> Optional[int]:
        if self.time_limit_minutes <= 0:
            return None
        return int(self.time_limit_minutes * 60_000)


@dataclass(frozen=True)
class ArcadeSettings:
    time_per_question_seconds: float
    timer_enabled: bool
    feedback_dwell_ms: int

    @property
    def time_per_question_ms(self) -> int:
        return int(self.time_per_question_seconds * 1000)


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    verbose: bool
    dir: Path


@dataclass(frozen=True)
class AISettings:
    model: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class EngineConfig:
    """Fully resolved configuration for one quizmaster run."""

    exam: ExamSettings
    arcade: ArcadeSettings
    duplicates: DuplicatePolicy
    logging: LoggingSettings
    ai: AISettings
    config_path: Optional[Path] = None


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    time_limit_minutes: Optional[float] = None
    immediate_feedback: Optional[bool] = None
    shuffle: Optional[bool] = None
    time_per_question_seconds: Optional[float] = None
    timer_enabled: Optional[bool] = None
    duplicates: Optional[DuplicatePolicy] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None
    model: Optional[str] = None


def default_template() -> str:
    """Return the packaged ``quizmaster.toml`` template text."""
    return (
        resources.files("quizmaster")
        .joinpath(TEMPLATE_RESOURCE)
        .read_text(encoding="utf-8")
    )


def write_default_config(path: Path, *, overwrite: bool = False) -> Path:
    return write_toml_template(
        path, template=default_template(), overwrite=overwrite
    )


def load_config(
    config_path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[ConfigOverrides] = None,
) -> EngineConfig:
    """Load configuration applying precedence CLI > env > TOML > defaults.

    An explicit ``config_path`` (or ``$QUIZMASTER_CONFIG``) must exist; the
    implicit ``./quizmaster.toml`` is optional. Every failure surfaces as
    :class:`~quizmaster.errors.ConfigError`.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env
    env_vars = EnvReader(env_map, ENV_PREFIX)

    requested_path = _resolve_config_path(config_path, env_map)
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        table = layer_table(DEFAULTS, load_toml(requested_path))
    elif config_path is not None or _has_env_config(env_map):
        raise ConfigError(f"Config file not found: {requested_path}")
    else:
        table = layer_table(DEFAULTS, {})

    exam_table = table["exam"]
    arcade_table = table["arcade"]
    logging_table = table["logging"]
    ai_table = table["ai"]

    exam = ExamSettings(
        time_limit_minutes=_non_negative(
            _pick_first(
                overrides.time_limit_minutes,
                env_vars.number("TIME_LIMIT_MINUTES"),
                exam_table["time_limit_minutes"],
            ),
            "exam.time_limit_minutes",
        ),
        immediate_feedback=_pick_first(
            overrides.immediate_feedback,
            env_vars.boolean("IMMEDIATE_FEEDBACK"),
            exam_table["immediate_feedback"],
        ),
        feedback_dwell_ms=int(
            _non_negative(exam_table["feedback_dwell_ms"], "exam.feedback_dwell_ms")
        ),
        shuffle=_pick_first(
            overrides.shuffle,
            env_vars.boolean("SHUFFLE"),
            exam_table["shuffle"],
        ),
    )

    seconds = _pick_first(
        overrides.time_per_question_seconds,
        env_vars.number("TIME_PER_QUESTION_SECONDS"),
        arcade_table["time_per_question_seconds"],
    )
    if seconds <= 0:
        raise ConfigError("arcade.time_per_question_seconds must be positive.")
    arcade = ArcadeSettings(
        time_per_question_seconds=seconds,
        timer_enabled=_pick_first(
            overrides.timer_enabled,
            env_vars.boolean("TIMER_ENABLED"),
            arcade_table["timer_enabled"],
        ),
        feedback_dwell_ms=int(
            _non_negative(
                arcade_table["feedback_dwell_ms"], "arcade.feedback_dwell_ms"
            )
        ),
    )

    duplicates = _resolve_duplicates(
        overrides.duplicates,
        env_vars.string("DUPLICATES"),
        table["merge"]["duplicates"],
    )

    log_dir = _pick_first(env_vars.string("LOG_DIR"), logging_table["dir"])
    if not log_dir.strip():
        raise ConfigError("logging.dir must be a non-empty string.")
    level = _pick_first(
        overrides.log_level, env_vars.string("LOG_LEVEL"), logging_table["level"]
    ).strip()
    if not level:
        raise ConfigError("logging.level must be a non-empty string.")
    logging_settings = LoggingSettings(
        level=level.upper(),
        verbose=_pick_first(
            overrides.verbose,
            env_vars.boolean("VERBOSE"),
            logging_table["verbose"],
        ),
        dir=Path(log_dir).expanduser(),
    )

    model = _pick_first(
        overrides.model, env_vars.string("AI_MODEL"), ai_table["model"]
    ).strip()
    if not model:
        raise ConfigError("ai.model must be a non-empty string.")
    if ai_table["max_tokens"] <= 0:
        raise ConfigError("ai.max_tokens must be positive.")
    ai = AISettings(
        model=model,
        temperature=float(ai_table["temperature"]),
        max_tokens=int(ai_table["max_tokens"]),
    )

    return EngineConfig(
        exam=exam,
        arcade=arcade,
        duplicates=duplicates,
        logging=logging_settings,
        ai=ai,
        config_path=loaded_path,
    )


def _resolve_config_path(
    config_path: Optional[Path], env_map: Mapping[str, str]
) -> Path:
    if config_path is not None:
        return Path(config_path).expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return Path.cwd() / CONFIG_FILENAME


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _resolve_duplicates(
    override: Optional[DuplicatePolicy],
    env_value: Optional[str],
    file_value: str,
) -> DuplicatePolicy:
    if override is not None:
        return override
    try:
        return DuplicatePolicy.from_value(
            env_value if env_value is not None else file_value
        )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _non_negative(value: float, key: str) -> float:
    if value < 0:
        raise ConfigError(f"{key} must be >= 0.")
    return value


def _pick_first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
