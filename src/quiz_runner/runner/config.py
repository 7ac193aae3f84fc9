"""Configuration loader for quiz runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional, Sequence

from quiz_runner.core import config as core_config
from quiz_runner.core import workspace as workspace_mod

from .session import QUESTIONS_PER_TEST

CONFIG_FILENAME = "quiz_runner.toml"
CONFIG_ENV = "QUIZ_RUNNER_CONFIG"
ENV_PREFIX = "QUIZ_RUNNER_"

DEFAULT_SOURCES: tuple[str, ...] = (
    "Questions-Set-1.json",
    "Questions-Set-2.json",
    "Questions-Set-3.json",
    "Questions-Set-4.json",
    "Questions-Set-5.json",
    "Last-Day-Revision-Test-1-Q1-Q50-Questions.json",
    "Last-Day-Revision-Test-1-Q51-Q100-Questions.json",
    "Last-Day-Revision-Test-2-Q1-Q50-Questions.json",
    "Last-Day-Revision-Test-2-Q51-Q100-Questions.json",
    "Last-Day-Revision-Test-3-Q1-Q50-Questions.json",
    "Last-Day-Revision-Test-3-Q51-Q100-Questions.json",
)
_DEFAULT_MAX_WORKERS = 4
_DEFAULT_TICK_INTERVAL = 1.0
_DEFAULT_LOG_LEVEL = "INFO"


class QuizRunnerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizRunnerConfig:
    """Fully resolved settings for one quiz run."""

    bank_dir: Path
    sources: tuple[str, ...]
    max_workers: int
    questions_per_test: int
    show_explanations: bool
    tick_interval: float
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """Command-line values applied on top of file and environment options."""

    bank_dir: Optional[Path] = None
    sources: Optional[Sequence[str]] = None
    questions_per_test: Optional[int] = None
    show_explanations: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizRunnerConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults.

    A missing default config file is fine; a missing file that was asked for
    explicitly (``config_path`` or ``QUIZ_RUNNER_CONFIG``) is an error.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested_path)
            )
        except core_config.TomlConfigError as exc:
            raise QuizRunnerConfigError(str(exc)) from exc
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizRunnerConfigError(f"Config file not found: {requested_path}")

    bank = table["bank"]
    session = table["session"]

    bank_dir = _resolve_bank_dir(
        _pick_first(
            overrides.bank_dir,
            _parse_env_path(env_map, "BANK_DIR"),
            _coerce_optional_path(bank["dir"]),
        ),
        layout=layout,
    )
    sources = _normalize_sources(
        _pick_first(
            overrides.sources,
            _parse_env_list(env_map, "SOURCES"),
            bank["sources"],
        )
    )
    max_workers = _positive_int(bank["max_workers"], "bank.max_workers")
    questions_per_test = _positive_int(
        _pick_first(
            overrides.questions_per_test,
            _parse_env_string(env_map, "QUESTIONS_PER_TEST"),
            session["questions_per_test"],
        ),
        "session.questions_per_test",
    )
    show_explanations = _pick_first(
        overrides.show_explanations, session["show_explanations"]
    )
    if not isinstance(show_explanations, bool):
        raise QuizRunnerConfigError(
            "session.show_explanations must be true or false."
        )
    tick_interval = _positive_float(
        session["tick_interval"], "session.tick_interval"
    )
    log_level = _resolve_log_level(
        _pick_first(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        )
    )

    config = QuizRunnerConfig(
        bank_dir=bank_dir,
        sources=sources,
        max_workers=max_workers,
        questions_per_test=questions_per_test,
        show_explanations=show_explanations,
        tick_interval=tick_interval,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "bank": {
            "dir": "",
            "sources": list(DEFAULT_SOURCES),
            "max_workers": _DEFAULT_MAX_WORKERS,
        },
        "session": {
            "questions_per_test": QUESTIONS_PER_TEST,
            "show_explanations": True,
            "tick_interval": _DEFAULT_TICK_INTERVAL,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _coerce_optional_path(value: object) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise QuizRunnerConfigError("bank.dir must be a string when provided.")


def _resolve_bank_dir(
    candidate: object, *, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if candidate is None:
        return layout.path_for("banks")
    path = Path(candidate).expanduser()
    if not path.is_absolute():
        path = layout.home / path
    return path.resolve()


def _normalize_sources(value: object) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise QuizRunnerConfigError("bank.sources must be a list of strings.")
    result: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise QuizRunnerConfigError(
                "bank.sources entries must be non-empty strings."
            )
        result.append(item.strip())
    if not result:
        raise QuizRunnerConfigError(
            "At least one question source must be configured."
        )
    return tuple(result)


def _positive_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise QuizRunnerConfigError(f"{name} must be an integer.")
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise QuizRunnerConfigError(f"{name} must be an integer.") from exc
    if number < 1:
        raise QuizRunnerConfigError(f"{name} must be at least 1.")
    return number


def _positive_float(value: object, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizRunnerConfigError(f"{name} must be a number.")
    if value <= 0:
        raise QuizRunnerConfigError(f"{name} must be positive.")
    return float(value)


def _resolve_log_level(candidate: object) -> str:
    if not isinstance(candidate, str) or not candidate.strip():
        raise QuizRunnerConfigError(
            "logging.level must be a non-empty string."
        )
    return candidate.strip().upper()


def _parse_env_list(
    env_map: Mapping[str, str], key: str
) -> Optional[list[str]]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    parts = [part for part in raw.replace(",", " ").split() if part]
    return parts or None


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    return Path(raw).expanduser() if raw is not None else None


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
