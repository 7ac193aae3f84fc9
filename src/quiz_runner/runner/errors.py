"""Error types shared by the question store, filters and session."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "QuizRunnerError",
    "ValidationError",
    "StateError",
    "LoadWarning",
]


class QuizRunnerError(RuntimeError):
    """Base class for quiz runner failures."""


class ValidationError(QuizRunnerError):
    """User input cannot be acted on (missing selection, empty result)."""


class StateError(QuizRunnerError):
    """A session operation was invoked outside the phase that allows it."""


@dataclass(frozen=True)
class LoadWarning:
    """A question source, or a record inside one, that was left out."""

    source: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source}: {self.reason}"
