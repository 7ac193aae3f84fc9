"""Test session state machine.

A :class:`Session` turns a filtered subset of the pool into one timed test:
it shuffles and truncates the subset, tracks a pointer into it, records the
chosen option per question and keeps the score in step with those answers.
Front ends call the transition methods and re-read the accessors (or
subscribe to :class:`SessionEvent` notifications) to redraw.

Revisiting a question never relabels it: an answered or skipped question
keeps that status while the pointer sits on it, and only a question that has
not been visited yet is marked ``CURRENT`` when entered.
"""

from __future__ import annotations

import logging
import random
import threading
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import (
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Sequence,
    Tuple,
)

from .errors import StateError, ValidationError
from .questions import Question
from .timer import Timer

__all__ = [
    "QUESTIONS_PER_TEST",
    "QuestionStatus",
    "SessionPhase",
    "QuestionResponse",
    "SessionResult",
    "GridCell",
    "SessionEvent",
    "Session",
]

QUESTIONS_PER_TEST = 50

_LOG = logging.getLogger(__name__)

EventKind = Literal["started", "answered", "moved", "skipped", "finished"]


class QuestionStatus(Enum):
    NOT_VISITED = "notVisited"
    CURRENT = "current"
    ANSWERED = "answered"
    SKIPPED = "skipped"


class SessionPhase(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class QuestionResponse:
    """How one question of a finished test was answered."""

    position: int
    question: Question
    selected: Optional[int]
    is_correct: bool

    @property
    def selected_text(self) -> Optional[str]:
        if self.selected is None:
            return None
        return self.question.options[self.selected]

    @property
    def explanation(self) -> Optional[str]:
        return self.question.explanation


@dataclass(frozen=True)
class SessionResult:
    """Final tally returned by :meth:`Session.finish`."""

    score: int
    total: int
    attempted: int
    percentage: str
    elapsed_seconds: int
    responses: Tuple[QuestionResponse, ...] = ()

    @property
    def unanswered(self) -> int:
        return self.total - self.attempted


@dataclass(frozen=True)
class GridCell:
    """One entry of the navigation grid."""

    number: int
    status: QuestionStatus
    is_pointer: bool


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    session: "Session"


Listener = Callable[[SessionEvent], None]


class Session:
    """One test run, from :meth:`start` to :meth:`finish`."""

    def __init__(
        self,
        *,
        questions_per_test: int = QUESTIONS_PER_TEST,
        rng: Optional[random.Random] = None,
        timer: Optional[Timer] = None,
    ) -> None:
        if questions_per_test < 1:
            raise ValueError("questions_per_test must be >= 1")
        self.questions_per_test = questions_per_test
        self._rng = rng or random.Random()
        self._timer = timer or Timer()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        self._phase = SessionPhase.IDLE
        self._questions: Tuple[Question, ...] = ()
        self._index = 0
        self._statuses: List[QuestionStatus] = []
        self._answers: List[Optional[int]] = []
        self._score = 0
        self._result: Optional[SessionResult] = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: EventKind) -> None:
        event = SessionEvent(kind, self)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _LOG.exception("Session listener failed", extra={"event": kind})

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Optional[Question]:
        if self._phase is not SessionPhase.ACTIVE:
            return None
        return self._questions[self._index]

    @property
    def statuses(self) -> Tuple[QuestionStatus, ...]:
        with self._lock:
            return tuple(self._statuses)

    @property
    def answers(self) -> Tuple[Optional[int], ...]:
        with self._lock:
            return tuple(self._answers)

    @property
    def score(self) -> int:
        return self._score

    @property
    def answered_count(self) -> int:
        with self._lock:
            return sum(1 for answer in self._answers if answer is not None)

    @property
    def result(self) -> Optional[SessionResult]:
        return self._result

    @property
    def timer(self) -> Timer:
        return self._timer

    def elapsed_seconds(self) -> int:
        return self._timer.elapsed_seconds()

    def selected_for(self, position: Optional[int] = None) -> Optional[int]:
        with self._lock:
            if not self._answers:
                return None
            target = self._index if position is None else position
            return self._answers[target]

    def grid(self) -> Tuple[GridCell, ...]:
        with self._lock:
            pointer = (
                self._index if self._phase is SessionPhase.ACTIVE else None
            )
            return tuple(
                GridCell(number=i + 1, status=status, is_pointer=i == pointer)
                for i, status in enumerate(self._statuses)
            )

    def status_counts(self) -> Dict[QuestionStatus, int]:
        with self._lock:
            counts = Counter(self._statuses)
        return {status: counts.get(status, 0) for status in QuestionStatus}

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self, subset: Sequence[Question]) -> None:
        """Begin a new test drawn from ``subset``.

        Allowed in any phase; an earlier run is discarded and the timer is
        restarted from zero.
        """

        pool = list(subset)
        if not pool:
            raise ValidationError("empty result")
        with self._lock:
            self._timer.stop()
            self._rng.shuffle(pool)
            self._questions = tuple(pool[: self.questions_per_test])
            count = len(self._questions)
            self._index = 0
            self._statuses = [QuestionStatus.NOT_VISITED] * count
            self._statuses[0] = QuestionStatus.CURRENT
            self._answers = [None] * count
            self._score = 0
            self._result = None
            self._phase = SessionPhase.ACTIVE
            self._timer.start()
        _LOG.info(
            "Session started",
            extra={"questions": count, "subset": len(pool)},
        )
        self._emit("started")

    def select_answer(self, choice: int) -> None:
        """Record ``choice`` for the question under the pointer."""

        with self._lock:
            self._require_active("select_answer")
            question = self._questions[self._index]
            if not 0 <= choice < len(question.options):
                raise ValidationError(
                    f"choice {choice} is out of range for "
                    f"{len(question.options)} option(s)"
                )
            previous = self._answers[self._index]
            was_correct = question.is_correct(previous)
            now_correct = question.is_correct(choice)
            if now_correct and not was_correct:
                self._score += 1
            elif was_correct and not now_correct:
                self._score -= 1
            self._answers[self._index] = choice
            self._statuses[self._index] = QuestionStatus.ANSWERED
        self._emit("answered")

    def move_to(self, new_index: int) -> bool:
        """Point at ``new_index``; out-of-range targets change nothing."""

        with self._lock:
            self._require_active("move_to")
            if not 0 <= new_index < len(self._questions):
                return False
            self._move_locked(new_index)
        self._emit("moved")
        return True

    def next(self) -> bool:
        return self.move_to(self._index + 1)

    def previous(self) -> bool:
        return self.move_to(self._index - 1)

    def skip(self) -> Optional[SessionResult]:
        """Leave the current question, finishing the test on the last one."""

        result: Optional[SessionResult] = None
        with self._lock:
            self._require_active("skip")
            if self._answers[self._index] is None:
                self._statuses[self._index] = QuestionStatus.SKIPPED
            if self._index + 1 < len(self._questions):
                self._move_locked(self._index + 1)
            else:
                result = self._finish_locked()
        self._emit("skipped")
        if result is not None:
            self._emit("finished")
        return result

    def finish(self) -> SessionResult:
        with self._lock:
            self._require_active("finish")
            result = self._finish_locked()
        self._emit("finished")
        return result

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------
    def _require_active(self, operation: str) -> None:
        if self._phase is not SessionPhase.ACTIVE:
            raise StateError(
                f"{operation} requires an active session "
                f"(phase is {self._phase.value})"
            )

    def _move_locked(self, new_index: int) -> None:
        here = self._index
        if self._statuses[here] is QuestionStatus.CURRENT:
            if self._answers[here] is not None:
                self._statuses[here] = QuestionStatus.ANSWERED
            else:
                self._statuses[here] = QuestionStatus.NOT_VISITED
        self._index = new_index
        if self._statuses[new_index] is QuestionStatus.NOT_VISITED:
            self._statuses[new_index] = QuestionStatus.CURRENT

    def _finish_locked(self) -> SessionResult:
        self._timer.stop()
        self._phase = SessionPhase.FINISHED
        responses = tuple(
            QuestionResponse(
                position=i,
                question=question,
                selected=self._answers[i],
                is_correct=question.is_correct(self._answers[i]),
            )
            for i, question in enumerate(self._questions)
        )
        total = len(self._questions)
        attempted = sum(1 for answer in self._answers if answer is not None)
        self._result = SessionResult(
            score=self._score,
            total=total,
            attempted=attempted,
            percentage=f"{self._score / total * 100:.2f}",
            elapsed_seconds=self._timer.elapsed_seconds(),
            responses=responses,
        )
        _LOG.info(
            "Session finished",
            extra={
                "score": self._score,
                "total": total,
                "attempted": attempted,
            },
        )
        return self._result
