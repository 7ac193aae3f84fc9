from .errors import (
    LoadWarning,
    QuizRunnerError,
    StateError,
    ValidationError,
)
from .filters import FilterMode, resolve, selection_values
from .questions import (
    LoadReport,
    Question,
    QuestionStore,
    load_question_store,
)
from .timer import Timer, format_elapsed
from .session import (
    QUESTIONS_PER_TEST,
    GridCell,
    QuestionResponse,
    QuestionStatus,
    Session,
    SessionEvent,
    SessionPhase,
    SessionResult,
)
from .console import run_console_session, parse_session_command

__all__ = [
    "LoadWarning",
    "QuizRunnerError",
    "StateError",
    "ValidationError",
    "FilterMode",
    "resolve",
    "selection_values",
    "LoadReport",
    "Question",
    "QuestionStore",
    "load_question_store",
    "Timer",
    "format_elapsed",
    "QUESTIONS_PER_TEST",
    "GridCell",
    "QuestionResponse",
    "QuestionStatus",
    "Session",
    "SessionEvent",
    "SessionPhase",
    "SessionResult",
    "run_console_session",
    "parse_session_command",
]
