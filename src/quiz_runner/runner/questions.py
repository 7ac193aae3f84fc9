"""Question records and the store they are loaded into.

A question bank is a set of JSON files, each holding an array of records::

    {
        "questionSet": "Questions-Set-1",
        "module": "Networking",
        "chapter": "Routing",
        "question": "Which protocol ...?",
        "options": ["RIP", "OSPF", "BGP", "EIGRP"],
        "answerIndex": 1,
        "explanation": "..."
    }

Older banks spell the correct option as ``answer`` instead of
``answerIndex``; both are accepted here and normalized to
``Question.answer_index`` so nothing downstream has to care.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from functools import partial
from pathlib import Path
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .errors import LoadWarning
from .filters import FilterMode, resolve, selection_values

__all__ = [
    "Question",
    "QuestionStore",
    "LoadReport",
    "Fetcher",
    "question_from_record",
    "parse_source",
    "read_source",
    "load_question_store",
]

_LOG = logging.getLogger(__name__)

Fetcher = Callable[[str], Union[bytes, str]]


@dataclass(frozen=True)
class Question:
    """One multiple-choice question from the pool."""

    id: int
    question_set: str
    module: str
    chapter: str
    question: str
    options: Tuple[str, ...]
    answer_index: int
    explanation: Optional[str] = None
    source: str = ""

    def is_correct(self, choice: Optional[int]) -> bool:
        return choice is not None and choice == self.answer_index

    @property
    def answer_text(self) -> str:
        return self.options[self.answer_index]


def _text_field(data: Mapping[str, object], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _resolve_answer_index(raw: object, options: Sequence[str]) -> int:
    if isinstance(raw, bool):
        raise ValueError("answer must be an option index, not a boolean")
    if isinstance(raw, int):
        index = raw
    elif isinstance(raw, str):
        # Option text wins over index and letter readings ("2" among "1".."4").
        candidate = raw.strip()
        lowered = [opt.strip().lower() for opt in options]
        if candidate.lower() in lowered:
            index = lowered.index(candidate.lower())
        elif candidate.isdigit():
            index = int(candidate)
        elif len(candidate) == 1 and candidate.isalpha():
            index = ord(candidate.upper()) - ord("A")
        else:
            raise ValueError(f"answer '{raw}' matches no option")
    elif raw is None:
        raise ValueError("answerIndex is required")
    else:
        raise ValueError("answerIndex must be an integer")
    if not 0 <= index < len(options):
        raise ValueError(
            f"answer index {index} out of range for {len(options)} option(s)"
        )
    return index


def question_from_record(
    data: object, *, position: int = 0, source: str = ""
) -> Question:
    """Build a :class:`Question` from one raw JSON record.

    Raises ``ValueError`` naming the first problem found.
    """

    if not isinstance(data, dict):
        raise ValueError("record must be an object")
    text = _text_field(data, "question")
    if not text:
        raise ValueError("question text is required")
    raw_options = data.get("options")
    if not isinstance(raw_options, list) or not raw_options:
        raise ValueError("options must be a non-empty list")
    options = tuple(str(opt) for opt in raw_options)
    raw_answer = data.get("answerIndex", data.get("answer"))
    answer_index = _resolve_answer_index(raw_answer, options)
    explanation = data.get("explanation")
    return Question(
        id=position,
        question_set=_text_field(data, "questionSet"),
        module=_text_field(data, "module"),
        chapter=_text_field(data, "chapter"),
        question=text,
        options=options,
        answer_index=answer_index,
        explanation=str(explanation) if explanation else None,
        source=source,
    )


class QuestionStore:
    """Read-only pool of questions with menu and filter queries."""

    def __init__(self, questions: Iterable[Question] = ()) -> None:
        self._questions: Tuple[Question, ...] = tuple(questions)

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def values_for(self, mode: FilterMode) -> List[str]:
        return selection_values(self._questions, mode)

    def question_sets(self) -> List[str]:
        return self.values_for(FilterMode.BY_SET)

    def modules(self) -> List[str]:
        return self.values_for(FilterMode.BY_MODULE)

    def chapters(self) -> List[str]:
        return self.values_for(FilterMode.BY_CHAPTER)

    def resolve(
        self, mode: FilterMode, value: Optional[str] = None
    ) -> List[Question]:
        return resolve(mode, value, self._questions)


@dataclass(frozen=True)
class LoadReport:
    """Outcome of loading every configured source."""

    store: QuestionStore
    warnings: Tuple[LoadWarning, ...] = ()
    loaded: Mapping[str, int] = field(default_factory=dict)

    @property
    def failed_sources(self) -> List[str]:
        return [w.source for w in self.warnings if w.source not in self.loaded]


@dataclass
class _SourceOutcome:
    name: str
    questions: Optional[List[Question]] = None
    warnings: List[LoadWarning] = field(default_factory=list)


def read_source(name: str, *, base_dir: Optional[Path] = None) -> bytes:
    """Default fetcher: read ``name`` from disk relative to ``base_dir``."""

    path = Path(name).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = Path(base_dir) / path
    return path.read_bytes()


def parse_source(
    name: str, payload: Union[bytes, str]
) -> Tuple[List[Question], List[LoadWarning]]:
    """Parse one source payload into questions plus per-record warnings.

    Raises ``ValueError`` when the payload is not a JSON array at all.
    """

    try:
        data = json.loads(payload)
    except RecursionError as exc:
        raise ValueError("JSON nesting is too deep") from exc
    if not isinstance(data, list):
        raise ValueError(
            f"expected a JSON array, found {type(data).__name__}"
        )
    questions: List[Question] = []
    warnings: List[LoadWarning] = []
    for offset, record in enumerate(data):
        try:
            questions.append(question_from_record(record, source=name))
        except ValueError as exc:
            warnings.append(LoadWarning(name, f"record {offset}: {exc}"))
    return questions, warnings


def _load_source(name: str, fetch: Fetcher) -> _SourceOutcome:
    outcome = _SourceOutcome(name)
    try:
        payload = fetch(name)
    except Exception as exc:  # any fetch failure only drops this source
        outcome.warnings.append(LoadWarning(name, f"unreachable: {exc}"))
        return outcome
    try:
        outcome.questions, outcome.warnings = parse_source(name, payload)
    except ValueError as exc:
        outcome.warnings.append(LoadWarning(name, f"malformed: {exc}"))
    return outcome


def load_question_store(
    sources: Sequence[str],
    *,
    base_dir: Optional[Path] = None,
    fetch: Optional[Fetcher] = None,
    max_workers: int = 4,
    logger: Optional[logging.Logger] = None,
) -> LoadReport:
    """Load every source concurrently and merge them into one store.

    Sources fail independently: a missing file or a payload that is not a
    JSON array is logged and skipped. The merged pool keeps the order of
    ``sources`` and is renumbered so ``Question.id`` is the pool position.
    """

    log = logger or _LOG
    names = list(sources)
    reader: Fetcher = fetch or partial(read_source, base_dir=base_dir)
    outcomes: Dict[int, _SourceOutcome] = {}

    if names:
        workers = max(1, min(max_workers, len(names)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(_load_source, name, reader): idx
                for idx, name in enumerate(names)
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

    pool_questions: List[Question] = []
    warnings: List[LoadWarning] = []
    loaded: Dict[str, int] = {}
    for idx in range(len(names)):
        outcome = outcomes[idx]
        for warning in outcome.warnings:
            log.warning(
                "Skipped question data",
                extra={"source": warning.source, "reason": warning.reason},
            )
        warnings.extend(outcome.warnings)
        if outcome.questions is None:
            continue
        loaded[outcome.name] = len(outcome.questions)
        for question in outcome.questions:
            pool_questions.append(replace(question, id=len(pool_questions)))

    log.info(
        "Loaded %d question(s) from %d of %d source(s)",
        len(pool_questions),
        len(loaded),
        len(names),
    )
    return LoadReport(
        store=QuestionStore(pool_questions),
        warnings=tuple(warnings),
        loaded=loaded,
    )
