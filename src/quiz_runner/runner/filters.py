"""Selection of the question subset a test is drawn from."""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

from .errors import ValidationError

if TYPE_CHECKING:  # pragma: no cover
    from .questions import Question

__all__ = [
    "FilterMode",
    "resolve",
    "selection_values",
    "set_sort_key",
]

_SET_NUMBER = re.compile(r"Set-(\d+)")


class FilterMode(Enum):
    """How the pool is narrowed before a test starts."""

    ALL = "all"
    BY_SET = "questionSet"
    BY_MODULE = "module"
    BY_CHAPTER = "chapter"

    @classmethod
    def from_value(cls, value: str) -> "FilterMode":
        normalized = value.strip().lower()
        aliases = {"set": cls.BY_SET, "questionset": cls.BY_SET}
        if normalized in aliases:
            return aliases[normalized]
        for member in cls:
            if member.value.lower() == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValidationError(
            f"Unknown filter mode '{value}'. Expected one of: {expected}."
        )

    @property
    def attribute(self) -> Optional[str]:
        """Name of the ``Question`` field this mode matches on."""

        return _ATTRIBUTES.get(self)


_ATTRIBUTES = {
    FilterMode.BY_SET: "question_set",
    FilterMode.BY_MODULE: "module",
    FilterMode.BY_CHAPTER: "chapter",
}


def resolve(
    mode: FilterMode,
    value: Optional[str],
    pool: Sequence["Question"],
) -> List["Question"]:
    """Return the questions of ``pool`` matching the selection.

    ``FilterMode.ALL`` ignores ``value``. The other modes need a non-empty
    value and keep questions whose field equals it exactly. An empty outcome
    is reported as ``ValidationError("empty result")``.
    """

    if mode is FilterMode.ALL:
        subset = list(pool)
    else:
        wanted = (value or "").strip()
        if not wanted:
            raise ValidationError("missing selection")
        attribute = mode.attribute
        subset = [q for q in pool if getattr(q, attribute) == wanted]

    if not subset:
        raise ValidationError("empty result")
    return subset


def set_sort_key(value: str) -> Tuple[int, int, str]:
    """Order set identifiers by their number when one can be read.

    ``"2"`` and ``"Questions-Set-2"`` both sort as 2; identifiers without a
    number follow in plain string order.
    """

    text = value.strip()
    if text.isdigit():
        return (0, int(text), text)
    match = _SET_NUMBER.search(text)
    if match:
        return (0, int(match.group(1)), text)
    return (1, 0, text)


def selection_values(
    pool: Iterable["Question"], mode: FilterMode
) -> List[str]:
    """Distinct, non-empty values of the field behind ``mode``, sorted."""

    attribute = mode.attribute
    if attribute is None:
        return []
    values = {
        str(getattr(q, attribute))
        for q in pool
        if str(getattr(q, attribute) or "").strip()
    }
    if mode is FilterMode.BY_SET:
        return sorted(values, key=set_sort_key)
    return sorted(values)
