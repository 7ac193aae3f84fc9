from __future__ import annotations

import pytest

from fixtures import make_question
from quiz_runner.runner.errors import ValidationError
from quiz_runner.runner.filters import (
    FilterMode,
    resolve,
    selection_values,
    set_sort_key,
)


@pytest.fixture
def pool():
    return [
        make_question(0, question_set="Questions-Set-1", module="Net"),
        make_question(1, question_set="Questions-Set-2", module="Net"),
        make_question(2, question_set="Questions-Set-2", module="OS",
                      chapter="Scheduling"),
    ]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("all", FilterMode.ALL),
        ("questionSet", FilterMode.BY_SET),
        ("SET", FilterMode.BY_SET),
        (" module ", FilterMode.BY_MODULE),
        ("chapter", FilterMode.BY_CHAPTER),
    ],
)
def test_filter_mode_from_value(raw, expected) -> None:
    assert FilterMode.from_value(raw) is expected


def test_filter_mode_unknown_value() -> None:
    with pytest.raises(ValidationError, match="Unknown filter mode 'topic'"):
        FilterMode.from_value("topic")


def test_resolve_all_ignores_value(pool) -> None:
    assert resolve(FilterMode.ALL, "ignored", pool) == pool


def test_resolve_matches_exact_field(pool) -> None:
    subset = resolve(FilterMode.BY_SET, "Questions-Set-2", pool)

    assert [q.id for q in subset] == [1, 2]
    assert resolve(FilterMode.BY_CHAPTER, "Scheduling", pool) == [pool[2]]


@pytest.mark.parametrize("value", [None, "", "   "])
def test_resolve_requires_selection(pool, value) -> None:
    with pytest.raises(ValidationError, match="missing selection"):
        resolve(FilterMode.BY_MODULE, value, pool)


def test_resolve_reports_empty_result(pool) -> None:
    with pytest.raises(ValidationError, match="empty result"):
        resolve(FilterMode.BY_MODULE, "net", pool)
    with pytest.raises(ValidationError, match="empty result"):
        resolve(FilterMode.ALL, None, [])


def test_set_sort_key_orders_numerically() -> None:
    values = ["Questions-Set-10", "Bonus", "3", "Questions-Set-2", "Alpha"]

    ordered = sorted(values, key=set_sort_key)

    assert ordered == ["Questions-Set-2", "3", "Questions-Set-10", "Alpha",
                       "Bonus"]


def test_selection_values_are_distinct_and_sorted(pool) -> None:
    assert selection_values(pool, FilterMode.BY_SET) == [
        "Questions-Set-1",
        "Questions-Set-2",
    ]
    assert selection_values(pool, FilterMode.BY_MODULE) == ["Net", "OS"]
    assert selection_values(pool, FilterMode.ALL) == []
