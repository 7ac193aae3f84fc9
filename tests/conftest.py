from __future__ import annotations

import logging
import random
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import BankBuilder, FakeClock  # noqa: E402
from quiz_runner.core import workspace as workspace_mod  # noqa: E402
from quiz_runner.runner.session import Session  # noqa: E402
from quiz_runner.runner.timer import Timer  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.quiz-runner-data."""

    root = tmp_path / "workspace"
    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(root))
    for key in ("QUIZ_RUNNER_CONFIG", "QUIZ_RUNNER_BANK_DIR",
                "QUIZ_RUNNER_SOURCES", "QUIZ_RUNNER_QUESTIONS_PER_TEST",
                "QUIZ_RUNNER_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return root


@pytest.fixture
def banks(tmp_path: Path) -> BankBuilder:
    """Write question-bank files into a per-test directory."""

    return BankBuilder(tmp_path / "banks")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session(clock: FakeClock) -> Session:
    """Session with a seeded shuffle and a hand-driven clock."""

    return Session(rng=random.Random(7), timer=Timer(clock=clock))


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers ``configure_logger`` attached during a CLI run."""

    yield
    logger = logging.getLogger("quiz_runner")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
