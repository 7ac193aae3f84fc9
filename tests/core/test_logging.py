from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

import pytest

from quiz_runner.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _markers(logger: logging.Logger, marker: str) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, marker, False)]


def _read_lines(log_path: Path) -> list[dict]:
    text = log_path.read_text(encoding="utf-8").strip()
    return [json.loads(line) for line in text.splitlines()]


def test_configure_logger_writes_json_lines(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "quiz_runner.test_json",
        log_dir=tmp_path / "logs",
        filename="json.log",
    )

    logger.info(
        "Session finished",
        extra={"score": 3, "total": 5, "bank": Path("banks/a.json")},
    )

    class _Opaque:
        def __repr__(self):  # noqa: D401
            return "opaque"

    try:
        raise ValueError("bad record")
    except ValueError:
        logger.exception(
            "Skipped question data",
            extra={
                "source": "Questions-Set-1.json",
                "details": {"records": [1, 2], "seen": {"x"}},
                "obj": _Opaque(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    first, last = _read_lines(log_path)
    assert first["message"] == "Session finished"
    assert first["level"] == "INFO"
    assert first["logger"] == "quiz_runner.test_json"
    assert first["extra"] == {
        "score": 3,
        "total": 5,
        "bank": str(Path("banks/a.json")),
    }
    assert "bad record" in last["exception"]
    assert last["extra"]["details"] == {"records": [1, 2], "seen": ["x"]}
    assert last["extra"]["obj"] == "opaque"

    _close(logger)


def test_file_level_filters_records(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "quiz_runner.test_level",
        log_dir=tmp_path / "logs",
        level="warning",
        filename="level.log",
    )

    logger.info("quiet")
    logger.warning("loud")
    for handler in logger.handlers:
        handler.flush()

    messages = [entry["message"] for entry in _read_lines(log_path)]
    assert messages == ["loud"]
    assert logger.propagate is False

    _close(logger)


def test_default_filename_uses_last_name_segment(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "quiz_runner.test_default_name", log_dir=tmp_path / "logs"
    )

    assert log_path.name == "test_default_name.log"

    _close(logger)


def test_file_handler_is_reused(tmp_path):
    name = "quiz_runner.test_reuse"
    logger, first_path = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", filename="reuse.log"
    )
    _, second_path = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", filename="reuse.log"
    )

    assert first_path == second_path
    assert len(_markers(logger, "_quiz_runner_file")) == 1

    _close(logger)


def test_console_handler_toggle(tmp_path):
    name = "quiz_runner.test_toggle"
    log_dir = tmp_path / "logs"

    logger, _ = core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_markers(logger, "_quiz_runner_console")) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_markers(logger, "_quiz_runner_console")) == 1

    core_logging.configure_logger(
        name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not _markers(logger, "_quiz_runner_console")

    _close(logger)


def test_configure_logger_fallback_directory(tmp_path, monkeypatch):
    target = tmp_path / "blocked"
    fallback = tmp_path / "fallback"
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: ANN001
        if self == target:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    logger, log_path = core_logging.configure_logger(
        "quiz_runner.test_blocked",
        log_dir=target,
        filename="blocked.log",
    )

    assert log_path == fallback / "blocked.log"
    assert log_path.exists()

    _close(logger)


def test_configure_logger_rotating_handler_fallback(tmp_path, monkeypatch):
    calls = {"count": 0}
    fallback_dir = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler

    def fake_handler(path, *args, **kwargs):  # noqa: ANN001
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", fake_handler)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback_dir)

    logger, log_path = core_logging.configure_logger(
        "quiz_runner.test_rotating_fallback",
        log_dir=tmp_path / "primary",
        filename="rotate.log",
    )

    assert log_path.parent == fallback_dir
    assert calls["count"] == 2

    _close(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "quiz-runner-logs"


@pytest.mark.parametrize(
    "level, expected",
    [("debug", logging.DEBUG), (" Error ", logging.ERROR),
     ("bogus", logging.INFO)],
)
def test_coerce_level(level, expected):
    assert core_logging._coerce_level(level) == expected
