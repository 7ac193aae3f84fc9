from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from quiz_runner.core import config_templates
from quiz_runner.core.config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
)


def test_quiz_runner_template_round_trips(tmp_path: Path) -> None:
    template = config_templates.get_template("quiz_runner")
    assert isinstance(template, ConfigTemplate)

    contents = template.read_text()
    parsed = tomllib.loads(contents)
    assert set(parsed) == {"bank", "session", "logging"}
    assert parsed["session"]["questions_per_test"] == 50
    assert len(parsed["bank"]["sources"]) == 11

    target = tmp_path / "config" / "quiz_runner.toml"
    assert template.write(target) == target
    assert target.read_text(encoding="utf-8") == contents

    with pytest.raises(ConfigTemplateError, match="already exists"):
        template.write(target)

    assert template.write(target, overwrite=True) == target


def test_template_write_creates_parent_directories(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "quiz_runner.toml"

    config_templates.get_template("quiz_runner").write(target)

    assert target.is_file()


def test_missing_resource_is_reported() -> None:
    template = ConfigTemplate(
        name="ghost",
        filename="absent.toml",
        package="quiz_runner.runner",
    )

    with pytest.raises(ConfigTemplateError, match="'ghost' resource"):
        template.read_text()


@pytest.mark.parametrize("unknown", ["missing", "", "convert_markdown"])
def test_get_template_unknown_raises(unknown: str) -> None:
    with pytest.raises(ConfigTemplateError):
        config_templates.get_template(unknown)
