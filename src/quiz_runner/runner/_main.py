import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from rich.console import Console

from quiz_runner.core import config_templates
from quiz_runner.core import workspace as workspace_mod
from quiz_runner.core.config_templates import ConfigTemplateError
from quiz_runner.core.logging import configure_logger
from quiz_runner.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizRunnerConfigError,
    load_config,
)
from .console import run_console_session
from .errors import ValidationError
from .filters import FilterMode
from .questions import LoadReport, load_question_store
from .session import Session

_PROMPTS = {
    "missing selection": "Select a {label} with --value.",
    "empty result": "No questions found for this selection.",
}
_LABELS = {
    FilterMode.BY_SET: "question set",
    FilterMode.BY_MODULE: "module",
    FilterMode.BY_CHAPTER: "chapter",
}


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML config (defaults to the workspace config dir).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root.",
    )
    parser.add_argument(
        "--bank-dir",
        type=Path,
        help="Directory holding the question JSON files.",
    )
    parser.add_argument("--log-level", help="Logging level for the run.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )


def build_start_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="quiz-runner start",
        description="Run a timed multiple-choice test",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument(
        "--mode",
        default="all",
        help="Filter: all, questionSet (or set), module, chapter",
    )
    p.add_argument("--value", help="Set, module or chapter to test on")
    p.add_argument(
        "--num",
        type=int,
        help="Maximum number of questions (defaults to the config value)",
    )
    p.add_argument("--ui", choices=["console", "tui"], default="console")
    p.add_argument("--explain", dest="explain", action="store_true")
    p.add_argument("--no-explain", dest="explain", action="store_false")
    p.set_defaults(explain=None)
    _add_common_options(p)
    return p


def build_menu_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="quiz-runner menu",
        description="List the sets, modules or chapters available to filter on",
    )
    p.add_argument(
        "--field",
        choices=["set", "module", "chapter"],
        default="set",
    )
    _add_common_options(p)
    return p


def _load_pool(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    overrides: ConfigOverrides,
) -> Tuple[LoadResult, LoadReport]:
    try:
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except (QuizRunnerConfigError, WorkspaceError) as exc:
        parser.error(str(exc))

    logger, _ = configure_logger(
        "quiz_runner",
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=args.verbose,
    )
    logger.debug("quiz-runner invoked", extra={"argv": sys.argv[1:]})
    config = load_result.config
    report = load_question_store(
        config.sources,
        base_dir=config.bank_dir,
        max_workers=config.max_workers,
        logger=logger,
    )
    return load_result, report


def _prompt_for(exc: ValidationError, mode: Optional[FilterMode]) -> str:
    message = str(exc)
    template = _PROMPTS.get(message)
    if template is None:
        return message
    return template.format(label=_LABELS.get(mode, "value"))


def start_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_start_parser()
    args = parser.parse_args(argv)
    overrides = ConfigOverrides(
        bank_dir=args.bank_dir,
        questions_per_test=args.num,
        show_explanations=args.explain,
        log_level=args.log_level,
    )
    load_result, report = _load_pool(parser, args, overrides)
    config = load_result.config

    console = Console()
    console.print(
        f"Loaded {len(report.store)} question(s) from "
        f"{len(report.loaded)}/{len(config.sources)} source(s)."
    )
    if report.failed_sources:
        console.print(
            f"[yellow]Skipped {len(report.failed_sources)} source(s); "
            "see the log for details.[/]"
        )

    mode: Optional[FilterMode] = None
    try:
        mode = FilterMode.from_value(args.mode)
        subset = report.store.resolve(mode, args.value)
    except ValidationError as exc:
        console.print(f"[red]{_prompt_for(exc, mode)}[/]")
        return 1

    session = Session(questions_per_test=config.questions_per_test)
    if args.ui == "tui":
        from .view.quiz import QuizApp

        QuizApp(
            session,
            subset,
            show_explanations=config.show_explanations,
            tick_interval=config.tick_interval,
        ).run()
        return 0

    outcome = run_console_session(
        session,
        subset,
        console,
        lambda: console.input("> "),
        show_explanations=config.show_explanations,
    )
    return 0 if outcome.exit_action == "finished" else 1


def menu_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_menu_parser()
    args = parser.parse_args(argv)
    overrides = ConfigOverrides(bank_dir=args.bank_dir, log_level=args.log_level)
    _, report = _load_pool(parser, args, overrides)

    mode = FilterMode.from_value(args.field)
    values = report.store.values_for(mode)
    if not values:
        print(f"No {_LABELS[mode]} values found.")
        return 1
    for value in values:
        count = len(report.store.resolve(mode, value))
        print(f"- {value} ({count})")
    return 0


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-runner config",
        description="Manage the quiz-runner configuration file.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    init_parser = sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template."
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help="Destination (defaults to the workspace config directory).",
    )
    init_parser.add_argument("--workspace", type=Path)
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config.",
    )
    return parser


def config_main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_config_parser().parse_args(argv)

    try:
        if args.path is not None:
            target = args.path.expanduser()
            if not target.is_absolute():
                target = (Path.cwd() / target).resolve()
        else:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
            target = layout.path_for("config") / CONFIG_FILENAME
        written = config_templates.get_template("quiz_runner").write(
            target, overwrite=args.force
        )
    except (WorkspaceError, ConfigTemplateError) as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote quiz-runner config to {written}\n")
    return 0
