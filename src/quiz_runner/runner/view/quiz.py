from typing import Optional, Sequence

from textual.app import App, ComposeResult
from textual.widget import Widget
from textual.widgets import Static, Button
from textual.containers import Vertical, Container

from ..errors import QuizRunnerError
from ..questions import Question
from ..session import (
    QuestionStatus,
    Session,
    SessionEvent,
    SessionPhase,
    SessionResult,
)
from ..timer import format_elapsed


def _option_key(position: int) -> str:
    return chr(ord("A") + position)


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.selected { background: $accent; color: black; }
#grid { layout: grid; grid-size: 10; height: auto; }
#grid Button.answered { background: $success; }
#grid Button.skipped { background: $warning; }
#grid Button.current { background: $primary; }
#grid Button.pointer { text-style: bold reverse; }
"""
    BINDINGS = [
        ("n", "next", "Next"),
        ("p", "prev", "Prev"),
        ("s", "skip", "Skip"),
        ("f", "finish", "Finish"),
        ("a", "select(0)", "Select A"),
        ("b", "select(1)", "Select B"),
        ("c", "select(2)", "Select C"),
        ("d", "select(3)", "Select D"),
        ("e", "select(4)", "Select E"),
    ]

    def __init__(
        self,
        session: Session,
        subset: Sequence[Question],
        *,
        show_explanations: bool = True,
        tick_interval: float = 1.0,
    ):
        super().__init__()
        self.quiz_session = session
        self.show_explanations = show_explanations
        self._tick_interval = tick_interval
        self._unsubscribe = session.subscribe(self._on_session_event)
        if subset and session.phase is not SessionPhase.ACTIVE:
            session.start(subset)

    def compose(self) -> ComposeResult:
        if self.quiz_session.phase is SessionPhase.IDLE:
            yield Static("No questions.", id="empty")
            return
        with Container(id="stage"):
            yield self._stage_widget()
        with Container(id="grid"):
            yield from self._grid_buttons()
        with Container(id="footer"):
            yield Button("Prev", id="prev")
            yield Button("Skip", id="skip")
            yield Button("Next", id="next")
            yield Button("Finish", id="finish")
            yield Static(self.answered_text(), id="answered")
            yield Static(self.clock_text(), id="clock")

    def on_mount(self) -> None:
        self.set_interval(self._tick_interval, self._refresh_clock)

    def on_unmount(self) -> None:
        self._unsubscribe()

    # Pure helpers for navigation and selection (testable without running App)
    def current_question(self) -> Optional[Question]:
        return self.quiz_session.current_question

    def select_answer(self, choice: int) -> bool:
        try:
            self.quiz_session.select_answer(choice)
        except QuizRunnerError:
            return False
        return True

    def next_question(self) -> int:
        if self.quiz_session.phase is SessionPhase.ACTIVE:
            self.quiz_session.next()
        return self.quiz_session.index

    def prev_question(self) -> int:
        if self.quiz_session.phase is SessionPhase.ACTIVE:
            self.quiz_session.previous()
        return self.quiz_session.index

    def jump_to(self, number: int) -> bool:
        if self.quiz_session.phase is not SessionPhase.ACTIVE:
            return False
        return self.quiz_session.move_to(number - 1)

    def skip_question(self) -> Optional[SessionResult]:
        if self.quiz_session.phase is not SessionPhase.ACTIVE:
            return None
        return self.quiz_session.skip()

    def finish_test(self) -> Optional[SessionResult]:
        if self.quiz_session.phase is SessionPhase.ACTIVE:
            return self.quiz_session.finish()
        return self.quiz_session.result

    def answered_text(self) -> str:
        session = self.quiz_session
        return f"Answered: {session.answered_count}/{session.total}"

    def clock_text(self) -> str:
        return f"Time: {format_elapsed(self.quiz_session.elapsed_seconds())}"

    def _stage_widget(self) -> Widget:
        result = self.quiz_session.result
        if result is not None:
            return SummaryView(result, show_explanations=self.show_explanations)
        question = self.quiz_session.current_question
        return QuestionView(
            question,
            number=self.quiz_session.index + 1,
            total=self.quiz_session.total,
            selected=self.quiz_session.selected_for(),
        )

    def _grid_buttons(self) -> list:
        buttons = []
        for cell in self.quiz_session.grid():
            classes = cell.status.value
            if cell.is_pointer:
                classes += " pointer"
            buttons.append(
                Button(str(cell.number), id=f"grid-{cell.number}", classes=classes)
            )
        return buttons

    def _restyle_grid(self, grid: Container) -> None:
        # Grid buttons keep their ids for the whole run; only classes change.
        for cell in self.quiz_session.grid():
            try:
                button = grid.query_one(f"#grid-{cell.number}", Button)
            except Exception:
                continue
            for status in QuestionStatus:
                button.set_class(cell.status is status, status.value)
            button.set_class(cell.is_pointer, "pointer")

    def _on_session_event(self, event: SessionEvent) -> None:
        self._update_stage()

    def _update_stage(self) -> None:
        try:
            stage = self.query_one("#stage", Container)
            grid = self.query_one("#grid", Container)
        except Exception:
            return
        stage.remove_children()
        stage.mount(self._stage_widget())
        self._restyle_grid(grid)
        try:
            self.query_one("#answered", Static).update(self.answered_text())
        except Exception:
            pass

    def _refresh_clock(self) -> None:
        try:
            self.query_one("#clock", Static).update(self.clock_text())
        except Exception:
            pass

    def action_next(self) -> None:
        self.next_question()

    def action_prev(self) -> None:
        self.prev_question()

    def action_skip(self) -> None:
        self.skip_question()

    def action_finish(self) -> None:
        self.finish_test()

    def action_select(self, choice: int) -> None:
        if self.quiz_session.phase is SessionPhase.ACTIVE:
            self.select_answer(choice)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-") and bid[7:].isdigit():
            self.action_select(int(bid[7:]))
        elif bid.startswith("grid-") and bid[5:].isdigit():
            self.jump_to(int(bid[5:]))
        elif bid == "finish":
            self.action_finish()
        elif bid == "skip":
            self.action_skip()
        elif bid == "next":
            self.action_next()
        elif bid == "prev":
            self.action_prev()


class QuestionView(Widget):
    """Renders one question with its options and position."""

    def __init__(
        self,
        question: Question,
        number: int,
        total: int,
        *,
        selected: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.question = question
        self.number = number
        self.total = total
        self.selected = selected

    def compose(self) -> ComposeResult:
        q = self.question
        meta = f"Set: {q.question_set} | Module: {q.module} | Chapter: {q.chapter}"
        yield Static(meta, id="meta")
        yield Static(q.question, id="stem")
        with Vertical(id="choices"):
            for position, text in enumerate(q.options):
                btn = Button(
                    f"{_option_key(position)}. {text}", id=f"choice-{position}"
                )
                if position == self.selected:
                    btn.add_class("selected")
                yield btn
        yield Static(f"Q{self.number} / {self.total}", id="progress")
        yield Static(self.status_text(), id="feedback")

    def status_text(self) -> str:
        if self.selected is None:
            return ""
        return f"Selected: {_option_key(self.selected)}"


class SummaryView(Widget):
    """Final score screen shown once the session finishes."""

    def __init__(self, result: SessionResult, *, show_explanations: bool = True):
        super().__init__()
        self.result = result
        self.show_explanations = show_explanations

    def compose(self) -> ComposeResult:
        yield Static("Test Completed", id="title")
        yield Static(self.score_text(), id="score")
        for line in self.response_lines():
            yield Static(line)

    def score_text(self) -> str:
        r = self.result
        return (
            f"Score: {r.score} / {r.total} ({r.percentage}%) | "
            f"Attempted: {r.attempted} | Time: {format_elapsed(r.elapsed_seconds)}"
        )

    def response_lines(self) -> list:
        lines = []
        for response in self.result.responses:
            mark = "✅" if response.is_correct else "❌"
            yours = (
                _option_key(response.selected)
                if response.selected is not None
                else "-"
            )
            line = (
                f"{mark} Q{response.position + 1}: {yours} "
                f"(answer {_option_key(response.question.answer_index)})"
            )
            if self.show_explanations and response.explanation:
                line += f" - {response.explanation}"
            lines.append(line)
        return lines
