from typing import Optional, Union

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.widgets import Button, Static

from ..engine import AnswerResult, QuestionPrompt, QuizSession, SessionComplete
from ..models import OPTION_KEYS
from ..recorder import SessionReport


def prompt_text(prompt: QuestionPrompt) -> str:
    lines = [f"Question {prompt.number}/{prompt.total} [{prompt.difficulty.label}]"]
    if prompt.topic:
        lines.append(f"Topic: {prompt.topic}")
    lines.append("")
    lines.append(prompt.text)
    return "\n".join(lines)


def feedback_text(prompt: QuestionPrompt, result: AnswerResult) -> str:
    if result.correct:
        text = "Correct!"
    else:
        key = OPTION_KEYS[result.correct_index]
        text = f"Wrong. The answer was {key}) {prompt.options[result.correct_index]}"
    if result.mastery is not None:
        text += f"\n{prompt.topic} mastery: {result.mastery:.2f}"
    return text


def result_text(report: SessionReport) -> str:
    lines = [
        f"Score: {report.score}/{report.total_questions}",
        f"Answered: {report.served}",
        f"Accuracy: {report.accuracy * 100:.1f}%",
    ]
    if report.mastery:
        lines.append("")
        lines.append("Knowledge states:")
        for topic, probability in report.mastery.items():
            lines.append(f"  {topic}: {probability:.2f}")
    return "\n".join(lines)


class QuizApp(App):
    CSS = """
#choices Button { width: 100%; }
#feedback { height: 3; }
#result { border: round $accent; padding: 1 2; }
"""
    BINDINGS = [
        ("a", "choose(0)", "A"),
        ("b", "choose(1)", "B"),
        ("c", "choose(2)", "C"),
        ("d", "choose(3)", "D"),
        ("1", "choose(0)", "A"),
        ("2", "choose(1)", "B"),
        ("3", "choose(2)", "C"),
        ("4", "choose(3)", "D"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, session: QuizSession, *, delay: float = 1.0):
        super().__init__()
        self.session = session
        self.delay = delay
        self.prompt: Optional[QuestionPrompt] = None
        self.report: Optional[SessionReport] = None

    def compose(self) -> ComposeResult:
        with Container(id="stage"):
            yield Static("", id="question")
            with Vertical(id="choices"):
                for index, key in enumerate(OPTION_KEYS):
                    yield Button(key, id=f"choice-{index}")
            yield Static("", id="feedback")
            yield Static("", id="progress")
        yield Static("", id="result")

    def on_mount(self) -> None:
        self.query_one("#result", Static).display = False
        self.advance()

    # Pure helpers driving the session (usable without a running App)
    def advance(self) -> Union[QuestionPrompt, SessionComplete]:
        step = self.session.next_question()
        if isinstance(step, SessionComplete):
            self.prompt = None
            self.report = self.session.report()
        else:
            self.prompt = step
        self._refresh_stage()
        return step

    def answer(self, index: int) -> Optional[AnswerResult]:
        """Submit ``index`` for the question on screen; ignored while paused."""

        if self.prompt is None or self.session.in_flight is None:
            return None
        result = self.session.submit_answer(index)
        if self.is_running:
            self.query_one("#feedback", Static).update(
                Text(feedback_text(self.prompt, result))
            )
            self._set_choices_disabled(True)
            self.set_timer(self.delay, self.advance)
        return result

    def progress_text(self) -> str:
        return (
            f"Answered {self.session.served}/{self.session.total_questions}"
            f" | Score {self.session.score}"
            f" | Tier {self.session.tier.label}"
        )

    def action_choose(self, index: int) -> None:
        self.answer(index)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("choice-"):
            self.answer(int(button_id.rsplit("-", 1)[-1]))

    def _set_choices_disabled(self, disabled: bool) -> None:
        for button in self.query("#choices Button").results(Button):
            button.disabled = disabled

    def _refresh_stage(self) -> None:
        if not self.is_running:
            return
        if self.prompt is None:
            self.query_one("#stage", Container).display = False
            result = self.query_one("#result", Static)
            if self.report is not None:
                result.update(Text(result_text(self.report)))
            result.display = True
            return
        question = self.query_one("#question", Static)
        question.update(Text(prompt_text(self.prompt)))
        for index, option in enumerate(self.prompt.options):
            button = self.query_one(f"#choice-{index}", Button)
            button.label = Text(f"{OPTION_KEYS[index]}) {option}")
        self.query_one("#feedback", Static).update("")
        self.query_one("#progress", Static).update(self.progress_text())
        self._set_choices_disabled(False)
