"""Terminal prompts on top of ``rich.prompt``.

Every question the workflow asks goes through a ``Prompter`` so tests can
swap in a scripted one.  Ctrl-C or end-of-input at any prompt raises
``PromptCancelled``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from createkit.utils import console as default_console
from createkit.utils import print_error

Validator = Callable[[str], "str | None"]


class PromptCancelled(Exception):
    """The user aborted an interactive prompt."""


@dataclass
class Choice:
    value: str
    label: str
    hint: str = ""


class Prompter:
    """Asks questions on a Rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or default_console

    def _ask(self, ask: Callable[[], Any]) -> Any:
        try:
            return ask()
        except (KeyboardInterrupt, EOFError) as exc:
            raise PromptCancelled("Operation cancelled") from exc

    def text(self, message: str, default: str | None = None, validate: Validator | None = None) -> str:
        """Free-text answer, re-asked until *validate* returns ``None``."""
        kwargs: dict[str, Any] = {"console": self.console}
        if default is not None:
            kwargs["default"] = default
        while True:
            answer = self._ask(lambda: Prompt.ask(message, **kwargs))
            answer = (answer or "").strip()
            error = validate(answer) if validate else None
            if error is None:
                return answer
            print_error(error)

    def confirm(self, message: str, default: bool = True) -> bool:
        return bool(self._ask(lambda: Confirm.ask(message, default=default, console=self.console)))

    def select(self, message: str, choices: list[Choice], default: str | None = None) -> str:
        """Pick one of *choices* by number; returns the chosen ``value``."""
        self._show_choices(choices)
        numbers = [str(i) for i in range(1, len(choices) + 1)]
        default_number = next(
            (str(i) for i, c in enumerate(choices, start=1) if c.value == default), numbers[0]
        )
        answer = self._ask(
            lambda: Prompt.ask(
                message,
                choices=numbers,
                default=default_number,
                show_choices=False,
                console=self.console,
            )
        )
        return choices[int(answer) - 1].value

    def multiselect(self, message: str, choices: list[Choice], defaults: list[str] | None = None) -> list[str]:
        """Pick any number of *choices* as comma-separated numbers."""
        if not choices:
            return []
        self._show_choices(choices)
        preset = ",".join(str(i) for i, c in enumerate(choices, start=1) if c.value in (defaults or []))
        while True:
            answer = self._ask(
                lambda: Prompt.ask(
                    f"{message} (comma-separated numbers, blank for none)",
                    default=preset,
                    console=self.console,
                )
            )
            picked = _parse_numbers(answer or "", len(choices))
            if picked is not None:
                return [choices[i - 1].value for i in picked]
            print_error(f"Enter numbers between 1 and {len(choices)}")

    def note(self, title: str, body: str) -> None:
        self.console.print(Panel(escape(body), title=escape(title), border_style="cyan"))

    def _show_choices(self, choices: list[Choice]) -> None:
        for i, choice in enumerate(choices, start=1):
            hint = f" [dim]{escape(choice.hint)}[/dim]" if choice.hint else ""
            self.console.print(f"  [bold]{i}[/bold]) {escape(choice.label)}{hint}")


def _parse_numbers(answer: str, count: int) -> list[int] | None:
    picked: list[int] = []
    for part in answer.replace(" ", "").split(","):
        if not part:
            continue
        if not part.isdigit() or not 1 <= int(part) <= count:
            return None
        if int(part) not in picked:
            picked.append(int(part))
    return picked
