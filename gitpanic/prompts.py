"""User prompts used by the CLI commands.

The recovery core never prompts. Commands gather choices, text and
confirmations through a Prompter, so tests can script the answers.
"""

from typing import Callable, Optional, Protocol, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.text import Text

# Returns an error message for invalid input, None when valid
Validator = Callable[[str], Optional[str]]

LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


class Prompter(Protocol):
    """What the CLI needs from an interactive front end."""

    def ask_choice(self, title: str, options: Sequence[str]) -> Optional[int]:
        """Index of the chosen option, or None if cancelled."""
        ...

    def ask_text(
        self,
        prompt: str,
        validator: Optional[Validator] = None,
        default: Optional[str] = None,
    ) -> Optional[str]:
        """Entered text, or None if cancelled."""
        ...

    def ask_yes_no(self, message: str, warnings: Sequence[str] = ()) -> bool:
        ...

    def notify(self, message: str, level: str = "info") -> None:
        ...


class RichPrompter:
    """Terminal prompts built on rich.prompt.

    Args:
        console: Console to read from and write to.
        assume_yes: Answer every yes/no question with yes (``--yes``).
    """

    def __init__(self, console: Optional[Console] = None, assume_yes: bool = False):
        self.console = console or Console()
        self.assume_yes = assume_yes

    def ask_choice(self, title: str, options: Sequence[str]) -> Optional[int]:
        if not options:
            return None

        self.console.print(f"[bold]{title}[/bold]")
        for number, option in enumerate(options, start=1):
            self.console.print(f"  [cyan]{number}[/cyan]) ", Text(option))
        self.console.print("  [dim]0) cancel[/dim]")

        answer = IntPrompt.ask(
            "Select",
            console=self.console,
            choices=[str(n) for n in range(len(options) + 1)],
            show_choices=False,
        )
        return None if answer == 0 else answer - 1

    def ask_text(
        self,
        prompt: str,
        validator: Optional[Validator] = None,
        default: Optional[str] = None,
    ) -> Optional[str]:
        while True:
            answer = Prompt.ask(prompt, console=self.console, default=default or "")
            answer = answer.strip()
            if not answer:
                return None
            error = validator(answer) if validator else None
            if error is None:
                return answer
            self.console.print(f"[red]{error}[/red]")

    def ask_yes_no(self, message: str, warnings: Sequence[str] = ()) -> bool:
        if warnings:
            body = "\n".join(f"• {warning}" for warning in warnings)
            self.console.print(Panel(body, title="Warning", border_style="yellow"))
        if self.assume_yes:
            return True
        return Confirm.ask(message, console=self.console, default=False)

    def notify(self, message: str, level: str = "info") -> None:
        style = LEVEL_STYLES.get(level, "")
        if level == "success":
            message = f"✓ {message}"
        self.console.print(Text(message, style=style))
