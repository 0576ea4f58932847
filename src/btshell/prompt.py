"""Terminal front end: prompt_toolkit input and rich output."""

from typing import Iterable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape

from .completer import Completer as CommandCompleter


PROMPT_STYLE = Style.from_dict({
    "completion-menu.completion": "bg:#444444 #ffffff",
    "completion-menu.completion.current": "bg:#aaaaaa #000000",
    "completion-menu.meta.completion": "bg:#333333 #aaaaaa",
    "auto-suggestion": "#5f87d7",
})


class ShellCompleter(Completer):
    """Adapt the command completer to prompt_toolkit."""

    def __init__(self, completer: CommandCompleter):
        self.completer = completer

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        for suggestion in self.completer.suggest(document.text, document.cursor_position):
            yield Completion(
                suggestion.text,
                start_position=-suggestion.replace_length,
                display_meta=suggestion.description,
            )


class PromptLineSource:
    """Read lines with completion and recall of earlier sessions."""

    def __init__(self, completer: CommandCompleter, history: Optional[list[str]] = None):
        self.session = PromptSession(
            history=InMemoryHistory(history or []),
            completer=ShellCompleter(completer),
            complete_while_typing=True,
            auto_suggest=AutoSuggestFromHistory(),
            style=PROMPT_STYLE,
        )

    def read_line(self, prompt: str) -> str:
        return self.session.prompt(prompt)


class ConsoleLineSink:
    """Write results to stdout and problems to stderr."""

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def write(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def write_error(self, text: str) -> None:
        self.err_console.print(f"[bold red]Error:[/bold red] {escape(text)}", soft_wrap=True)

    def write_warning(self, text: str) -> None:
        self.err_console.print(f"[yellow]Warning:[/yellow] {escape(text)}", soft_wrap=True)
