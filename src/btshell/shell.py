"""Interactive session: wires the core together and runs the read loop.

The loop only needs something that reads lines and something that writes
text, so it can be driven by prompt_toolkit or by a list of strings.
"""

from typing import Optional, Protocol

from . import __version__
from .cache import MetadataCache
from .completer import Completer
from .executor import DEFAULT_READ_LIMIT, Executor
from .history import HistoryStream
from .log import get_logger
from .models import ExecutionResult
from .repository import Repository
from .rows import RowsInteractor
from .tables import TableInteractor


EXIT_OK = 0
EXIT_ERROR = 11
EXIT_PARSE_ERROR = 12
EXIT_INVALID_ARGS = 13

logger = get_logger(__name__)


class LineSource(Protocol):
    def read_line(self, prompt: str) -> str:
        """Return the next line. Raise EOFError at end of input."""


class LineSink(Protocol):
    def write(self, text: str) -> None: ...

    def write_error(self, text: str) -> None: ...

    def write_warning(self, text: str) -> None: ...


class Session:
    """Process-wide shell state for one interactive session."""

    def __init__(
        self,
        repository: Repository,
        history: HistoryStream,
        read_limit: int = DEFAULT_READ_LIMIT,
    ):
        self.repository = repository
        self.history = history
        self.cache = MetadataCache()
        self.tables = TableInteractor(repository, self.cache)
        self.rows = RowsInteractor(repository)
        self.executor = Executor(
            self.tables,
            self.rows,
            history,
            read_limit=read_limit,
            on_table=self._set_current_table,
        )
        self.completer = Completer(self.tables)
        self.current_table: Optional[str] = None

    def _set_current_table(self, name: str) -> None:
        self.current_table = name

    @property
    def prompt(self) -> str:
        if self.current_table:
            return f"btshell({self.current_table})> "
        return "btshell> "

    def execute(self, line: str) -> ExecutionResult:
        return self.executor.execute(line)

    def suggest(self, line: str, cursor: int):
        return self.completer.suggest(line, cursor)

    def run(self, source: LineSource, sink: LineSink) -> int:
        """Read and execute lines until ``exit`` or end of input.

        The history stream is closed however the loop ends.
        """
        sink.write(f"btshell version {__version__}")
        sink.write("Please use `exit` or `Ctrl-D` to exit this program.")
        try:
            while True:
                try:
                    line = source.read_line(self.prompt)
                except EOFError:
                    break
                except KeyboardInterrupt:
                    continue

                result = self.execute(line)
                if result.output:
                    sink.write(result.output)
                if result.error:
                    sink.write_error(result.error)
                for warning in result.warnings:
                    sink.write_warning(warning)
                if result.exit:
                    break
        finally:
            self.history.close()
        logger.debug("Session ended")
        return EXIT_OK
