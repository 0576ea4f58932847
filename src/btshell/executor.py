"""Executor: run one input line per prompt cycle."""

import itertools
from typing import Callable, Iterator, Optional

from .config import DEFAULT_READ_LIMIT
from .display import (
    format_mutation,
    format_rows,
    format_table,
    format_tables,
    help_text,
)
from .errors import ParseError, RemoteError, ValidationError
from .grammar import parse
from .history import HistoryStream
from .log import get_logger
from .models import Command, ExecutionResult, Row, Verb
from .rows import RowsInteractor, build_delete, build_write
from .tables import TableInteractor


logger = get_logger(__name__)


class Executor:
    """Parse, dispatch, format and record a single input line.

    Per-command failures come back as ``ExecutionResult.error``; nothing
    raised by a command escapes ``execute``.
    """

    def __init__(
        self,
        tables: TableInteractor,
        rows: RowsInteractor,
        history: HistoryStream,
        read_limit: int = DEFAULT_READ_LIMIT,
        on_table: Optional[Callable[[str], None]] = None,
    ):
        self.tables = tables
        self.rows = rows
        self.history = history
        self.read_limit = read_limit
        self.on_table = on_table

    def execute(self, line: str) -> ExecutionResult:
        """Run one line and describe what happened.

        Args:
            line: Raw text entered at the prompt

        Returns:
            ExecutionResult with output, error, warnings and exit flag
        """
        if not line.strip():
            return ExecutionResult()

        try:
            command = parse(line)
        except ParseError as e:
            return ExecutionResult(error=str(e))

        result = self._dispatch(command)

        warning = self.history.append(line)
        if warning is not None:
            result.warnings.append(str(warning))

        if result.exit:
            self.history.close()
        elif result.ok and command.table and self.on_table is not None:
            self.on_table(command.table)
        return result

    def _dispatch(self, command: Command) -> ExecutionResult:
        handler = {
            Verb.LIST: self._list,
            Verb.DESCRIBE: self._describe,
            Verb.READ: self._read,
            Verb.WRITE: self._write,
            Verb.DELETE: self._delete,
            Verb.HELP: self._help,
            Verb.EXIT: self._exit,
        }[command.verb]

        try:
            output = handler(command.args)
        except ValidationError as e:
            return ExecutionResult(error=f"invalid argument: {e}")
        except RemoteError as e:
            logger.debug("Remote call failed: %s", e)
            return ExecutionResult(error=str(e))

        return ExecutionResult(output=output, exit=command.verb is Verb.EXIT)

    def _list(self, args: tuple[str, ...]) -> str:
        return format_tables(self.tables.list_tables())

    def _describe(self, args: tuple[str, ...]) -> str:
        return format_table(self.tables.describe_table(args[0]))

    def _read(self, args: tuple[str, ...]) -> str:
        table = args[0]
        prefix = args[1] if len(args) > 1 else ""
        column = args[2] if len(args) > 2 else None
        rows = self.rows.read_rows(table, prefix, column)
        collected, truncated = self._drain(rows)
        return format_rows(collected, truncated)

    def _drain(self, rows: Iterator[Row]) -> tuple[list[Row], bool]:
        """Materialize at most ``read_limit`` rows and release the iterator."""
        try:
            collected = list(itertools.islice(rows, self.read_limit + 1))
        finally:
            close = getattr(rows, "close", None)
            if close is not None:
                close()
        truncated = len(collected) > self.read_limit
        return collected[:self.read_limit], truncated

    def _write(self, args: tuple[str, ...]) -> str:
        table, row_key, column, value = args
        mutation = build_write(row_key, column, value)
        self.rows.write_row(table, mutation)
        return format_mutation(table, mutation)

    def _delete(self, args: tuple[str, ...]) -> str:
        table = args[0]
        row_key = args[1] if len(args) > 1 else ""
        column = args[2] if len(args) > 2 else None
        mutation = build_delete(row_key, column)
        self.rows.apply(table, mutation)
        return format_mutation(table, mutation)

    def _help(self, args: tuple[str, ...]) -> str:
        return help_text()

    def _exit(self, args: tuple[str, ...]) -> str:
        return "Bye!"
