"""Shared test fixtures for btshell tests."""

import uuid
from typing import Iterator, Optional

import pytest

from btshell.cache import MetadataCache
from btshell.catalog import LocalRepository, init_local_store
from btshell.errors import RemoteError
from btshell.executor import Executor
from btshell.history import HistoryStream
from btshell.models import Cell, Row, RowMutation, TableMetadata
from btshell.repository import Repository
from btshell.rows import RowsInteractor
from btshell.tables import TableInteractor


class FakeRepository(Repository):
    """In-memory repository that records every call."""

    def __init__(self, tables: Optional[dict[str, set[str]]] = None):
        self.families: dict[str, set[str]] = {
            name: set(families) for name, families in (tables or {}).items()
        }
        # table -> row key -> (family, qualifier) -> value
        self.data: dict[str, dict[bytes, dict[tuple[str, str], bytes]]] = {
            name: {} for name in self.families
        }
        self.calls: list[tuple] = []
        self.fail_with: Optional[str] = None
        self.closed = False

    def _check(self, operation: str, table: Optional[str] = None) -> None:
        if self.fail_with:
            raise RemoteError(operation, self.fail_with)
        if table is not None and table not in self.families:
            raise RemoteError(operation, f"table not found: {table}")

    def list_tables(self) -> list[TableMetadata]:
        self.calls.append(("list_tables",))
        self._check("list tables")
        return [TableMetadata(name) for name in self.families]

    def describe_table(self, name: str) -> TableMetadata:
        self.calls.append(("describe_table", name))
        self._check(f"describe {name}", name)
        return TableMetadata(name, frozenset(self.families[name]))

    def read_rows(self, table: str, prefix: bytes = b"") -> Iterator[Row]:
        self.calls.append(("read_rows", table, prefix))
        self._check(f"read {table}", table)
        rows = self.data[table]
        return (
            Row(key, tuple(Cell(f, q, v) for (f, q), v in sorted(rows[key].items())))
            for key in sorted(rows)
            if key.startswith(prefix) and rows[key]
        )

    def write_row(self, table: str, mutation: RowMutation) -> None:
        self.calls.append(("write_row", table, mutation))
        self._check(f"write {table}", table)
        if mutation.family not in self.families[table]:
            raise RemoteError(f"write {table}", f"unknown family {mutation.family}")
        row = self.data[table].setdefault(mutation.row_key, {})
        row[(mutation.family, mutation.qualifier)] = mutation.value

    def delete_row(self, table, row_key, family=None, qualifier=None) -> None:
        self.calls.append(("delete_row", table, row_key, family, qualifier))
        self._check(f"delete {table}", table)
        row = self.data[table].get(row_key, {})
        if family is None:
            self.data[table].pop(row_key, None)
            return
        for f, q in list(row):
            if f == family and (qualifier is None or q == qualifier):
                del row[(f, q)]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def repository():
    """Fake repository with two tables."""
    return FakeRepository({
        "users": {"cf", "meta"},
        "usage": {"daily"},
    })


@pytest.fixture
def cache():
    return MetadataCache()


@pytest.fixture
def tables(repository, cache):
    return TableInteractor(repository, cache)


@pytest.fixture
def rows(repository):
    return RowsInteractor(repository)


@pytest.fixture
def history_path(tmp_path):
    """Return a temporary history file path."""
    return tmp_path / "history"


@pytest.fixture
def history(history_path):
    stream = HistoryStream.open(history_path)
    yield stream
    stream.close()


@pytest.fixture
def executor(tables, rows, history):
    return Executor(tables, rows, history, read_limit=10)


@pytest.fixture
def local_repository(tmp_path):
    """Create an isolated local store with the sample tables.

    Uses a unique project directory per test to avoid PyIceberg state leaks.
    """
    return init_local_store(f"test_{uuid.uuid4().hex[:8]}", "default", root=tmp_path / "local")


@pytest.fixture
def config_path(tmp_path):
    """Return a temporary config file path."""
    return tmp_path / "config.toml"


class ListSource:
    """Feed prepared lines, then signal end of input."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.prompts = []

    def read_line(self, prompt):
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        line = self.lines.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line


class RecordingSink:
    def __init__(self):
        self.out = []
        self.errors = []
        self.warnings = []

    def write(self, text):
        self.out.append(text)

    def write_error(self, text):
        self.errors.append(text)

    def write_warning(self, text):
        self.warnings.append(text)


@pytest.fixture
def make_source():
    """Build a line source from a list of lines or exceptions."""
    return ListSource


@pytest.fixture
def sink():
    return RecordingSink()
