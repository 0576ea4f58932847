"""Value types shared by the parser, interactors and executor."""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Verb(Enum):
    """Command keywords understood by the shell."""

    LIST = "list"
    DESCRIBE = "describe"
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    HELP = "help"
    EXIT = "exit"


# Verbs whose first argument is a table name
TABLE_VERBS = (Verb.DESCRIBE, Verb.READ, Verb.WRITE, Verb.DELETE)


@dataclass(frozen=True)
class Command:
    """A parsed input line."""

    verb: Verb
    args: tuple[str, ...] = ()

    @property
    def table(self) -> Optional[str]:
        if self.verb in TABLE_VERBS and self.args:
            return self.args[0]
        return None


@dataclass(frozen=True)
class TableMetadata:
    """A table name and its column families."""

    name: str
    column_families: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Cell:
    """The latest version of one cell."""

    family: str
    qualifier: str
    value: bytes
    timestamp: Optional[datetime.datetime] = None

    @property
    def column(self) -> str:
        return f"{self.family}:{self.qualifier}"


@dataclass(frozen=True)
class Row:
    """A row key with its cells, ordered by family then qualifier."""

    key: bytes
    cells: tuple[Cell, ...] = ()


class MutationOp(Enum):
    SET = "set"
    DELETE = "delete"


@dataclass(frozen=True)
class RowMutation:
    """A single-row write or delete.

    For deletes an empty ``family`` targets the whole row and an empty
    ``qualifier`` targets the whole family.
    """

    row_key: bytes
    family: str = ""
    qualifier: str = ""
    value: bytes = b""
    operation: MutationOp = MutationOp.SET

    @property
    def scope(self) -> str:
        """One of 'row', 'family' or 'cell'."""
        if not self.family:
            return "row"
        if not self.qualifier:
            return "family"
        return "cell"


@dataclass(frozen=True)
class Suggestion:
    """A completion candidate replacing the last ``replace_length`` characters."""

    text: str
    description: str = ""
    replace_length: int = 0


@dataclass
class ExecutionResult:
    """What the executor produced for one input line."""

    output: str = ""
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    exit: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
