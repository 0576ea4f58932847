"""Row-level operations with argument validation.

Everything is validated before the repository is called, so a bad row key
or column never reaches the store.
"""

import re
from typing import Iterator, Optional

from .errors import RemoteError, ValidationError
from .log import get_logger
from .models import MutationOp, Row, RowMutation
from .repository import Repository


logger = get_logger(__name__)

FAMILY_PATTERN = re.compile(r"[^\s:]+")
QUALIFIER_PATTERN = re.compile(r"\S+")


def parse_column(token: str, require_qualifier: bool = True) -> tuple[str, str]:
    """Split a ``family:qualifier`` token.

    Args:
        token: Column token as typed by the user
        require_qualifier: Reject a bare family name when True

    Returns:
        Tuple of (family, qualifier). Qualifier is '' for a bare family.

    Raises:
        ValidationError: If either part is empty or contains whitespace
    """
    if ":" in token:
        family, qualifier = token.split(":", 1)
        if not QUALIFIER_PATTERN.fullmatch(qualifier):
            raise ValidationError(
                f"invalid column '{token}': qualifier must be non-empty and contain no whitespace"
            )
    elif require_qualifier:
        raise ValidationError(f"invalid column '{token}': expected family:qualifier")
    else:
        family, qualifier = token, ""

    if not FAMILY_PATTERN.fullmatch(family):
        raise ValidationError(
            f"invalid column '{token}': family must be non-empty and contain no whitespace"
        )
    return family, qualifier


def _check_table(table: str) -> None:
    if not table:
        raise ValidationError("table name must not be empty")


def _check_row_key(row_key) -> None:
    if not row_key:
        raise ValidationError("row key must not be empty")


def build_write(row_key: str, column: str, value: str) -> RowMutation:
    """Build a single-cell set from raw tokens."""
    _check_row_key(row_key)
    family, qualifier = parse_column(column)
    return RowMutation(
        row_key=row_key.encode("utf-8"),
        family=family,
        qualifier=qualifier,
        value=value.encode("utf-8"),
        operation=MutationOp.SET,
    )


def build_delete(row_key: str, column: Optional[str] = None) -> RowMutation:
    """Build a row, family or cell delete from raw tokens."""
    _check_row_key(row_key)
    family, qualifier = ("", "")
    if column is not None:
        family, qualifier = parse_column(column, require_qualifier=False)
    return RowMutation(
        row_key=row_key.encode("utf-8"),
        family=family,
        qualifier=qualifier,
        operation=MutationOp.DELETE,
    )


class RowsInteractor:
    """Translate row commands into repository calls."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def read_rows(
        self,
        table: str,
        prefix: str = "",
        column: Optional[str] = None,
    ) -> Iterator[Row]:
        """Read rows whose key starts with ``prefix``.

        The table is resolved immediately; rows are produced lazily. An
        optional ``family`` or ``family:qualifier`` narrows the cells and
        drops rows left without any.

        Raises:
            ValidationError: If the table or column is malformed
            RemoteError: If the repository call fails
        """
        _check_table(table)
        family, qualifier = ("", "")
        if column is not None:
            family, qualifier = parse_column(column, require_qualifier=False)

        try:
            rows = self.repository.read_rows(table, prefix.encode("utf-8"))
        except RemoteError as e:
            raise RemoteError(f"read {table}", e.detail) from e

        if not family:
            return rows
        return _filter_cells(rows, family, qualifier)

    def write_row(self, table: str, mutation: RowMutation) -> None:
        """Set one cell.

        Raises:
            ValidationError: If the mutation is not a complete cell set
            RemoteError: If the repository call fails
        """
        _check_table(table)
        _check_row_key(mutation.row_key)
        if mutation.operation is not MutationOp.SET:
            raise ValidationError("write requires a set mutation")
        parse_column(f"{mutation.family}:{mutation.qualifier}")

        try:
            self.repository.write_row(table, mutation)
        except RemoteError as e:
            raise RemoteError(f"write {table}", e.detail) from e
        logger.debug("Wrote %s/%r %s:%s", table, mutation.row_key, mutation.family, mutation.qualifier)

    def delete_row(
        self,
        table: str,
        row_key: bytes,
        family: Optional[str] = None,
        qualifier: Optional[str] = None,
    ) -> None:
        """Delete a whole row, one family, or one cell.

        Raises:
            ValidationError: If the key, family or qualifier is malformed
            RemoteError: If the repository call fails
        """
        _check_table(table)
        _check_row_key(row_key)
        if qualifier and not family:
            raise ValidationError("a qualifier requires a family")
        if family:
            column = f"{family}:{qualifier}" if qualifier else family
            parse_column(column, require_qualifier=False)

        try:
            self.repository.delete_row(table, row_key, family or None, qualifier or None)
        except RemoteError as e:
            raise RemoteError(f"delete {table}", e.detail) from e

    def apply(self, table: str, mutation: RowMutation) -> None:
        """Dispatch a mutation built by ``build_write`` or ``build_delete``."""
        if mutation.operation is MutationOp.SET:
            self.write_row(table, mutation)
        else:
            self.delete_row(table, mutation.row_key, mutation.family, mutation.qualifier)


def _filter_cells(rows: Iterator[Row], family: str, qualifier: str) -> Iterator[Row]:
    for row in rows:
        cells = tuple(
            cell for cell in row.cells
            if cell.family == family and (not qualifier or cell.qualifier == qualifier)
        )
        if cells:
            yield Row(key=row.key, cells=cells)
