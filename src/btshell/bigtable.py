"""Cloud Bigtable repository using google-cloud-bigtable.

Install with the ``bigtable`` extra. Credentials come from Application
Default Credentials; set BIGTABLE_EMULATOR_HOST to use the emulator.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import bigtable
from google.cloud.bigtable.row_set import RowSet

from .errors import ClientConnectionError, RemoteError
from .log import get_logger
from .models import Cell, MutationOp, Row, RowMutation, TableMetadata
from .repository import Repository


logger = get_logger(__name__)


@contextmanager
def _remote(operation: str):
    """Turn Google API failures into a RemoteError for ``operation``."""
    try:
        yield
    except google_exceptions.NotFound as e:
        raise RemoteError(operation, f"not found: {e.message}") from e
    except google_exceptions.GoogleAPIError as e:
        raise RemoteError(operation, str(e)) from e
    except auth_exceptions.GoogleAuthError as e:
        raise RemoteError(operation, f"authentication failed: {e}") from e


def _check_status(operation: str, status) -> None:
    # DirectRow.commit() reports per-row failures as a google.rpc.Status
    code = getattr(status, "code", 0)
    if code:
        raise RemoteError(operation, getattr(status, "message", "") or f"status code {code}")


def _to_row(partial_row) -> Row:
    cells = []
    for family in sorted(partial_row.cells):
        columns = partial_row.cells[family]
        for qualifier in sorted(columns):
            versions = columns[qualifier]
            if not versions:
                continue
            latest = versions[0]
            cells.append(Cell(
                family=family,
                qualifier=qualifier.decode("utf-8", "backslashreplace"),
                value=latest.value,
                timestamp=latest.timestamp,
            ))
    return Row(key=partial_row.row_key, cells=tuple(cells))


class BigtableRepository(Repository):
    """Repository over one Cloud Bigtable instance."""

    def __init__(self, project: str, instance: str, client=None):
        if not project or not instance:
            raise ClientConnectionError("project and instance must not be empty")

        self.project = project
        self.instance_id = instance
        try:
            self.client = client or bigtable.Client(project=project, admin=True)
            self.instance = self.client.instance(instance)
        except (auth_exceptions.GoogleAuthError, google_exceptions.GoogleAPIError, ValueError) as e:
            raise ClientConnectionError(
                f"failed to initialize bigtable client for {project}/{instance}: {e}"
            ) from e
        logger.debug("Connected to bigtable instance %s/%s", project, instance)

    def list_tables(self) -> list[TableMetadata]:
        with _remote("list tables"):
            tables = self.instance.list_tables()
        return sorted((TableMetadata(t.table_id) for t in tables), key=lambda t: t.name)

    def describe_table(self, name: str) -> TableMetadata:
        with _remote(f"describe {name}"):
            families = self.instance.table(name).list_column_families()
        return TableMetadata(name, frozenset(families))

    def read_rows(self, table: str, prefix: bytes = b"") -> Iterator[Row]:
        bt_table = self.instance.table(table)
        with _remote(f"read {table}"):
            if not bt_table.exists():
                raise RemoteError(f"read {table}", "table not found")
            if prefix:
                row_set = RowSet()
                row_set.add_row_range_with_prefix(prefix.decode("utf-8"))
                stream = bt_table.read_rows(row_set=row_set)
            else:
                stream = bt_table.read_rows()
        return self._iter_rows(table, stream)

    def _iter_rows(self, table: str, stream) -> Iterator[Row]:
        with _remote(f"read {table}"):
            for partial_row in stream:
                yield _to_row(partial_row)

    def write_row(self, table: str, mutation: RowMutation) -> None:
        if mutation.operation is not MutationOp.SET:
            raise RemoteError(f"write {table}", "only set mutations can be written")

        operation = f"write {table}"
        with _remote(operation):
            row = self.instance.table(table).direct_row(mutation.row_key)
            row.set_cell(mutation.family, mutation.qualifier.encode("utf-8"), mutation.value)
            _check_status(operation, row.commit())

    def delete_row(
        self,
        table: str,
        row_key: bytes,
        family: Optional[str] = None,
        qualifier: Optional[str] = None,
    ) -> None:
        operation = f"delete {table}"
        with _remote(operation):
            row = self.instance.table(table).direct_row(row_key)
            if not family:
                row.delete()
            elif not qualifier:
                row.delete_cells(family, row.ALL_COLUMNS)
            else:
                row.delete_cell(family, qualifier.encode("utf-8"))
            _check_status(operation, row.commit())

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
