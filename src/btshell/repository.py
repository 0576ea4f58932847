"""Repository client interface consumed by the interactors.

Backends raise ``RemoteError`` for any failed call and
``ClientConnectionError`` from their constructor.
"""

from abc import ABC, abstractmethod
from typing import Iterator, Optional

from .models import Row, RowMutation, TableMetadata


class Repository(ABC):
    """Access to the tables of one instance of a wide-column store."""

    @abstractmethod
    def list_tables(self) -> list[TableMetadata]:
        """List all tables of the instance."""

    @abstractmethod
    def describe_table(self, name: str) -> TableMetadata:
        """Fetch the column families of one table."""

    @abstractmethod
    def read_rows(self, table: str, prefix: bytes = b"") -> Iterator[Row]:
        """Stream rows whose key starts with ``prefix``, ordered by key.

        A missing table must be reported when this is called, not when the
        returned iterator is first advanced.
        """

    @abstractmethod
    def write_row(self, table: str, mutation: RowMutation) -> None:
        """Apply a single-cell set."""

    @abstractmethod
    def delete_row(
        self,
        table: str,
        row_key: bytes,
        family: Optional[str] = None,
        qualifier: Optional[str] = None,
    ) -> None:
        """Delete a row, a family of a row, or a single cell."""

    def close(self) -> None:
        """Release client resources."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
