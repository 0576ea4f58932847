"""In-memory cache of table metadata.

The table interactor is the only writer. The completer reads it on every
keystroke, so every method here is a plain dictionary operation.
"""

from typing import Iterable, Optional

from .models import TableMetadata


class MetadataCache:
    """Table metadata keyed by table name."""

    def __init__(self):
        self._tables: dict[str, TableMetadata] = {}

    def replace_all(self, tables: Iterable[TableMetadata]) -> None:
        """Swap in a freshly listed set of tables."""
        self._tables = {t.name: t for t in tables}

    def put(self, table: TableMetadata) -> None:
        """Insert or replace a single entry."""
        tables = dict(self._tables)
        tables[table.name] = table
        self._tables = tables

    def get(self, name: str) -> Optional[TableMetadata]:
        return self._tables.get(name)

    def names(self) -> list[str]:
        return sorted(self._tables)

    def families(self, name: str) -> list[str]:
        table = self._tables.get(name)
        if table is None:
            return []
        return sorted(table.column_families)

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables
