"""Local wide-column store kept in Iceberg tables using PyIceberg.

Each project is a directory holding a SQLite-backed catalog and a
warehouse. An instance is an Iceberg namespace and every shell table is an
Iceberg table with one record per cell. Column families live in a table
property.
"""

from contextlib import contextmanager
import datetime
from pathlib import Path
from typing import Iterator, Optional

import duckdb
import pyarrow as pa
from pyiceberg.catalog import Catalog
from pyiceberg.catalog.sql import SqlCatalog
from pyiceberg.exceptions import (
    NamespaceAlreadyExistsError,
    NoSuchTableError,
    TableAlreadyExistsError,
)
from pyiceberg.schema import Schema
from pyiceberg.types import BinaryType, NestedField, StringType, TimestampType

from .config import DEFAULT_LOCAL_ROOT
from .errors import ClientConnectionError, RemoteError
from .log import get_logger
from .models import Cell, MutationOp, Row, RowMutation, TableMetadata
from .repository import Repository


FAMILIES_PROPERTY = "btshell.column-families"

CELL_SCHEMA = Schema(
    NestedField(1, "row_key", StringType(), required=False),
    NestedField(2, "family", StringType(), required=False),
    NestedField(3, "qualifier", StringType(), required=False),
    NestedField(4, "value", BinaryType(), required=False),
    NestedField(5, "updated_at", TimestampType(), required=False),
)

ARROW_SCHEMA = pa.schema([
    pa.field("row_key", pa.string()),
    pa.field("family", pa.string()),
    pa.field("qualifier", pa.string()),
    pa.field("value", pa.binary()),
    pa.field("updated_at", pa.timestamp("us")),
])

SAMPLE_TABLES = {
    "users": {"profile", "stats"},
    "usage": {"daily"},
}

SAMPLE_CELLS = [
    ("users", "alice", "profile", "name", "Alice"),
    ("users", "alice", "profile", "email", "alice@example.com"),
    ("users", "alice", "stats", "logins", "42"),
    ("users", "bob", "profile", "name", "Bob"),
    ("users", "bob", "stats", "logins", "7"),
    ("usage", "2024-01-01#alice", "daily", "requests", "120"),
    ("usage", "2024-01-01#bob", "daily", "requests", "15"),
]

logger = get_logger(__name__)


def get_catalog(project_dir: Path, name: str = "btshell") -> Catalog:
    """Get or create the Iceberg catalog for one project directory.

    Uses SQLite-backed catalog for simplicity (no external dependencies).
    """
    warehouse = project_dir / "warehouse"
    warehouse.mkdir(parents=True, exist_ok=True)

    return SqlCatalog(
        name,
        **{
            "uri": f"sqlite:///{project_dir / 'catalog.db'}",
            "warehouse": f"file://{warehouse}",
        }
    )


def _families_from_properties(properties: dict) -> frozenset[str]:
    raw = properties.get(FAMILIES_PROPERTY, "")
    return frozenset(f for f in raw.split(",") if f)


def _cell_table(row_key: str, family: str, qualifier: str, value: bytes) -> pa.Table:
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    return pa.table(
        {
            "row_key": [row_key],
            "family": [family],
            "qualifier": [qualifier],
            "value": [value],
            "updated_at": [now],
        },
        schema=ARROW_SCHEMA,
    )


def _decode_key(row_key: bytes) -> str:
    try:
        return row_key.decode("utf-8")
    except UnicodeDecodeError as e:
        raise RemoteError("row key", f"local tables only support UTF-8 row keys: {e}")


@contextmanager
def _remote(operation: str):
    """Turn any backend failure into a RemoteError for ``operation``."""
    try:
        yield
    except RemoteError:
        raise
    except NoSuchTableError as e:
        raise RemoteError(operation, f"table not found: {e}") from e
    except Exception as e:
        raise RemoteError(operation, str(e)) from e


class LocalRepository(Repository):
    """Repository backed by an Iceberg catalog on the local filesystem."""

    def __init__(
        self,
        project: str,
        instance: str,
        root: Optional[Path] = None,
        create: bool = False,
    ):
        if not project or not instance:
            raise ClientConnectionError("project and instance must not be empty")

        self.project = project
        self.instance = instance
        self.project_dir = (root or DEFAULT_LOCAL_ROOT) / project

        if not create and not (self.project_dir / "catalog.db").exists():
            raise ClientConnectionError(
                f"project '{project}' not found under {self.project_dir.parent} (run 'btshell init')"
            )

        try:
            self.catalog = get_catalog(self.project_dir, name=project)
            if create:
                self._create_namespace()
            namespaces = {ns[0] if isinstance(ns, tuple) else ns for ns in self.catalog.list_namespaces()}
        except Exception as e:
            raise ClientConnectionError(f"failed to open local project '{project}': {e}") from e

        if instance not in namespaces:
            raise ClientConnectionError(
                f"instance '{instance}' not found in project '{project}' (run 'btshell init')"
            )
        logger.debug("Opened local project %s at %s", project, self.project_dir)

    def _create_namespace(self) -> None:
        try:
            self.catalog.create_namespace(self.instance)
        except NamespaceAlreadyExistsError:
            pass

    def _identifier(self, name: str) -> str:
        return f"{self.instance}.{name}"

    def _load(self, name: str):
        return self.catalog.load_table(self._identifier(name))

    def create_table(self, name: str, families: set[str]) -> TableMetadata:
        """Create a table with the given column families.

        Raises:
            ValueError: If the table already exists or has no families
        """
        if not families:
            raise ValueError("A table needs at least one column family")
        try:
            self.catalog.create_table(
                identifier=self._identifier(name),
                schema=CELL_SCHEMA,
                properties={FAMILIES_PROPERTY: ",".join(sorted(families))},
            )
        except TableAlreadyExistsError:
            raise ValueError(f"Table '{name}' already exists")
        return TableMetadata(name=name, column_families=frozenset(families))

    def list_tables(self) -> list[TableMetadata]:
        with _remote("list tables"):
            tables = []
            for identifier in self.catalog.list_tables(self.instance):
                name = identifier[-1] if isinstance(identifier, tuple) else str(identifier)
                table = self._load(name)
                tables.append(TableMetadata(name, _families_from_properties(table.properties)))
            return sorted(tables, key=lambda t: t.name)

    def describe_table(self, name: str) -> TableMetadata:
        with _remote(f"describe {name}"):
            table = self._load(name)
            return TableMetadata(name, _families_from_properties(table.properties))

    def read_rows(self, table: str, prefix: bytes = b"") -> Iterator[Row]:
        with _remote(f"read {table}"):
            cells = self._load(table).scan().to_arrow()
        return self._iter_rows(table, cells, _decode_key(prefix))

    def _iter_rows(self, table: str, cells: pa.Table, prefix: str) -> Iterator[Row]:
        if cells.num_rows == 0:
            return

        with _remote(f"read {table}"):
            conn = duckdb.connect(":memory:")
            try:
                conn.register("cells", cells)
                records = conn.execute(
                    "SELECT row_key, family, qualifier, value, updated_at FROM cells "
                    "WHERE starts_with(row_key, ?) ORDER BY row_key, family, qualifier",
                    [prefix],
                ).fetchall()
            finally:
                conn.close()

        current_key = None
        current_cells: list[Cell] = []
        for row_key, family, qualifier, value, updated_at in records:
            if row_key != current_key and current_cells:
                yield Row(key=current_key.encode("utf-8"), cells=tuple(current_cells))
                current_cells = []
            current_key = row_key
            current_cells.append(Cell(family, qualifier, bytes(value), updated_at))
        if current_cells:
            yield Row(key=current_key.encode("utf-8"), cells=tuple(current_cells))

    def _check_family(self, table, name: str, family: str) -> None:
        families = _families_from_properties(table.properties)
        if family not in families:
            raise RemoteError(
                f"column family '{family}'",
                f"not found in table '{name}' (families: {', '.join(sorted(families)) or 'none'})",
            )

    def _without(self, cells: pa.Table, conditions: list[str], params: list) -> tuple[pa.Table, int]:
        """Split off the cells matching ``conditions``.

        Returns:
            Tuple of (remaining cells, number of matching cells)
        """
        where = " AND ".join(conditions)
        conn = duckdb.connect(":memory:")
        try:
            conn.register("cells", cells)
            count_result = conn.execute(f"SELECT COUNT(*) FROM cells WHERE {where}", params).fetchone()
            match_count = count_result[0] if count_result else 0
            if match_count == 0:
                return cells, 0
            remaining = conn.execute(
                f"SELECT * FROM cells WHERE NOT ({where})", params
            ).to_arrow_table()
        finally:
            conn.close()
        return remaining.cast(ARROW_SCHEMA), match_count

    def write_row(self, table: str, mutation: RowMutation) -> None:
        if mutation.operation is not MutationOp.SET:
            raise RemoteError(f"write {table}", "only set mutations can be written")

        row_key = _decode_key(mutation.row_key)
        with _remote(f"write {table}"):
            iceberg_table = self._load(table)
            self._check_family(iceberg_table, table, mutation.family)

            new_cell = _cell_table(row_key, mutation.family, mutation.qualifier, mutation.value)
            cells = iceberg_table.scan().to_arrow()
            if cells.num_rows == 0:
                iceberg_table.append(new_cell)
                return

            remaining, replaced = self._without(
                cells,
                ["row_key = ?", "family = ?", "qualifier = ?"],
                [row_key, mutation.family, mutation.qualifier],
            )
            if replaced == 0:
                iceberg_table.append(new_cell)
            else:
                iceberg_table.overwrite(pa.concat_tables([remaining.cast(ARROW_SCHEMA), new_cell]))

    def delete_row(
        self,
        table: str,
        row_key: bytes,
        family: Optional[str] = None,
        qualifier: Optional[str] = None,
    ) -> None:
        key = _decode_key(row_key)
        with _remote(f"delete {table}"):
            iceberg_table = self._load(table)
            if family:
                self._check_family(iceberg_table, table, family)

            cells = iceberg_table.scan().to_arrow()
            if cells.num_rows == 0:
                return

            conditions, params = ["row_key = ?"], [key]
            if family:
                conditions.append("family = ?")
                params.append(family)
                if qualifier:
                    conditions.append("qualifier = ?")
                    params.append(qualifier)

            remaining, deleted = self._without(cells, conditions, params)
            if deleted:
                iceberg_table.overwrite(remaining)
                logger.debug("Deleted %d cell(s) from %s", deleted, table)


def init_local_store(
    project: str,
    instance: str,
    root: Optional[Path] = None,
    with_sample_data: bool = False,
) -> LocalRepository:
    """Create the project directory, instance namespace and sample tables."""
    repository = LocalRepository(project, instance, root=root, create=True)

    existing = {t.name for t in repository.list_tables()}
    for name, families in SAMPLE_TABLES.items():
        if name not in existing:
            repository.create_table(name, families)

    if with_sample_data:
        insert_sample_data(repository)
    return repository


def insert_sample_data(repository: Repository) -> int:
    """Write the sample cells. Returns the number of cells written."""
    for table, row_key, family, qualifier, value in SAMPLE_CELLS:
        repository.write_row(
            table,
            RowMutation(
                row_key=row_key.encode("utf-8"),
                family=family,
                qualifier=qualifier,
                value=value.encode("utf-8"),
            ),
        )
    return len(SAMPLE_CELLS)
