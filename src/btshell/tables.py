"""Table-level operations and the metadata cache they maintain."""

from .cache import MetadataCache
from .errors import RemoteError, ValidationError
from .log import get_logger
from .models import TableMetadata
from .repository import Repository


logger = get_logger(__name__)


class TableInteractor:
    """Translate table commands into repository calls.

    Successful fetches refresh ``cache``. Failed fetches leave it alone.
    """

    def __init__(self, repository: Repository, cache: MetadataCache):
        self.repository = repository
        self.cache = cache

    def list_tables(self) -> list[TableMetadata]:
        """List tables and replace the cached set with the result.

        Raises:
            RemoteError: If the repository call fails
        """
        try:
            tables = self.repository.list_tables()
        except RemoteError as e:
            raise RemoteError("list tables", e.detail) from e

        tables = sorted(tables, key=lambda t: t.name)
        self.cache.replace_all(tables)
        logger.debug("Cached %d table(s)", len(tables))
        return tables

    def describe_table(self, name: str) -> TableMetadata:
        """Fetch one table and insert or replace its cache entry.

        Raises:
            ValidationError: If the name is empty
            RemoteError: If the repository call fails
        """
        if not name:
            raise ValidationError("table name must not be empty")
        try:
            table = self.repository.describe_table(name)
        except RemoteError as e:
            raise RemoteError(f"describe {name}", e.detail) from e

        self.cache.put(table)
        return table

    def cached_table_names(self) -> list[str]:
        return self.cache.names()

    def cached_families(self, name: str) -> list[str]:
        return self.cache.families(name)
