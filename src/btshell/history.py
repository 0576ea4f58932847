"""Append-only command history.

Every accepted line is kept in memory for recall and appended to a plain
text file, one line per record. File problems never stop the shell: they
are logged and handed back as ``HistoryIOError`` values.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from .errors import HistoryIOError
from .log import get_logger


DEFAULT_HISTORY_PATH = Path.home() / ".btshell_history"

logger = get_logger(__name__)


class HistoryStream:
    """In-memory history backed by an optional append-only file handle."""

    def __init__(
        self,
        handle: Optional[IO[str]] = None,
        entries: Optional[list[str]] = None,
        path: Optional[Path] = None,
        open_error: Optional[HistoryIOError] = None,
    ):
        self._handle = handle
        self._entries = list(entries or [])
        self._closed = False
        self.path = path
        self.open_error = open_error

    @classmethod
    def open(cls, path: Path) -> "HistoryStream":
        """Open ``path`` for read and append, loading previous lines.

        On failure the returned stream keeps history in memory only and
        ``open_error`` holds the reason.
        """
        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(path, "a+", encoding="utf-8")
        except OSError as e:
            error = HistoryIOError(f"failed to open history file {path}: {e}", str(path))
            logger.warning("%s", error)
            return cls(path=path, open_error=error)

        try:
            handle.seek(0)
            entries = [line.rstrip("\n") for line in handle if line.strip()]
        except (OSError, UnicodeDecodeError) as e:
            # Unreadable history still accepts appends
            logger.warning("Could not load history from %s: %s", path, e)
            entries = []
        return cls(handle=handle, entries=entries, path=path)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def handle(self) -> Optional[IO[str]]:
        return self._handle

    @property
    def persistent(self) -> bool:
        return self._handle is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, line: str) -> Optional[HistoryIOError]:
        """Record a line and append it to the file.

        Returns:
            None on success, or the HistoryIOError that prevented persisting
        """
        if self._closed:
            error = HistoryIOError("history stream is closed", str(self.path) if self.path else None)
            logger.debug("%s", error)
            return error

        self._entries.append(line)
        if self._handle is None:
            return None

        try:
            self._handle.write(line + "\n")
            self._handle.flush()
        except (OSError, ValueError) as e:
            error = HistoryIOError(f"failed to append to history file {self.path}: {e}", str(self.path))
            logger.debug("%s", error)
            return error
        return None

    def close(self) -> None:
        """Flush and close the file handle. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                logger.warning("Failed to close history file %s: %s", self.path, e)

    def __enter__(self) -> "HistoryStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@contextmanager
def open_history(path: Optional[Path] = None) -> Iterator[HistoryStream]:
    """Open the history file for the length of a session.

    The stream is closed on every exit path.
    """
    stream = HistoryStream.open(path or DEFAULT_HISTORY_PATH)
    try:
        yield stream
    finally:
        stream.close()
