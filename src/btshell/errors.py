"""Error taxonomy for the shell.

Startup errors (``ConfigError``, ``ClientConnectionError``) abort the process.
Everything else is raised per command and caught at the executor boundary.
"""

from typing import Optional, Union


class ShellError(Exception):
    """Base class for all btshell errors."""


class ConfigError(ShellError):
    """Raised when flags or the config file are malformed."""


class ClientConnectionError(ShellError):
    """Raised when the repository client cannot be constructed."""


class ParseError(ShellError):
    """Raised when an input line cannot be parsed into a command."""


class UnknownCommandError(ParseError):
    """Raised when the first token is not a known verb."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"unknown command '{token}' (type 'help' for a list of commands)")


class ArgumentCountError(ParseError):
    """Raised when a verb receives the wrong number of arguments."""

    def __init__(self, verb: str, minimum: int, maximum: int, got: int):
        self.verb = verb
        self.minimum = minimum
        self.maximum = maximum
        self.got = got
        if minimum == maximum:
            wanted = f"{minimum}"
        else:
            wanted = f"{minimum} to {maximum}"
        super().__init__(f"'{verb}' expects {wanted} argument(s), got {got}")

    @property
    def expected(self) -> Union[int, tuple[int, int]]:
        """The expected count, or a ``(min, max)`` pair for ranged verbs."""
        if self.minimum == self.maximum:
            return self.minimum
        return (self.minimum, self.maximum)


class ValidationError(ShellError):
    """Raised when well-formed arguments are semantically invalid."""


class RemoteError(ShellError):
    """Raised when a repository call fails."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation}: {detail}")


class HistoryIOError(ShellError):
    """Raised (or returned as a warning) when the history file cannot be used."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
