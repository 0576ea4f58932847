"""Command grammar: turn a raw input line into a Command.

Parsing is pure. No repository access happens here.
"""

import shlex

from .errors import ArgumentCountError, ParseError, UnknownCommandError
from .models import Command, Verb


# verb -> (minimum, maximum) argument count
ARITY: dict[Verb, tuple[int, int]] = {
    Verb.LIST: (0, 0),
    Verb.DESCRIBE: (1, 1),
    Verb.READ: (1, 3),
    Verb.WRITE: (4, 4),
    Verb.DELETE: (1, 3),
    Verb.HELP: (0, 0),
    Verb.EXIT: (0, 0),
}

USAGE: dict[Verb, str] = {
    Verb.LIST: "list",
    Verb.DESCRIBE: "describe <table>",
    Verb.READ: "read <table> [row-key-prefix] [family[:qualifier]]",
    Verb.WRITE: "write <table> <row-key> <family:qualifier> <value>",
    Verb.DELETE: "delete <table> <row-key> [family[:qualifier]]",
    Verb.HELP: "help",
    Verb.EXIT: "exit",
}

DESCRIPTIONS: dict[Verb, str] = {
    Verb.LIST: "List tables",
    Verb.DESCRIBE: "Show the column families of a table",
    Verb.READ: "Read rows, optionally by key prefix and column",
    Verb.WRITE: "Set a single cell",
    Verb.DELETE: "Delete a row, a column family or a single cell",
    Verb.HELP: "Show this help",
    Verb.EXIT: "Leave the shell",
}

VERBS = {verb.value: verb for verb in Verb}


def tokenize(line: str) -> list[str]:
    """Split a line on whitespace, honouring single and double quotes."""
    try:
        return shlex.split(line)
    except ValueError as e:
        raise ParseError(f"cannot parse input: {e}")


def parse(line: str) -> Command:
    """Parse one input line.

    Args:
        line: Raw text entered at the prompt

    Returns:
        The parsed Command

    Raises:
        ParseError: If the line is empty or badly quoted
        UnknownCommandError: If the first token is not a verb
        ArgumentCountError: If the verb got the wrong number of arguments
    """
    tokens = tokenize(line)
    if not tokens:
        raise ParseError("empty command")

    head, args = tokens[0], tokens[1:]
    verb = VERBS.get(head)
    if verb is None:
        raise UnknownCommandError(head)

    minimum, maximum = ARITY[verb]
    if not minimum <= len(args) <= maximum:
        raise ArgumentCountError(verb.value, minimum, maximum, len(args))

    return Command(verb=verb, args=tuple(args))
