"""Context-sensitive completion for the prompt.

Runs on every keystroke, so it only ever looks at the metadata cache.
"""

import shlex
from typing import Optional

from .grammar import DESCRIPTIONS
from .models import Suggestion, Verb
from .tables import TableInteractor


TABLE_ARGUMENT_VERBS = {Verb.DESCRIBE.value, Verb.READ.value, Verb.WRITE.value, Verb.DELETE.value}
COLUMN_ARGUMENT_VERBS = {Verb.READ.value, Verb.WRITE.value, Verb.DELETE.value}


def split_for_completion(line: str, cursor: int) -> Optional[tuple[list[str], str]]:
    """Split the text before the cursor into finished words and the current word.

    Words are split the way the parser splits them, so a quoted row key counts
    as one word. The current word is empty when the cursor follows whitespace.
    Returns None while a quote is still open.
    """
    before = line[:cursor]
    try:
        words = shlex.split(before)
    except ValueError:
        return None
    if not before or before[-1].isspace():
        return words, ""
    return words[:-1], words[-1]


class Completer:
    """Suggest verbs, table names and column families."""

    def __init__(self, tables: TableInteractor):
        self.tables = tables

    def suggest(self, line: str, cursor: int) -> list[Suggestion]:
        """Suggestions for the word under the cursor, best first.

        Args:
            line: Text typed so far
            cursor: Cursor offset into ``line``

        Returns:
            Ordered suggestions, empty when nothing applies
        """
        cursor = max(0, min(cursor, len(line)))
        split = split_for_completion(line, cursor)
        if split is None:
            return []
        words, current = split
        position = len(words)

        if position == 0:
            candidates = [
                (verb.value, DESCRIPTIONS[verb]) for verb in Verb
            ]
        elif position == 1 and words[0] in TABLE_ARGUMENT_VERBS:
            candidates = [(name, "table") for name in self.tables.cached_table_names()]
        elif position == 3 and words[0] in COLUMN_ARGUMENT_VERBS:
            candidates = self._family_candidates(words[0], words[1])
        else:
            return []

        return [
            Suggestion(text=text, description=description, replace_length=len(current))
            for text, description in sorted(candidates)
            if text.startswith(current)
        ]

    def _family_candidates(self, verb: str, table: str) -> list[tuple[str, str]]:
        families = self.tables.cached_families(table)
        if verb == Verb.WRITE.value:
            return [(f"{family}:", "column family") for family in families]
        return [(family, "column family") for family in families]
