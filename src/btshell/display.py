"""Plain-text rendering of command results.

Output is one record per line so it can be piped and diffed.
"""

import json

from .grammar import DESCRIPTIONS, USAGE
from .models import MutationOp, Row, RowMutation, TableMetadata, Verb


def format_value(value: bytes) -> str:
    """Render a cell value, quoting it when it would be ambiguous."""
    try:
        text = value.decode("utf-8")
    except UnicodeDecodeError:
        return repr(value)
    if not text or any(ch.isspace() for ch in text) or '"' in text:
        return json.dumps(text, ensure_ascii=False)
    return text


def format_key(key: bytes) -> str:
    try:
        return key.decode("utf-8")
    except UnicodeDecodeError:
        return repr(key)


def format_tables(tables: list[TableMetadata]) -> str:
    """One table per line, with families when they are known."""
    if not tables:
        return "No tables found."

    width = max(len(t.name) for t in tables)
    lines = []
    for table in tables:
        if table.column_families:
            families = ", ".join(sorted(table.column_families))
            lines.append(f"{table.name.ljust(width)}  {families}")
        else:
            lines.append(table.name)
    return "\n".join(lines)


def format_table(table: TableMetadata) -> str:
    """The table name followed by one column family per line."""
    lines = [f"Table: {table.name}"]
    if not table.column_families:
        lines.append("  (no column families)")
    for family in sorted(table.column_families):
        lines.append(f"  {family}")
    return "\n".join(lines)


def format_row(row: Row) -> str:
    cells = "  ".join(f"{cell.column}={format_value(cell.value)}" for cell in row.cells)
    return f"{format_key(row.key)}  {cells}" if cells else format_key(row.key)


def format_rows(rows: list[Row], truncated: bool = False) -> str:
    """One row per line: ``key  family:qualifier=value ...``."""
    if not rows:
        return "No rows found."

    lines = [format_row(row) for row in rows]
    if truncated:
        lines.append(f"(showing first {len(rows)} rows)")
    return "\n".join(lines)


def format_mutation(table: str, mutation: RowMutation) -> str:
    """Confirmation line for a write or delete."""
    key = format_key(mutation.row_key)
    if mutation.operation is MutationOp.SET:
        return f"Wrote {mutation.family}:{mutation.qualifier} to row '{key}' in {table}."
    if mutation.scope == "row":
        return f"Deleted row '{key}' from {table}."
    if mutation.scope == "family":
        return f"Deleted family '{mutation.family}' of row '{key}' in {table}."
    return f"Deleted cell {mutation.family}:{mutation.qualifier} of row '{key}' in {table}."


def help_text() -> str:
    width = max(len(usage) for usage in USAGE.values())
    lines = ["Commands:"]
    for verb in Verb:
        lines.append(f"  {USAGE[verb].ljust(width)}  {DESCRIPTIONS[verb]}")
    lines.append("")
    lines.append("Quote values containing spaces, e.g. write users row1 cf:bio \"likes tea\".")
    lines.append("Press Tab to complete commands and table names, Ctrl-D to exit.")
    return "\n".join(lines)
