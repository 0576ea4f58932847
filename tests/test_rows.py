"""Tests for row validation and the rows interactor."""

import pytest

from btshell.errors import RemoteError, ValidationError
from btshell.models import MutationOp, RowMutation
from btshell.rows import build_delete, build_write, parse_column


class TestParseColumn:
    """Test family:qualifier validation."""

    def test_family_and_qualifier(self):
        """Test splitting a family:qualifier token."""
        assert parse_column("cf:name") == ("cf", "name")

    def test_qualifier_may_contain_colon(self):
        """Test that only the first colon splits."""
        assert parse_column("cf:a:b") == ("cf", "a:b")

    def test_bare_family_allowed_when_optional(self):
        """Test a bare family where the qualifier is optional."""
        assert parse_column("cf", require_qualifier=False) == ("cf", "")

    @pytest.mark.parametrize(
        "token", ["cf", ":name", "cf:", "c f:name", "cf:na me", "", "cf:name\n", "cf\n:name"]
    )
    def test_invalid_columns(self, token):
        """Test that malformed column tokens are rejected."""
        with pytest.raises(ValidationError):
            parse_column(token)

    @pytest.mark.parametrize("token", ["cf\n", " cf", "cf\t"])
    def test_bare_family_rejects_whitespace(self, token):
        """Test that a bare family with surrounding whitespace is rejected."""
        with pytest.raises(ValidationError):
            parse_column(token, require_qualifier=False)


class TestBuildMutations:
    """Test mutations built from raw tokens."""

    def test_write_mutation(self):
        """Test building a cell set."""
        mutation = build_write("row1", "cf:name", "Alice")
        assert mutation == RowMutation(
            row_key=b"row1",
            family="cf",
            qualifier="name",
            value=b"Alice",
            operation=MutationOp.SET,
        )

    def test_family_delete(self):
        """Test building a family delete."""
        mutation = build_delete("row1", "cf")
        assert mutation.operation is MutationOp.DELETE
        assert mutation.family == "cf"
        assert mutation.qualifier == ""
        assert mutation.scope == "family"

    def test_row_delete(self):
        """Test building a row delete."""
        assert build_delete("row1").scope == "row"

    def test_cell_delete(self):
        """Test building a cell delete."""
        assert build_delete("row1", "cf:name").scope == "cell"

    def test_empty_row_key_rejected(self):
        """Test that an empty row key is rejected."""
        with pytest.raises(ValidationError, match="row key"):
            build_write("", "cf:name", "x")
        with pytest.raises(ValidationError, match="row key"):
            build_delete("")


class TestReadRows:
    """Test read_rows."""

    def test_write_then_read(self, rows):
        """Test reading back a written cell."""
        rows.write_row("users", build_write("row1", "cf:name", "Alice"))

        result = list(rows.read_rows("users", "row1"))
        assert len(result) == 1
        assert result[0].key == b"row1"
        assert result[0].cells[0].column == "cf:name"
        assert result[0].cells[0].value == b"Alice"

    def test_prefix_filters_keys(self, rows):
        """Test that only keys with the prefix are read."""
        rows.write_row("users", build_write("alice", "cf:name", "A"))
        rows.write_row("users", build_write("bob", "cf:name", "B"))

        assert [r.key for r in rows.read_rows("users", "al")] == [b"alice"]
        assert [r.key for r in rows.read_rows("users")] == [b"alice", b"bob"]

    def test_family_filter_drops_empty_rows(self, rows):
        """Test that rows without the family are dropped."""
        rows.write_row("users", build_write("alice", "cf:name", "A"))
        rows.write_row("users", build_write("bob", "meta:seen", "1"))

        result = list(rows.read_rows("users", "", "meta"))
        assert [r.key for r in result] == [b"bob"]

    def test_qualifier_filter(self, rows):
        """Test narrowing a read to one column."""
        rows.write_row("users", build_write("alice", "cf:name", "A"))
        rows.write_row("users", build_write("alice", "cf:age", "30"))

        result = list(rows.read_rows("users", "alice", "cf:age"))
        assert [c.qualifier for c in result[0].cells] == ["age"]

    def test_missing_table_fails_on_call(self, rows):
        """Test that a missing table fails before iteration."""
        with pytest.raises(RemoteError, match="read nope"):
            rows.read_rows("nope")

    def test_invalid_column_makes_no_call(self, rows, repository):
        """Test that a bad column never reaches the store."""
        with pytest.raises(ValidationError):
            rows.read_rows("users", "", "c f")
        assert repository.calls == []


class TestWriteRow:
    """Test write_row."""

    def test_idempotent(self, rows, repository):
        """Test that writing the same cell twice keeps one value."""
        mutation = build_write("row1", "cf:name", "Alice")
        rows.write_row("users", mutation)
        rows.write_row("users", mutation)
        assert repository.data["users"] == {b"row1": {("cf", "name"): b"Alice"}}

    def test_delete_mutation_rejected(self, rows, repository):
        """Test that write refuses delete mutations."""
        with pytest.raises(ValidationError):
            rows.write_row("users", build_delete("row1"))
        assert repository.calls == []

    def test_trailing_newline_never_reaches_store(self, rows, repository):
        """Test that a qualifier ending in a newline is rejected locally."""
        with pytest.raises(ValidationError):
            rows.write_row("users", RowMutation(b"row1", "cf", "name\n", b"x"))
        assert repository.calls == []

    def test_remote_failure_wrapped(self, rows):
        """Test that store errors name the operation."""
        with pytest.raises(RemoteError, match="unknown family"):
            rows.write_row("users", build_write("row1", "nope:x", "1"))


class TestDeleteRow:
    """Test delete_row scope narrowing."""

    @pytest.fixture
    def populated(self, rows):
        rows.write_row("users", build_write("row1", "cf:name", "Alice"))
        rows.write_row("users", build_write("row1", "cf:age", "30"))
        rows.write_row("users", build_write("row1", "meta:seen", "1"))
        return rows

    def test_delete_whole_row(self, populated, repository):
        """Test deleting a whole row."""
        populated.delete_row("users", b"row1")
        assert b"row1" not in repository.data["users"]

    def test_delete_family_keeps_other_families(self, populated, repository):
        """Test that a family delete keeps other families."""
        populated.apply("users", build_delete("row1", "cf"))
        assert repository.data["users"][b"row1"] == {("meta", "seen"): b"1"}

    def test_delete_single_cell(self, populated, repository):
        """Test deleting a single cell."""
        populated.delete_row("users", b"row1", "cf", "age")
        assert set(repository.data["users"][b"row1"]) == {("cf", "name"), ("meta", "seen")}

    def test_empty_row_key_never_reaches_store(self, rows, repository):
        """Test that an empty key is rejected locally."""
        with pytest.raises(ValidationError):
            rows.delete_row("users", b"")
        assert repository.calls == []

    def test_family_with_newline_never_reaches_store(self, rows, repository):
        """Test that a family ending in a newline is rejected locally."""
        with pytest.raises(ValidationError):
            rows.delete_row("users", b"row1", "cf\n")
        assert repository.calls == []

    def test_qualifier_without_family(self, rows):
        """Test that a qualifier needs a family."""
        with pytest.raises(ValidationError):
            rows.delete_row("users", b"row1", None, "name")
