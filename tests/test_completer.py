"""Tests for completion."""

import pytest
from prompt_toolkit.completion import CompleteEvent
from prompt_toolkit.document import Document

from btshell.completer import Completer, split_for_completion
from btshell.models import TableMetadata
from btshell.prompt import ShellCompleter


@pytest.fixture
def completer(tables):
    return Completer(tables)


def texts(suggestions):
    return [s.text for s in suggestions]


class TestSplit:
    """Test splitting the line at the cursor."""

    def test_partial_first_word(self):
        """Test splitting while typing the first word."""
        assert split_for_completion("de", 2) == ([], "de")

    def test_after_space(self):
        """Test that the current word is empty after a space."""
        assert split_for_completion("read ", 5) == (["read"], "")

    def test_cursor_in_middle(self):
        """Test that only text before the cursor counts."""
        assert split_for_completion("read users", 4) == ([], "read")

    def test_quoted_word_counts_once(self):
        """Test that a quoted row key is a single word."""
        line = 'write users "row 1" '
        assert split_for_completion(line, len(line)) == (["write", "users", "row 1"], "")

    def test_open_quote(self):
        """Test that nothing is split while a quote is open."""
        line = 'write users "row '
        assert split_for_completion(line, len(line)) is None


class TestVerbSuggestions:
    """Test first-word completion."""

    def test_unique_prefix(self, completer):
        """Test completing a verb with one match."""
        assert texts(completer.suggest("des", 3)) == ["describe"]

    def test_shared_prefix_alphabetical(self, completer):
        """Test that verbs sharing a prefix come back sorted."""
        assert texts(completer.suggest("de", 2)) == ["delete", "describe"]

    def test_empty_line_lists_all_verbs(self, completer):
        """Test that an empty line suggests every verb."""
        assert texts(completer.suggest("", 0)) == [
            "delete", "describe", "exit", "help", "list", "read", "write",
        ]

    def test_replace_length(self, completer):
        """Test that the typed prefix length is reported."""
        [suggestion] = completer.suggest("wri", 3)
        assert suggestion.replace_length == 3


class TestTableSuggestions:
    """Test table-name completion from the cache."""

    def test_cached_names_alphabetical(self, completer, cache):
        """Test that cached table names come back sorted."""
        cache.replace_all([TableMetadata("users"), TableMetadata("usage")])
        assert texts(completer.suggest("describe us", 11)) == ["usage", "users"]

    def test_prefix_narrows(self, completer, cache):
        """Test narrowing table names by prefix."""
        cache.replace_all([TableMetadata("users"), TableMetadata("usage")])
        assert texts(completer.suggest("read user", 9)) == ["users"]

    def test_no_cache_no_suggestions(self, completer, repository):
        """Test that an empty cache gives nothing and stays local."""
        assert completer.suggest("describe ", 9) == []
        assert repository.calls == []

    def test_verbs_without_table_argument(self, completer, cache):
        """Test that list takes no table suggestions."""
        cache.replace_all([TableMetadata("users")])
        assert completer.suggest("list ", 5) == []

    def test_never_calls_repository(self, completer, cache, repository):
        """Test that completion never reaches the repository."""
        cache.replace_all([TableMetadata("users")])
        for i in range(len("write users row1 cf:")):
            completer.suggest("write users row1 cf:", i)
        assert repository.calls == []


class TestFamilySuggestions:
    """Test column-family completion."""

    def test_write_suggests_family_stub(self, completer, cache):
        """Test that write offers family prefixes."""
        cache.put(TableMetadata("users", frozenset({"cf", "meta"})))
        assert texts(completer.suggest("write users row1 ", 17)) == ["cf:", "meta:"]

    def test_delete_suggests_family(self, completer, cache):
        """Test that delete offers bare family names."""
        cache.put(TableMetadata("users", frozenset({"cf", "meta"})))
        assert texts(completer.suggest("delete users row1 m", 19)) == ["meta"]

    def test_family_after_quoted_row_key(self, completer, cache):
        """Test family completion after a row key with spaces."""
        cache.put(TableMetadata("users", frozenset({"cf", "meta"})))
        line = 'write users "row 1" '
        assert texts(completer.suggest(line, len(line))) == ["cf:", "meta:"]

    def test_no_suggestions_inside_quotes(self, completer, cache):
        """Test that an unfinished quoted word gets no suggestions."""
        cache.put(TableMetadata("users", frozenset({"cf"})))
        line = 'write users "row 1 '
        assert completer.suggest(line, len(line)) == []

    def test_unknown_table(self, completer):
        """Test family completion for an uncached table."""
        assert completer.suggest("read nope row1 ", 15) == []

    def test_value_position(self, completer, cache):
        """Test that the value position gets no suggestions."""
        cache.put(TableMetadata("users", frozenset({"cf"})))
        assert completer.suggest("write users row1 cf:name ", 25) == []


class TestShellCompleter:
    """Test the prompt_toolkit adapter."""

    def test_yields_completions(self, completer, cache):
        """Test converting suggestions to prompt_toolkit completions."""
        cache.replace_all([TableMetadata("users"), TableMetadata("usage")])
        adapter = ShellCompleter(completer)
        document = Document("describe us", cursor_position=11)

        completions = list(adapter.get_completions(document, CompleteEvent()))
        assert [c.text for c in completions] == ["usage", "users"]
        assert all(c.start_position == -2 for c in completions)
