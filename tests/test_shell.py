"""Tests for the session loop."""

from btshell.history import open_history
from btshell.shell import EXIT_OK, Session


class TestSessionRun:
    """Test the read-eval loop."""

    def test_exit_verb(self, repository, history_path, sink, make_source):
        """Test that exit ends the loop and closes history."""
        source = make_source(["list", "exit", "list"])
        with open_history(history_path) as history:
            session = Session(repository, history)
            status = session.run(source, sink)

            assert status == EXIT_OK
            assert history.closed
            assert history.handle.closed
        # the trailing list is never read
        assert source.lines == ["list"]
        assert history_path.read_text() == "list\nexit\n"

    def test_end_of_input(self, repository, history_path, sink, make_source):
        """Test that end of input ends the loop."""
        with open_history(history_path) as history:
            session = Session(repository, history)
            status = session.run(make_source(["list"]), sink)

            assert status == EXIT_OK
            assert history.handle.closed
            assert history.append("late") is not None
        assert "usage\nusers" in sink.out

    def test_errors_do_not_end_session(self, repository, history_path, sink, make_source):
        """Test that command errors keep the session running."""
        source = make_source(["bogus", "describe nope", "list"])
        with open_history(history_path) as history:
            Session(repository, history).run(source, sink)

        assert len(sink.errors) == 2
        assert "unknown command 'bogus'" in sink.errors[0]
        assert "usage\nusers" in sink.out

    def test_keyboard_interrupt_continues(self, repository, history_path, sink, make_source):
        """Test that Ctrl-C at the prompt is ignored."""
        source = make_source([KeyboardInterrupt(), "list"])
        with open_history(history_path) as history:
            Session(repository, history).run(source, sink)
        assert "usage\nusers" in sink.out

    def test_banner(self, repository, history_path, sink, make_source):
        """Test the startup banner."""
        with open_history(history_path) as history:
            Session(repository, history).run(make_source([]), sink)
        assert sink.out[0].startswith("btshell version")
        assert "Ctrl-D" in sink.out[1]

    def test_prompt_tracks_current_table(self, repository, history_path, sink, make_source):
        """Test that the prompt shows the current table."""
        source = make_source(["describe users", "list"])
        with open_history(history_path) as history:
            session = Session(repository, history)
            session.run(source, sink)

        assert source.prompts[0] == "btshell> "
        assert source.prompts[1] == "btshell(users)> "
        assert session.current_table == "users"

    def test_completion_uses_session_cache(self, repository, history_path):
        """Test that completion sees tables listed in the session."""
        with open_history(history_path) as history:
            session = Session(repository, history)
            session.execute("list")
            assert [s.text for s in session.suggest("read us", 7)] == ["usage", "users"]
