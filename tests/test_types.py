"""Tests for specflow.runtime.types value objects."""

from datetime import datetime, timezone

from specflow.runtime.types import (
    SPAWN_SESSIONS,
    Command,
    ExecutionMode,
    Interaction,
    Result,
    ResultStatus,
    Session,
    SessionStatus,
    session_from_dict,
    session_to_dict,
)


class TestCommand:
    """Tests for Command constructors."""

    def test_agent_command_quotes_args_into_command_line(self):
        """The literal command line is pasteable into a shell."""
        command = Command.agent_command("generate", "claude", ["--model", "opus 4"], pipe="hello")

        assert command.command == "claude --model 'opus 4'"
        assert command.executable == "claude"
        assert command.args == ("--model", "opus 4")
        assert command.pipe == "hello"
        assert command.is_structured
        assert not command.is_spawn

    def test_shell_command_keeps_metadata(self):
        command = Command.shell_command("validate", "cat docs/x.md", design_file="docs/x.md")

        assert command.command == "cat docs/x.md"
        assert command.metadata == {"design_file": "docs/x.md"}
        assert not command.is_structured

    def test_spawn_sentinel(self):
        command = Command.spawn("spawn", ["s1", "s2"])

        assert command.command == SPAWN_SESSIONS
        assert command.is_spawn
        assert command.metadata["child_session_ids"] == ["s1", "s2"]


class TestResult:
    """Tests for Result copies."""

    def test_with_error_merges_data_and_keeps_original(self):
        original = Result.ok({"a": 1}, stdout="out")

        rewritten = original.with_error("bad", awaiting_children=True)

        assert rewritten.status == ResultStatus.ERROR
        assert rewritten.error_message == "bad"
        assert rewritten.data == {"a": 1, "awaiting_children": True}
        assert rewritten.stdout == "out"
        assert rewritten.timestamp == original.timestamp
        assert original.is_ok

    def test_with_status_clears_message(self):
        result = Result.error("boom").with_status(ResultStatus.OK)

        assert result.is_ok
        assert result.error_message is None


class TestSession:
    """Tests for Session helpers and serialization."""

    def test_terminal_statuses(self):
        assert not SessionStatus.ACTIVE.is_terminal
        for status in (SessionStatus.COMPLETE, SessionStatus.ERROR, SessionStatus.CANCELLED):
            assert status.is_terminal

    def test_pending_and_last_completed_interaction(self):
        done = Interaction(command=Command.shell_command("a", "true"), result=Result.ok())
        pending = Interaction(command=Command.shell_command("b", "true"))
        session = Session(id="s1", type="context_design", interactions=[done, pending])

        assert session.pending_interaction is pending
        assert session.last_completed_interaction is done
        assert session.get_interaction(done.id) is done
        assert session.get_interaction("missing") is None

    def test_display_name(self):
        session = Session(id="s1", type="context_components_design")

        assert session.display_name == "Context Components Design"

    def test_dict_round_trip_preserves_interactions(self):
        stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        interaction = Interaction(
            command=Command.agent_command("generate", "claude", ["-p"], pipe="prompt"),
            result=Result.error("failed", code=2, timestamp=stamp),
            completed_at=stamp,
        )
        session = Session(
            id="s1",
            type="context_design",
            execution_mode=ExecutionMode.AUTO,
            state={"retry_counts": {"generate": 1}},
            interactions=[interaction],
        )

        restored = session_from_dict(session_to_dict(session))

        assert restored.execution_mode == ExecutionMode.AUTO
        assert restored.state == {"retry_counts": {"generate": 1}}
        restored_interaction = restored.interactions[0]
        assert restored_interaction.id == interaction.id
        assert restored_interaction.command.args == ("-p",)
        assert restored_interaction.command.pipe == "prompt"
        assert restored_interaction.result.error_message == "failed"
        assert restored_interaction.result.code == 2
        assert restored_interaction.result.timestamp == stamp
