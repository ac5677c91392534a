"""Tests for specflow.runtime.agents.

Covers flag formatting, option layering, the auto permission defaults,
conversation resumption and the factory's resolution rules.
"""

import pytest

from specflow.config import agent_types as agent_types_module
from specflow.config.agent_types import get_agent_type_definition, list_agent_types, reset_agent_types
from specflow.runtime.agents import (
    AUTO_ALLOWED_TOOLS,
    AUTO_PERMISSION_MODE,
    Agent,
    AgentFactory,
    AgentType,
    ClaudeCodeBackend,
    GeminiCliBackend,
    format_flags,
    get_agent_type,
)
from specflow.runtime.errors import AgentError


def _agent(implementation="claude_code", prompt="", config=None, additional_tools=()):
    agent_type = AgentType(
        name="component_designer",
        prompt=prompt,
        config=dict(config or {}),
        additional_tools=tuple(additional_tools),
    )
    return Agent(agent_type=agent_type, name="designer-1", implementation=implementation)


class TestFormatFlags:
    """Tests for format_flags ordering."""

    def test_model_and_max_turns(self):
        assert format_flags({"model": "x", "max_turns": 3}) == ["--model", "x", "--max-turns", "3"]

    def test_full_order(self):
        flags = format_flags({
            "resume": "conv-1",
            "permission_mode": "acceptEdits",
            "allowed_tools": ["Read", "Write"],
            "verbose": True,
            "system_prompt": "Be brief",
            "max_turns": 5,
            "model": "opus",
            "agentic": True,
        })

        assert flags == [
            "-p",
            "--model", "opus",
            "--max-turns", "5",
            "--append-system-prompt", "Be brief",
            "--verbose",
            "--allowedTools", "Read,Write",
            "--permission-mode", "acceptEdits",
            "--resume", "conv-1",
        ]

    def test_resume_wins_over_continue(self):
        assert format_flags({"continue": True, "resume": "abc"}) == ["--resume", "abc"]

    def test_continue_without_resume(self):
        assert format_flags({"continue": True}) == ["--continue"]

    def test_unknown_and_falsy_options_ignored(self):
        assert format_flags({"colour": "blue", "verbose": False, "model": None}) == []

    def test_deterministic(self):
        options = {"model": "x", "allowed_tools": ["A", "B"], "continue": True}
        assert format_flags(options) == format_flags(dict(reversed(list(options.items()))))


class TestClaudeCodeBackend:
    """Tests for ClaudeCodeBackend.build_command."""

    def test_prompt_is_piped(self):
        command = ClaudeCodeBackend("claude").build_command(_agent(), "Design it", {}, "generate")

        assert command.executable == "claude"
        assert command.pipe == "Design it"
        assert command.step_id == "generate"
        assert command.metadata == {
            "agent": "designer-1",
            "agent_type": "component_designer",
            "implementation": "claude_code",
        }

    def test_type_prompt_becomes_system_prompt(self):
        command = ClaudeCodeBackend("claude").build_command(_agent(prompt="You design."), "task", {}, "s")

        assert list(command.args) == ["--append-system-prompt", "You design."]

    def test_options_layer_over_type_config(self):
        agent = _agent(config={"model": "sonnet", "max_turns": 10})
        agent.config["max_turns"] = 20

        command = ClaudeCodeBackend("claude").build_command(agent, "task", {"model": "opus"}, "s")

        assert list(command.args) == ["--model", "opus", "--max-turns", "20"]

    def test_auto_sets_permission_defaults(self):
        command = ClaudeCodeBackend("claude").build_command(_agent(), "task", {"auto": True}, "s")

        args = list(command.args)
        assert args[args.index("--allowedTools") + 1] == ",".join(AUTO_ALLOWED_TOOLS)
        assert args[args.index("--permission-mode") + 1] == AUTO_PERMISSION_MODE

    def test_auto_keeps_explicit_permissions(self):
        options = {"auto": True, "allowed_tools": ["Read"], "permission_mode": "plan"}

        command = ClaudeCodeBackend("claude").build_command(_agent(), "task", options, "s")

        assert list(command.args) == ["--allowedTools", "Read", "--permission-mode", "plan"]

    def test_additional_tools_appended_once(self):
        agent = _agent(additional_tools=["Bash", "Read"])

        command = ClaudeCodeBackend("claude").build_command(agent, "task", {"allowed_tools": ["Read"]}, "s")

        assert list(command.args) == ["--allowedTools", "Read,Bash"]

    def test_additional_tools_alone_do_not_restrict(self):
        command = ClaudeCodeBackend("claude").build_command(_agent(additional_tools=["Bash"]), "task", {}, "s")

        assert "--allowedTools" not in command.args

    def test_cwd_recorded_in_metadata(self):
        command = ClaudeCodeBackend("claude").build_command(_agent(), "task", {"cwd": "/work"}, "s")

        assert command.metadata["cwd"] == "/work"

    def test_cli_path_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_CLAUDE_CODE_CLI", "/opt/bin/claude")

        assert ClaudeCodeBackend().executable == "/opt/bin/claude"


class TestGeminiCliBackend:
    def test_prompt_passed_as_argument(self):
        command = GeminiCliBackend("gemini").build_command(
            _agent("gemini", prompt="You design."), "task", {"model": "pro", "agentic": True, "auto": True}, "s"
        )

        assert list(command.args) == [
            "--model", "pro",
            "--yolo",
            "--output-format", "stream-json",
            "--prompt", "You design.\n\ntask",
        ]
        assert command.pipe is None
        assert command.metadata["implementation"] == "gemini"


class TestAgentFactory:
    """Tests for agent creation and backend resolution."""

    @pytest.fixture
    def factory(self):
        return AgentFactory({"claude_code": ClaudeCodeBackend("claude"), "gemini": GeminiCliBackend("gemini")})

    def test_registry_types_are_known(self):
        agent_type = get_agent_type("context_designer")

        assert agent_type.prompt
        assert agent_type.config["model"] == "sonnet"

    def test_unknown_type_raises(self, factory):
        with pytest.raises(AgentError, match="Unknown agent type"):
            factory.create_agent("poet")

    def test_unknown_implementation_raises(self, factory):
        with pytest.raises(AgentError, match="Unknown agent implementation"):
            factory.create_agent("coder", implementation="cursor")

    def test_explicit_implementation_used(self, factory):
        agent = factory.create_agent("component_designer", name="d", implementation="gemini")

        assert agent.implementation == "gemini"
        assert factory.build_command(agent, "task", {}, "s").executable == "gemini"

    def test_default_implementation(self, factory):
        assert factory.create_agent("component_designer").implementation == "claude_code"

    def test_coder_gets_bash(self):
        assert get_agent_type("coder").additional_tools == ("Bash",)


class TestAgentTypeRegistry:
    def test_lists_all_types(self):
        assert list_agent_types() == [
            "coder",
            "component_designer",
            "component_reviewer",
            "context_designer",
            "context_reviewer",
            "test_writer",
        ]

    def test_unknown_definition_is_none(self):
        assert get_agent_type_definition("poet") is None

    def test_falls_back_when_yaml_missing(self, monkeypatch, tmp_path):
        monkeypatch.setattr(agent_types_module, "_get_config_path", lambda: tmp_path / "missing.yaml")
        reset_agent_types()

        assert "context_designer" in list_agent_types()
        assert get_agent_type_definition("coder")["additional_tools"] == ["Bash"]
