"""
claude_code.py - Claude Code CLI command builder.

Builds a structured Command for the ``claude`` CLI. The prompt is piped
on stdin; everything else becomes flags in a fixed order so identical
input always yields identical argument lists:

    -p                       (agentic: non-interactive print mode)
    --model <m>
    --max-turns <n>
    --append-system-prompt <s>
    --verbose
    --allowedTools a,b,c
    --permission-mode <mode>
    --resume <id> | --continue

Configuration via environment:
    SPECFLOW_CLAUDE_CODE_CLI: Path to claude CLI (default: "claude")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from specflow.config.runtime_config import get_cli_path
from specflow.runtime.types import Command

from .base import AgentBackend
from .models import Agent

logger = logging.getLogger(__name__)

# Permissions used for unattended (auto) runs.
AUTO_PERMISSION_MODE = "acceptEdits"
AUTO_ALLOWED_TOOLS = ["Read", "Write", "Edit", "Bash", "Grep", "Glob"]


def format_flags(options: Dict[str, Any]) -> List[str]:
    """Translate resolved options into Claude CLI flags.

    Unknown keys are ignored. Falsy values emit nothing.

    Args:
        options: Resolved options (see module docstring for order).

    Returns:
        Flag list, e.g. ["--model", "x", "--max-turns", "3"].
    """
    flags: List[str] = []

    if options.get("agentic"):
        flags.append("-p")
    if options.get("model"):
        flags.extend(["--model", str(options["model"])])
    if options.get("max_turns"):
        flags.extend(["--max-turns", str(options["max_turns"])])
    if options.get("system_prompt"):
        flags.extend(["--append-system-prompt", str(options["system_prompt"])])
    if options.get("verbose"):
        flags.append("--verbose")

    tools = options.get("allowed_tools")
    if tools:
        flags.extend(["--allowedTools", ",".join(tools)])

    if options.get("permission_mode"):
        flags.extend(["--permission-mode", str(options["permission_mode"])])

    if options.get("resume"):
        flags.extend(["--resume", str(options["resume"])])
    elif options.get("continue"):
        flags.append("--continue")

    return flags


def _merge_tools(base: Optional[List[str]], extra: List[str]) -> List[str]:
    tools = list(base or [])
    for tool in extra:
        if tool not in tools:
            tools.append(tool)
    return tools


class ClaudeCodeBackend(AgentBackend):
    """Command builder for the Claude Code CLI."""

    def __init__(self, executable: Optional[str] = None):
        self.executable = executable or get_cli_path("claude_code")

    @property
    def backend_id(self) -> str:
        return "claude_code"

    def resolve_options(self, agent: Agent, options: Dict[str, Any]) -> Dict[str, Any]:
        """Layer agent config and call options, then apply auto defaults."""
        resolved = agent.resolved_config(options)

        if resolved.get("auto"):
            resolved.setdefault("permission_mode", AUTO_PERMISSION_MODE)
            if not resolved.get("allowed_tools"):
                resolved["allowed_tools"] = list(AUTO_ALLOWED_TOOLS)

        extra = list(agent.agent_type.additional_tools)
        if extra and (resolved.get("allowed_tools") or resolved.get("auto")):
            resolved["allowed_tools"] = _merge_tools(resolved.get("allowed_tools"), extra)

        return resolved

    def build_command(
        self,
        agent: Agent,
        prompt: str,
        options: Dict[str, Any],
        step_id: str,
    ) -> Command:
        resolved = self.resolve_options(agent, options)
        args = format_flags(resolved)

        metadata: Dict[str, Any] = {
            "agent": agent.name,
            "agent_type": agent.agent_type.name,
            "implementation": self.backend_id,
        }
        if resolved.get("cwd"):
            metadata["cwd"] = resolved["cwd"]

        logger.debug("Built claude command for %s (%d flags)", step_id, len(args))
        return Command.agent_command(step_id, self.executable, args, pipe=prompt, **metadata)
