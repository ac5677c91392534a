"""
gemini.py - Gemini CLI command builder.

Unlike Claude, Gemini receives the prompt as an argument (``--prompt``)
and streams JSONL when ``--output-format stream-json`` is set.

Configuration via environment:
    SPECFLOW_GEMINI_CLI: Path to gemini CLI (default: "gemini")
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from specflow.config.runtime_config import get_cli_path
from specflow.runtime.types import Command

from .base import AgentBackend
from .models import Agent


class GeminiCliBackend(AgentBackend):
    """Command builder for the Gemini CLI."""

    def __init__(self, executable: Optional[str] = None):
        self.executable = executable or get_cli_path("gemini")

    @property
    def backend_id(self) -> str:
        return "gemini"

    def build_command(
        self,
        agent: Agent,
        prompt: str,
        options: Dict[str, Any],
        step_id: str,
    ) -> Command:
        resolved = agent.resolved_config(options)

        args: List[str] = []
        if resolved.get("model"):
            args.extend(["--model", str(resolved["model"])])
        if resolved.get("auto"):
            args.append("--yolo")
        if resolved.get("agentic"):
            args.extend(["--output-format", "stream-json"])

        # Gemini has no separate system prompt flag.
        system_prompt = resolved.get("system_prompt")
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        args.extend(["--prompt", full_prompt])

        metadata: Dict[str, Any] = {
            "agent": agent.name,
            "agent_type": agent.agent_type.name,
            "implementation": self.backend_id,
        }
        if resolved.get("cwd"):
            metadata["cwd"] = resolved["cwd"]

        return Command.agent_command(step_id, self.executable, args, **metadata)
