"""
base.py - Abstract base class for agent backends.

A backend turns (agent, prompt, options) into a Command. It never runs
anything: execution belongs to whoever picks the command up.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from specflow.runtime.types import Command

from .models import Agent


class AgentBackend(ABC):
    """Interface for agent command builders.

    Backends are responsible for:
    - Translating recognized options into CLI flags in a fixed order
    - Choosing how the prompt reaches the process (stdin or argument)
    - Recording agent metadata on the command

    Backends do NOT own:
    - Prompt content (that's the step's job)
    - Command execution (that's the runner's job)
    """

    @property
    @abstractmethod
    def backend_id(self) -> str:
        """Unique identifier for this backend (e.g., 'claude_code')."""
        ...

    @abstractmethod
    def build_command(
        self,
        agent: Agent,
        prompt: str,
        options: Dict[str, Any],
        step_id: str,
    ) -> Command:
        """Build a structured command invoking the agent.

        Args:
            agent: The bound agent.
            prompt: The task prompt.
            options: Call options (model, max_turns, continue, auto, ...).
            step_id: Identifier of the step issuing the command.

        Returns:
            Command with executable, args, pipe and metadata populated.
        """
        ...
