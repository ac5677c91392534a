"""
factory.py - Agent construction.

AgentFactory resolves an agent type from the registry and binds it to a
backend. Backends are injected as a map so tests can swap them freely.

Implementation resolution order:
1. The type's fixed implementation (from agent_types.yaml)
2. The explicit ``implementation`` argument (usually the session's agent)
3. The factory default
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from specflow.config.agent_types import get_agent_type_definition, list_agent_types
from specflow.runtime.errors import AgentError
from specflow.runtime.types import Command

from .base import AgentBackend
from .claude_code import ClaudeCodeBackend
from .gemini import GeminiCliBackend
from .models import Agent, AgentType

logger = logging.getLogger(__name__)


def get_agent_type(name: str) -> AgentType:
    """Look up an agent type by name.

    Raises:
        AgentError: If the type is not registered.
    """
    definition = get_agent_type_definition(name)
    if definition is None:
        raise AgentError(
            f"Unknown agent type: {name}. Valid options: {', '.join(list_agent_types())}"
        )
    return AgentType(
        name=name,
        prompt=(definition.get("prompt") or "").strip(),
        config=dict(definition.get("config") or {}),
        implementation=definition.get("implementation"),
        additional_tools=tuple(definition.get("additional_tools") or ()),
    )


def default_implementations() -> Dict[str, AgentBackend]:
    """Backends available out of the box, keyed by backend id."""
    backends = [ClaudeCodeBackend(), GeminiCliBackend()]
    return {backend.backend_id: backend for backend in backends}


class AgentFactory:
    """Creates agents and builds their commands."""

    def __init__(
        self,
        implementations: Optional[Mapping[str, AgentBackend]] = None,
        default_implementation: str = "claude_code",
    ):
        self.implementations: Dict[str, AgentBackend] = dict(
            implementations if implementations is not None else default_implementations()
        )
        self.default_implementation = default_implementation

    def create_agent(
        self,
        type_name: str,
        name: Optional[str] = None,
        implementation: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> Agent:
        """Create an agent of the given type.

        Raises:
            AgentError: Unknown agent type or backend.
        """
        agent_type = get_agent_type(type_name)
        resolved = agent_type.implementation or implementation or self.default_implementation
        if resolved not in self.implementations:
            raise AgentError(
                f"Unknown agent implementation: {resolved}. "
                f"Valid options: {', '.join(sorted(self.implementations))}"
            )
        return Agent(
            agent_type=agent_type,
            name=name or type_name,
            implementation=resolved,
            config=dict(config or {}),
        )

    def build_command(
        self,
        agent: Agent,
        prompt: str,
        options: Dict[str, Any],
        step_id: str,
    ) -> Command:
        """Build a command through the agent's backend."""
        backend = self.implementations[agent.implementation]
        return backend.build_command(agent, prompt, options, step_id)
