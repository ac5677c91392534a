"""
models.py - Data models for the agent command builder.

AgentType is static configuration from the registry. Agent binds a type
to a concrete backend plus per-invocation overrides. Neither is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class AgentType:
    """A named agent role.

    Attributes:
        name: Registry key (e.g. "context_designer").
        prompt: System prompt template for the role.
        config: Default options (model, max_turns, ...).
        implementation: Backend this type is pinned to, if any.
        additional_tools: Tools appended to the allowed tool list.
    """

    name: str
    prompt: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    implementation: Optional[str] = None
    additional_tools: Tuple[str, ...] = ()


@dataclass
class Agent:
    """An AgentType bound to a backend implementation.

    Attributes:
        agent_type: The role definition.
        name: Instance name, used in command metadata and logs.
        implementation: Resolved backend key (e.g. "claude_code").
        config: Per-invocation overrides layered over the type's config.
    """

    agent_type: AgentType
    name: str
    implementation: str
    config: Dict[str, Any] = field(default_factory=dict)

    def resolved_config(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge type defaults, agent overrides and call options (last wins)."""
        merged: Dict[str, Any] = {}
        if self.agent_type.prompt:
            merged["system_prompt"] = self.agent_type.prompt
        merged.update(self.agent_type.config)
        merged.update(self.config)
        merged.update(options or {})
        return merged
