"""
agents - Agent command builder.

An agent never executes anything here. Steps ask the factory for an
agent, then for a Command that an external runner executes.

Usage:
    from specflow.runtime.agents import AgentFactory

    factory = AgentFactory()
    agent = factory.create_agent("component_designer", implementation="claude_code")
    command = factory.build_command(agent, prompt, {"auto": True}, "generate_component_design")
"""

from .base import AgentBackend
from .claude_code import AUTO_ALLOWED_TOOLS, AUTO_PERMISSION_MODE, ClaudeCodeBackend, format_flags
from .factory import AgentFactory, default_implementations, get_agent_type
from .gemini import GeminiCliBackend
from .models import Agent, AgentType

__all__ = [
    "Agent",
    "AgentType",
    "AgentBackend",
    "AgentFactory",
    "ClaudeCodeBackend",
    "GeminiCliBackend",
    "AUTO_ALLOWED_TOOLS",
    "AUTO_PERMISSION_MODE",
    "default_implementations",
    "format_flags",
    "get_agent_type",
]
