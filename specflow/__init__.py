"""specflow - session orchestration engine for agent-driven design workflows."""

__version__ = "0.4.0"
