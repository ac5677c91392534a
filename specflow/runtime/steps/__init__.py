"""
steps - Step contract and shared step helpers.
"""

from .base import Step, StepOutcome, StepServices
from .helpers import (
    branch_name,
    build_agent_command,
    component_files,
    format_similar_components,
    format_stories,
    last_error_message,
    module_to_path,
    sanitize_name,
)

__all__ = [
    "Step",
    "StepOutcome",
    "StepServices",
    "branch_name",
    "build_agent_command",
    "component_files",
    "format_similar_components",
    "format_stories",
    "last_error_message",
    "module_to_path",
    "sanitize_name",
]
