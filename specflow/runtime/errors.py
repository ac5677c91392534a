"""
errors.py - Exception hierarchy for the session engine.

Result status (ok/warning/error) is the value-level signal that drives
retry and revision routing. Exceptions are reserved for failures that
stop a call outright:

- Infrastructure: SessionNotFoundError, InteractionNotFoundError,
  InvalidInteractionError, UnknownWorkflowError
- Terminal guard: SessionTerminalError (carries the terminal status)
- Preconditions: StepError (a step cannot form its command)
- Collaborators: InvalidResultError, AgentError, DocumentParseError,
  EnvironmentUnsupportedError
"""

from __future__ import annotations

from typing import List, Optional

from .types import SessionStatus


class SpecflowError(Exception):
    """Base class for all specflow errors."""


class SessionNotFoundError(SpecflowError):
    """Raised when a session id does not resolve within the caller's scope."""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id


class InteractionNotFoundError(SpecflowError):
    """Raised when an interaction id does not belong to the session."""

    def __init__(self, session_id: str, interaction_id: str):
        super().__init__(f"Interaction '{interaction_id}' not found in session '{session_id}'")
        self.session_id = session_id
        self.interaction_id = interaction_id


class InvalidInteractionError(SpecflowError):
    """Raised when a step id is not part of the workflow."""

    def __init__(self, workflow_type: str, step_id: Optional[str]):
        super().__init__(f"Step '{step_id}' is not part of workflow '{workflow_type}'")
        self.workflow_type = workflow_type
        self.step_id = step_id


class UnknownWorkflowError(SpecflowError, ValueError):
    """Raised when a session type has no registered orchestrator."""

    def __init__(self, workflow_type: str, available: Optional[List[str]] = None):
        message = f"Unknown workflow type: {workflow_type}"
        if available:
            message += f". Valid options: {', '.join(sorted(available))}"
        super().__init__(message)
        self.workflow_type = workflow_type


class SessionTerminalError(SpecflowError):
    """Raised when a command is requested from a finished session.

    Callers polling ``next_command`` should stop when they see this.
    """

    def __init__(self, session_id: str, status: SessionStatus):
        super().__init__(f"Session '{session_id}' is {status.value}")
        self.session_id = session_id
        self.status = status


class StepError(SpecflowError):
    """A step could not form its command (missing component, no children...)."""

    def __init__(self, message: str, step_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step_id = step_id


class InvalidResultError(SpecflowError, ValueError):
    """Raised when a raw result payload fails schema validation."""

    def __init__(self, errors: List[str]):
        super().__init__("Invalid result payload: " + "; ".join(errors))
        self.errors = errors


class AgentError(SpecflowError):
    """Raised for unknown agent types or backends."""


class DocumentParseError(SpecflowError):
    """Raised by document parsers when content does not match the expected shape."""


class EnvironmentUnsupportedError(SpecflowError):
    """Raised when an environment cannot perform an operation server-side."""
