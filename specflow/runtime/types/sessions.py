"""Session types for workflow execution and interaction tracking.

A Session is the persisted record of one workflow execution. Its
interactions are kept in insertion order; the last one decides which
step runs next.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ._ids import InteractionId, SessionId, generate_interaction_id
from ._time import _datetime_to_iso, _iso_to_datetime, utc_now
from .commands import (
    Command,
    Result,
    command_from_dict,
    command_to_dict,
    result_from_dict,
    result_to_dict,
)


class SessionStatus(str, Enum):
    """Lifecycle status of a session."""

    ACTIVE = "active"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.ACTIVE


class ExecutionMode(str, Enum):
    """How commands of a session are executed.

    manual: a human runs each command.
    auto: a human supervises, the agent runs with unattended permissions.
    agentic: a driver runs the session end to end without supervision.
    """

    MANUAL = "manual"
    AUTO = "auto"
    AGENTIC = "agentic"


@dataclass
class Interaction:
    """One step execution attempt: the issued command and its result."""

    command: Command
    id: InteractionId = field(default_factory=generate_interaction_id)
    result: Optional[Result] = None
    completed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.result is None

    @property
    def is_completed(self) -> bool:
        return self.result is not None

    @property
    def step_id(self) -> str:
        return self.command.step_id


@dataclass
class Session:
    """Persisted record of one workflow execution.

    Attributes:
        id: Unique session identifier.
        type: Workflow type key. Immutable after creation.
        status: Lifecycle status.
        execution_mode: manual, auto or agentic.
        agent: Agent backend selector (e.g. "claude_code").
        environment: Environment selector ("local", "vscode", "cli").
        state: Workflow-defined key/value state.
        project_id: Project being acted upon.
        component_id: Component being acted upon.
        parent_session_id: Set on sessions spawned by a fan-out step.
        external_conversation_id: Resumable conversation handle exposed
            by the agent backend.
        account_id: Owning account.
        user_id: Owning user.
        error_message: Why the session ended in error.
        interactions: Ordered interaction history (oldest first).
    """

    id: SessionId
    type: str
    status: SessionStatus = SessionStatus.ACTIVE
    execution_mode: ExecutionMode = ExecutionMode.MANUAL
    agent: Optional[str] = None
    environment: Optional[str] = None
    state: Dict[str, Any] = field(default_factory=dict)
    project_id: Optional[str] = None
    component_id: Optional[str] = None
    parent_session_id: Optional[SessionId] = None
    external_conversation_id: Optional[str] = None
    account_id: Optional[str] = None
    user_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    interactions: List[Interaction] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def last_interaction(self) -> Optional[Interaction]:
        return self.interactions[-1] if self.interactions else None

    @property
    def last_completed_interaction(self) -> Optional[Interaction]:
        for interaction in reversed(self.interactions):
            if interaction.is_completed:
                return interaction
        return None

    @property
    def pending_interaction(self) -> Optional[Interaction]:
        last = self.last_interaction
        if last is not None and last.is_pending:
            return last
        return None

    @property
    def display_name(self) -> str:
        """Human-readable workflow name, e.g. "Context Components Design"."""
        return " ".join(part.capitalize() for part in self.type.split("_"))

    def get_interaction(self, interaction_id: InteractionId) -> Optional[Interaction]:
        for interaction in self.interactions:
            if interaction.id == interaction_id:
                return interaction
        return None


# =============================================================================
# Serialization Functions
# =============================================================================


def interaction_to_dict(interaction: Interaction) -> Dict[str, Any]:
    """Convert Interaction to a dictionary for serialization."""
    return {
        "id": interaction.id,
        "command": command_to_dict(interaction.command),
        "result": result_to_dict(interaction.result) if interaction.result else None,
        "completed_at": _datetime_to_iso(interaction.completed_at),
    }


def interaction_from_dict(data: Dict[str, Any]) -> Interaction:
    """Parse Interaction from a dictionary."""
    result_data = data.get("result")
    return Interaction(
        id=data["id"],
        command=command_from_dict(data["command"]),
        result=result_from_dict(result_data) if result_data else None,
        completed_at=_iso_to_datetime(data.get("completed_at")),
    )


def session_to_dict(session: Session) -> Dict[str, Any]:
    """Convert Session to a dictionary for serialization.

    Args:
        session: The Session to convert.

    Returns:
        Dictionary representation suitable for JSON serialization.
    """
    return {
        "id": session.id,
        "type": session.type,
        "status": session.status.value,
        "execution_mode": session.execution_mode.value,
        "agent": session.agent,
        "environment": session.environment,
        "state": dict(session.state),
        "project_id": session.project_id,
        "component_id": session.component_id,
        "parent_session_id": session.parent_session_id,
        "external_conversation_id": session.external_conversation_id,
        "account_id": session.account_id,
        "user_id": session.user_id,
        "error_message": session.error_message,
        "created_at": _datetime_to_iso(session.created_at),
        "updated_at": _datetime_to_iso(session.updated_at),
        "interactions": [interaction_to_dict(i) for i in session.interactions],
    }


def session_from_dict(data: Dict[str, Any]) -> Session:
    """Parse Session from a dictionary.

    Args:
        data: Dictionary with session fields.

    Returns:
        Parsed Session instance.
    """
    return Session(
        id=data["id"],
        type=data["type"],
        status=SessionStatus(data.get("status", "active")),
        execution_mode=ExecutionMode(data.get("execution_mode", "manual")),
        agent=data.get("agent"),
        environment=data.get("environment"),
        state=dict(data.get("state") or {}),
        project_id=data.get("project_id"),
        component_id=data.get("component_id"),
        parent_session_id=data.get("parent_session_id"),
        external_conversation_id=data.get("external_conversation_id"),
        account_id=data.get("account_id"),
        user_id=data.get("user_id"),
        error_message=data.get("error_message"),
        created_at=_iso_to_datetime(data.get("created_at")) or utc_now(),
        updated_at=_iso_to_datetime(data.get("updated_at")) or utc_now(),
        interactions=[interaction_from_dict(i) for i in data.get("interactions", [])],
    )
