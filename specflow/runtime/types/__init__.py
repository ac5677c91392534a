"""
types - Core type definitions for the session engine.

This package provides the value types shared by the engine, the steps
and the collaborators:

Usage:
    from specflow.runtime.types import (
        SessionId, InteractionId,
        Command, Result, ResultStatus, SPAWN_SESSIONS,
        Session, SessionStatus, ExecutionMode, Interaction,
        Scope, Project, Component, Story, Dependency,
        generate_session_id, generate_interaction_id,
        session_to_dict, session_from_dict,
    )
"""

from ._ids import InteractionId, SessionId, generate_interaction_id, generate_session_id
from ._time import _datetime_to_iso, _iso_to_datetime, utc_now
from .commands import (
    SPAWN_SESSIONS,
    Command,
    Result,
    ResultStatus,
    command_from_dict,
    command_to_dict,
    result_from_dict,
    result_to_dict,
)
from .domain import (
    Component,
    Dependency,
    Project,
    Scope,
    Story,
    component_from_dict,
    project_from_dict,
    story_from_dict,
)
from .sessions import (
    ExecutionMode,
    Interaction,
    Session,
    SessionStatus,
    interaction_from_dict,
    interaction_to_dict,
    session_from_dict,
    session_to_dict,
)

__all__ = [
    # IDs and time
    "SessionId",
    "InteractionId",
    "generate_session_id",
    "generate_interaction_id",
    "utc_now",
    "_datetime_to_iso",
    "_iso_to_datetime",
    # Commands and results
    "SPAWN_SESSIONS",
    "Command",
    "Result",
    "ResultStatus",
    "command_to_dict",
    "command_from_dict",
    "result_to_dict",
    "result_from_dict",
    # Sessions
    "Session",
    "SessionStatus",
    "ExecutionMode",
    "Interaction",
    "session_to_dict",
    "session_from_dict",
    "interaction_to_dict",
    "interaction_from_dict",
    # Domain
    "Scope",
    "Project",
    "Component",
    "Story",
    "Dependency",
    "project_from_dict",
    "component_from_dict",
    "story_from_dict",
]
