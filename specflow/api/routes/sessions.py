"""
Session endpoints.

Provides REST endpoints for:
- Creating, listing and reading sessions
- Requesting the next command of a session
- Submitting the result of an interaction
- Updating or cancelling a session
- Switching execution mode and recording the agent conversation id

Caller scope comes from the X-User-Id, X-Account-Id and X-Project-Id
headers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from specflow.runtime.engine import SessionEngine
from specflow.runtime.errors import (
    InteractionNotFoundError,
    InvalidInteractionError,
    InvalidResultError,
    SessionNotFoundError,
    SessionTerminalError,
    SpecflowError,
    StepError,
)
from specflow.runtime.types import Scope, Session, session_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# =============================================================================
# Pydantic Models
# =============================================================================


class CreateSessionRequest(BaseModel):
    """Request to create a session."""

    type: str = Field(..., description="Workflow type, e.g. context_design")
    project_id: Optional[str] = Field(None, description="Defaults to the caller's active project")
    component_id: Optional[str] = None
    agent: Optional[str] = Field(None, description="Agent backend, e.g. claude_code")
    environment: Optional[str] = Field(None, description="local, cli or vscode")
    execution_mode: Optional[str] = Field(None, description="manual, auto or agentic")
    state: Optional[Dict[str, Any]] = None


class UpdateSessionRequest(BaseModel):
    """Partial update of a session."""

    status: Optional[str] = None
    agent: Optional[str] = None
    environment: Optional[str] = None
    component_id: Optional[str] = None
    state: Optional[Dict[str, Any]] = None


class NextCommandRequest(BaseModel):
    """Options forwarded to the step (merged over execution-mode options)."""

    opts: Dict[str, Any] = Field(default_factory=dict)


class ExecutionModeRequest(BaseModel):
    mode: str = Field(..., description="manual, auto or agentic")


class ConversationIdRequest(BaseModel):
    external_conversation_id: Optional[str] = None


class SessionListResponse(BaseModel):
    sessions: List[Dict[str, Any]]


# =============================================================================
# Helpers
# =============================================================================


def get_engine(request: Request) -> SessionEngine:
    return request.app.state.engine


def get_scope(
    x_user_id: Optional[str] = Header(None),
    x_account_id: Optional[str] = Header(None),
    x_project_id: Optional[str] = Header(None),
) -> Scope:
    return Scope(user_id=x_user_id, account_id=x_account_id, active_project_id=x_project_id)


def _session_payload(session: Session) -> Dict[str, Any]:
    payload = session_to_dict(session)
    pending = session.pending_interaction
    payload["pending_interaction_id"] = pending.id if pending else None
    return payload


def _http_error(exc: Exception) -> HTTPException:
    """Map engine exceptions to HTTP errors."""
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(
            status_code=404,
            detail={"error": "session_not_found", "message": str(exc), "details": {"session_id": exc.session_id}},
        )
    if isinstance(exc, InteractionNotFoundError):
        return HTTPException(
            status_code=404,
            detail={
                "error": "interaction_not_found",
                "message": str(exc),
                "details": {"interaction_id": exc.interaction_id},
            },
        )
    if isinstance(exc, SessionTerminalError):
        return HTTPException(
            status_code=409,
            detail={"error": "session_terminal", "message": str(exc), "details": {"status": exc.status.value}},
        )
    if isinstance(exc, InvalidResultError):
        return HTTPException(
            status_code=422,
            detail={"error": "invalid_result", "message": str(exc), "details": {"errors": exc.errors}},
        )
    if isinstance(exc, StepError):
        return HTTPException(
            status_code=422,
            detail={"error": "step_error", "message": exc.message, "details": {"step_id": exc.step_id}},
        )
    if isinstance(exc, InvalidInteractionError):
        return HTTPException(
            status_code=422,
            detail={"error": "invalid_interaction", "message": str(exc), "details": {"step_id": exc.step_id}},
        )
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail={"error": "invalid_request", "message": str(exc)})
    logger.error("Unmapped engine error: %s", exc)
    return HTTPException(status_code=500, detail={"error": "internal_error", "message": str(exc)})


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", status_code=201)
def create_session(
    body: CreateSessionRequest,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    """Create a session."""
    attrs = body.model_dump(exclude_none=True)
    try:
        session = engine.create_session(scope, attrs)
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)
    return _session_payload(session)


@router.get("", response_model=SessionListResponse)
def list_sessions(
    status: Optional[str] = None,
    parent_session_id: Optional[str] = None,
    type: Optional[str] = None,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> SessionListResponse:
    """List sessions visible to the caller."""
    try:
        sessions = engine.list_sessions(scope, status=status, parent_session_id=parent_session_id, type=type)
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)
    return SessionListResponse(sessions=[_session_payload(s) for s in sessions])


@router.get("/{session_id}")
def get_session(
    session_id: str,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    """Get a session with its interactions.

    Raises:
        404: Session not found.
    """
    try:
        return _session_payload(engine.get_session(scope, session_id))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.patch("/{session_id}")
def update_session(
    session_id: str,
    body: UpdateSessionRequest,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    """Update mutable attributes (status, agent, environment, ...)."""
    attrs = body.model_dump(exclude_none=True)
    try:
        return _session_payload(engine.update_session(scope, session_id, attrs))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.post("/{session_id}/cancel")
def cancel_session(
    session_id: str,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    try:
        return _session_payload(engine.cancel_session(scope, session_id))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.post("/{session_id}/next-command")
def next_command(
    session_id: str,
    body: Optional[NextCommandRequest] = None,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    """Issue (or re-read) the session's next command.

    Raises:
        409: Session is complete, error or cancelled.
        422: The step could not form its command.
    """
    opts = body.opts if body is not None else {}
    try:
        return _session_payload(engine.next_command(scope, session_id, opts))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.post("/{session_id}/interactions/{interaction_id}/result")
def submit_result(
    session_id: str,
    interaction_id: str,
    body: Dict[str, Any],
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    """Submit the raw result of an interaction.

    Raises:
        404: Session or interaction not found.
        422: Payload does not match the result schema.
    """
    try:
        return _session_payload(engine.handle_result(scope, session_id, interaction_id, body))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.put("/{session_id}/execution-mode")
def update_execution_mode(
    session_id: str,
    body: ExecutionModeRequest,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    try:
        return _session_payload(engine.update_execution_mode(scope, session_id, body.mode))
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)


@router.put("/{session_id}/external-conversation-id")
def update_external_conversation_id(
    session_id: str,
    body: ConversationIdRequest,
    engine: SessionEngine = Depends(get_engine),
    scope: Scope = Depends(get_scope),
) -> Dict[str, Any]:
    try:
        session = engine.update_external_conversation_id(scope, session_id, body.external_conversation_id)
    except (SpecflowError, ValueError) as e:
        raise _http_error(e)
    return _session_payload(session)
