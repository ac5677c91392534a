"""Sample documents and session-stepping helpers shared by the tests."""

from typing import Any, Dict, Optional

from specflow.runtime.engine import SessionEngine
from specflow.runtime.types import Scope, Session

VALID_CONTEXT_DESIGN = """# Accounts

## Purpose
Manages user accounts and registration.

## Components
- MyApp.Accounts.User (schema): User account record
- MyApp.Accounts.UserRepository (repository): Persists users
- MyApp.Accounts.Registration: Sign up flow

## Dependencies
- MyApp.Mailer: sends confirmation emails
- Phoenix.PubSub: broadcasts account events
- MyApp.Accounts.UserRepository -> MyApp.Accounts.User
"""

INVALID_CONTEXT_DESIGN = """# Accounts

## Purpose
Manages user accounts.
"""

VALID_COMPONENT_DESIGN = """# User

## Purpose
User account record.

## Public API
- changeset/2: validates a user

## Dependencies
None
"""


def ok(stdout: str = "", **extra: Any) -> Dict[str, Any]:
    """Raw payload of a successful command."""
    payload: Dict[str, Any] = {"code": 0, "stdout": stdout, "stderr": ""}
    payload.update(extra)
    return payload


def step(engine: SessionEngine, scope: Scope, session_id: str, raw: Optional[Dict[str, Any]] = None) -> Session:
    """Issue the next command and submit ``raw`` (default: ok) for it."""
    session = engine.next_command(scope, session_id)
    interaction = session.pending_interaction
    assert interaction is not None, f"no pending interaction, session is {session.status.value}"
    return engine.handle_result(scope, session_id, interaction.id, raw if raw is not None else ok())


def pending_step_id(session: Session) -> Optional[str]:
    pending = session.pending_interaction
    return pending.step_id if pending else None
