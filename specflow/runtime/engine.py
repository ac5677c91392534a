"""
engine.py - The session state machine.

SessionEngine turns a workflow definition (an Orchestrator) into a
sequence of Commands, one per call to next_command(), and folds the
Results submitted by external runners back into the session.

Routing (next_command):
1. Terminal session          -> SessionTerminalError, nothing created
2. Pending interaction       -> returned as-is (no duplicate)
3. Nothing completed yet     -> first step
4. Last result is an error   -> the step's revision step, else the same
                                step again; once a step has failed more
                                than max_retries times the session errors
5. Last step was a revision  -> the step it revises
6. Otherwise                 -> orchestrator.next_step(); the terminal
                                signal completes the session

Retry counters live in ``state["retry_counts"]`` keyed by step id. Error
results bump the producing step's counter unless they are flagged
``awaiting_children`` (a fan-out step polling its children). A success
resets only the producing step's own counter.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Union

from specflow.config.runtime_config import EngineSettings
from specflow.runtime.environments import ENVIRONMENTS
from specflow.runtime.errors import (
    InteractionNotFoundError,
    SessionNotFoundError,
    SessionTerminalError,
    StepError,
    UnknownWorkflowError,
)
from specflow.runtime.result_io import result_from_raw
from specflow.runtime.steps import StepOutcome
from specflow.runtime.storage import SessionStore
from specflow.runtime.types import (
    ExecutionMode,
    Interaction,
    Result,
    Scope,
    Session,
    SessionId,
    SessionStatus,
    generate_session_id,
    utc_now,
)
from specflow.runtime.workflows import SESSION_COMPLETE, Orchestrator

logger = logging.getLogger(__name__)

# Session attributes a caller may set at creation.
_CREATE_FIELDS = (
    "project_id",
    "component_id",
    "agent",
    "environment",
    "state",
    "parent_session_id",
    "external_conversation_id",
)

# Session attributes a caller may change afterwards.
_UPDATE_FIELDS = (
    "status",
    "agent",
    "environment",
    "state",
    "component_id",
    "external_conversation_id",
    "error_message",
)


def options_for_mode(mode: ExecutionMode) -> Dict[str, Any]:
    """Command options implied by an execution mode."""
    if mode == ExecutionMode.AUTO:
        return {"auto": True}
    if mode == ExecutionMode.AGENTIC:
        return {"agentic": True}
    return {}


class SessionEngine:
    """Drives sessions through their workflows.

    Args:
        store: Session persistence.
        workflows: Orchestrator per workflow type.
        settings: Retry bound and defaults.
    """

    def __init__(
        self,
        store: SessionStore,
        workflows: Mapping[str, Orchestrator],
        settings: Optional[EngineSettings] = None,
    ):
        self.store = store
        self.workflows = dict(workflows)
        self.settings = settings or EngineSettings.from_config()

    # -------------------------------------------------------------------------
    # Session records
    # -------------------------------------------------------------------------

    def orchestrator(self, workflow_type: str) -> Orchestrator:
        try:
            return self.workflows[workflow_type]
        except KeyError:
            raise UnknownWorkflowError(workflow_type, list(self.workflows)) from None

    def create_session(self, scope: Scope, attrs: Dict[str, Any]) -> Session:
        """Create an active session.

        Raises:
            UnknownWorkflowError: If ``attrs["type"]`` is not registered.
            ValueError: For unknown attributes or invalid values.
        """
        attrs = dict(attrs)
        workflow_type = attrs.pop("type", None)
        if not workflow_type:
            raise ValueError("Session type is required")
        self.orchestrator(workflow_type)

        mode = ExecutionMode(attrs.pop("execution_mode", None) or ExecutionMode.MANUAL)
        unknown = set(attrs) - set(_CREATE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown session attributes: {', '.join(sorted(unknown))}")

        environment = attrs.get("environment") or self.settings.default_environment
        if environment not in ENVIRONMENTS:
            raise ValueError(f"Unknown environment: {environment}")

        session = Session(
            id=generate_session_id(),
            type=workflow_type,
            status=SessionStatus.ACTIVE,
            execution_mode=mode,
            agent=attrs.get("agent") or self.settings.default_agent,
            environment=environment,
            state=dict(attrs.get("state") or {}),
            project_id=attrs.get("project_id") or scope.active_project_id,
            component_id=attrs.get("component_id"),
            parent_session_id=attrs.get("parent_session_id"),
            external_conversation_id=attrs.get("external_conversation_id"),
            account_id=scope.account_id,
            user_id=scope.user_id,
        )
        session = self.store.create_session(session)
        logger.info("Created %s session %s", workflow_type, session.id)
        return session

    def get_session(self, scope: Scope, session_id: SessionId) -> Session:
        """Load a session visible to ``scope``.

        Raises:
            SessionNotFoundError: If absent or owned by another account.
        """
        session = self.store.get_session(session_id)
        if scope.account_id and session.account_id and session.account_id != scope.account_id:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(
        self,
        scope: Scope,
        status: Optional[Union[SessionStatus, str]] = None,
        parent_session_id: Optional[SessionId] = None,
        type: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> List[Session]:
        return self.store.list_sessions(
            status=SessionStatus(status) if status is not None else None,
            parent_session_id=parent_session_id,
            project_id=project_id,
            type=type,
            account_id=scope.account_id,
        )

    def update_session(self, scope: Scope, session_id: SessionId, attrs: Dict[str, Any]) -> Session:
        """Update mutable session attributes.

        Raises:
            ValueError: Changing the workflow type, reactivating a
                terminal session, or unknown attributes.
        """
        attrs = dict(attrs)
        with self.store.lock(session_id):
            session = self.get_session(scope, session_id)

            new_type = attrs.pop("type", session.type)
            if new_type != session.type:
                raise ValueError("Session type cannot be changed")
            unknown = set(attrs) - set(_UPDATE_FIELDS)
            if unknown:
                raise ValueError(f"Unknown session attributes: {', '.join(sorted(unknown))}")

            if "status" in attrs:
                status = SessionStatus(attrs.pop("status"))
                if session.is_terminal and status != session.status:
                    raise ValueError(f"Session {session_id} is {session.status.value} and cannot be changed")
                session.status = status
            if "environment" in attrs and attrs["environment"] not in ENVIRONMENTS:
                raise ValueError(f"Unknown environment: {attrs['environment']}")
            for key, value in attrs.items():
                setattr(session, key, value)

            return self.store.update_session(session)

    def cancel_session(self, scope: Scope, session_id: SessionId) -> Session:
        """Cancel a session. Pending results may still be submitted."""
        session = self.update_session(scope, session_id, {"status": SessionStatus.CANCELLED})
        logger.info("Cancelled session %s", session_id)
        return session

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _options(self, session: Session, opts: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        options = options_for_mode(session.execution_mode)
        options.update(opts or {})
        return options

    def _route(self, session: Session, orchestrator: Orchestrator) -> Optional[str]:
        """Pick the next step id, SESSION_COMPLETE, or None when retries
        are exhausted."""
        last = session.last_completed_interaction
        if last is None:
            return orchestrator.next_step(None)

        step_id = last.step_id
        result = last.result
        if result is not None and result.is_error:
            retries = (session.state.get("retry_counts") or {}).get(step_id, 0)
            if retries > self.settings.max_retries:
                return None
            return orchestrator.revision_for(step_id) or step_id

        revised = orchestrator.revised_step(step_id)
        if revised is not None:
            return revised
        return orchestrator.next_step(step_id)

    def _fail(self, session: Session, message: str) -> Session:
        session.status = SessionStatus.ERROR
        session.error_message = message
        logger.warning("Session %s failed: %s", session.id, message)
        return self.store.update_session(session)

    def next_command(
        self,
        scope: Scope,
        session_id: SessionId,
        opts: Optional[Dict[str, Any]] = None,
    ) -> Session:
        """Issue the next command of a session.

        Returns:
            The session. Its pending interaction holds the new command,
            unless the session just completed or ran out of retries.

        Raises:
            SessionTerminalError: The session is complete, error or cancelled.
            StepError: The step could not form its command (session is
                marked error).
        """
        with self.store.lock(session_id):
            session = self.get_session(scope, session_id)
            if session.is_terminal:
                raise SessionTerminalError(session_id, session.status)
            if session.pending_interaction is not None:
                return session

            orchestrator = self.orchestrator(session.type)
            step_id = self._route(session, orchestrator)

            if step_id is None:
                last = session.last_completed_interaction
                return self._fail(
                    session,
                    f"Step {last.step_id} failed after {self.settings.max_retries} retries: "
                    f"{last.result.error_message}",
                )

            if step_id == SESSION_COMPLETE:
                session.status = SessionStatus.COMPLETE
                logger.info("Session %s complete", session_id)
                return self.store.update_session(session)

            step = orchestrator.step(step_id)
            try:
                command = step.get_command(scope, session, self._options(session, opts))
            except StepError as e:
                self._fail(session, e.message)
                raise
            except Exception as e:
                logger.exception("Step %s crashed forming its command for session %s", step_id, session_id)
                self._fail(session, f"Step {step_id} crashed: {e}")
                raise StepError(f"Step {step_id} crashed: {e}", step_id=step_id) from e

            logger.debug("Session %s -> %s", session_id, step_id)
            return self.store.add_interaction(session_id, Interaction(command=command))

    def handle_result(
        self,
        scope: Scope,
        session_id: SessionId,
        interaction_id: str,
        raw_result: Union[Result, Dict[str, Any]],
        opts: Optional[Dict[str, Any]] = None,
    ) -> Session:
        """Record the result of an interaction.

        Submitting again for a completed interaction re-applies the step's
        state patch without touching retry counters, so the stored session
        ends up the same.

        Raises:
            InteractionNotFoundError: Unknown interaction.
            InvalidResultError: Malformed raw payload.
        """
        result = raw_result if isinstance(raw_result, Result) else result_from_raw(raw_result)

        with self.store.lock(session_id):
            session = self.get_session(scope, session_id)
            interaction = session.get_interaction(interaction_id)
            if interaction is None:
                raise InteractionNotFoundError(session_id, interaction_id)

            orchestrator = self.orchestrator(session.type)
            step_id = interaction.step_id
            step = orchestrator.step(step_id)

            resubmission = interaction.is_completed
            if resubmission:
                result = replace(result, timestamp=interaction.result.timestamp)

            try:
                outcome = step.handle_result(scope, session, result, self._options(session, opts))
            except Exception as e:
                logger.exception("Step %s crashed handling a result for session %s", step_id, session_id)
                outcome = StepOutcome(state={}, result=result.with_error(f"Step {step_id} crashed: {e}"))

            session.state.update(outcome.state)
            final = outcome.result
            interaction.result = final
            interaction.completed_at = interaction.completed_at or utc_now()

            if final.is_error:
                session.state["last_error"] = final.error_message
            if not resubmission:
                counts = dict(session.state.get("retry_counts") or {})
                if final.is_error:
                    if not final.data.get("awaiting_children"):
                        counts[step_id] = counts.get(step_id, 0) + 1
                else:
                    counts.pop(step_id, None)
                session.state["retry_counts"] = counts

            if outcome.status is not None and not session.is_terminal:
                session.status = outcome.status
                logger.info("Session %s is now %s", session_id, outcome.status.value)

            return self.store.update_session(session)

    def update_execution_mode(
        self,
        scope: Scope,
        session_id: SessionId,
        mode: Union[ExecutionMode, str],
    ) -> Session:
        """Switch execution mode; a pending command is rebuilt for the new mode.

        The mode is saved before the rebuild. If the step cannot rebuild
        its command the previous command stays pending and StepError is
        raised; the session itself stays active.
        """
        mode = ExecutionMode(mode)
        with self.store.lock(session_id):
            session = self.get_session(scope, session_id)
            session.execution_mode = mode
            session = self.store.update_session(session)

            pending = session.pending_interaction
            if pending is None or session.is_terminal:
                return session

            step_id = pending.step_id
            step = self.orchestrator(session.type).step(step_id)
            try:
                pending.command = step.get_command(scope, session, self._options(session))
            except StepError:
                raise
            except Exception as e:
                logger.exception("Step %s crashed rebuilding its command for session %s", step_id, session_id)
                raise StepError(f"Step {step_id} crashed: {e}", step_id=step_id) from e

            logger.debug("Regenerated pending %s command for %s mode", step_id, mode.value)
            return self.store.update_session(session)

    def update_external_conversation_id(
        self,
        scope: Scope,
        session_id: SessionId,
        conversation_id: Optional[str],
    ) -> Session:
        with self.store.lock(session_id):
            session = self.get_session(scope, session_id)
            session.external_conversation_id = conversation_id
            return self.store.update_session(session)
