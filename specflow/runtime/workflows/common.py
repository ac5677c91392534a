"""
common.py - Step families shared by several workflows.

    InitializeStep         switch the docs checkout to the session branch
    GenerateDesignStep     agent writes a design document
    ValidateDesignStep     read the document back and parse it
    ReviseDesignStep       agent fixes the document from parser feedback
    SpawnSessionsStep      fan out child sessions and poll them
    FinalizeStep           commit, push and open a pull request

Workflow modules subclass these and fill in the class attributes.
"""

from __future__ import annotations

import logging
import re
import shlex
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from specflow.runtime.documents import ParsedDocument, document_template
from specflow.runtime.errors import DocumentParseError, EnvironmentUnsupportedError, StepError
from specflow.runtime.steps import (
    Step,
    StepOutcome,
    branch_name,
    build_agent_command,
    component_files,
    format_similar_components,
    format_stories,
    last_error_message,
)
from specflow.runtime.types import (
    Command,
    Component,
    ExecutionMode,
    Project,
    Result,
    ResultStatus,
    Scope,
    Session,
    SessionStatus,
    _datetime_to_iso,
    generate_session_id,
)

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://\S+")


def shell_quote(text: str) -> str:
    """Wrap text in single quotes, escaping embedded single quotes as '\\''."""
    return "'" + text.replace("'", "'\\''") + "'"


def extract_url(stdout: Optional[str]) -> Optional[str]:
    """First http(s) URL in the output, if any."""
    if not stdout:
        return None
    match = _URL_RE.search(stdout)
    return match.group(0) if match else None


def docs_relative(path: str, docs_dir: str) -> str:
    """Path relative to the docs checkout (for git -C <docs>)."""
    prefix = docs_dir.rstrip("/") + "/"
    return path[len(prefix):] if path.startswith(prefix) else path


# =============================================================================
# Initialize
# =============================================================================


class InitializeStep(Step):
    """Prepare the environment on a deterministic per-session branch."""

    step_id = "initialize"

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        component = self.require_component(scope, session)
        branch = branch_name(session.type, component.name)
        environment = self.services.environment_for(session)
        return Command.shell_command(self.step_id, environment.setup_command(branch), branch_name=branch)

    def handle_result(self, scope: Scope, session: Session, result: Result, opts: Dict[str, Any]) -> StepOutcome:
        component = self.services.catalog.get_component(scope, session.component_id)
        state = {"branch_name": branch_name(session.type, component.name)} if component else {}
        return StepOutcome(state=state, result=result)


# =============================================================================
# Design documents
# =============================================================================


class DesignStepMixin:
    """Lookups shared by the generate/validate/revise design steps."""

    document_kind: str = ""
    agent_type: str = ""

    def design_path(self, component: Component) -> str:
        templates = self.services.settings.path_templates  # type: ignore[attr-defined]
        return component_files(component, templates)["design_file"]


class GenerateDesignStep(DesignStepMixin, Step):
    """Ask an agent to write a design document for the session component."""

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        component = self.require_component(scope, session)
        project = self.require_project(scope, session)
        prompt = self.build_prompt(scope, session, project, component)
        return build_agent_command(self.services, session, self.agent_type, prompt, opts, self.step_id)

    def build_prompt(self, scope: Scope, session: Session, project: Project, component: Component) -> str:
        catalog = self.services.catalog
        templates = self.services.settings.path_templates
        stories = catalog.list_stories(scope, component.id)
        similar = catalog.list_similar_components(scope, component)

        sections = [
            f"Project: {project.name}",
            project.description,
            f"Write the design for {component.name} ({component.module_name}, type {component.type}).",
            component.description,
            "## User Stories",
            format_stories(stories),
            "## Similar Components",
            format_similar_components(similar, templates),
        ]
        sections.extend(self.extra_context(scope, session))
        sections.extend([
            "## Document Template",
            document_template(self.document_kind),
            f"Write the document to {self.design_path(component)}",
        ])
        return "\n\n".join(part for part in sections if part)

    def extra_context(self, scope: Scope, session: Session) -> List[str]:
        return []


class ValidateDesignStep(DesignStepMixin, Step):
    """Read the design back and check that it parses."""

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        component = self.require_component(scope, session)
        path = self.design_path(component)
        return Command.shell_command(self.step_id, f"cat {shlex.quote(path)}", design_file=path)

    def handle_result(self, scope: Scope, session: Session, result: Result, opts: Dict[str, Any]) -> StepOutcome:
        if result.is_error:
            return StepOutcome(state={}, result=result)

        content = result.stdout or ""
        try:
            document = self.services.parser.parse(content, self.document_kind)
        except DocumentParseError as e:
            logger.info("Design for session %s failed validation: %s", session.id, e)
            return StepOutcome(state={"component_design": content}, result=result.with_error(str(e)))

        self.on_valid(scope, session, document)
        return StepOutcome(state={}, result=result)

    def on_valid(self, scope: Scope, session: Session, document: ParsedDocument) -> None:
        """Hook for side effects of a valid document."""


class ReviseDesignStep(DesignStepMixin, Step):
    """Continue the agent conversation with the validation errors."""

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        errors = last_error_message(session)
        if errors is None:
            raise StepError("Validation errors not found in previous interaction", step_id=self.step_id)
        component = self.require_component(scope, session)
        path = self.design_path(component)
        prompt = (
            f"The design document at {path} failed validation:\n\n{errors}\n\n"
            f"Fix the document in place so it follows the template. "
            f"Keep the content that was already correct."
        )
        options = dict(opts)
        options["continue"] = True
        return build_agent_command(self.services, session, self.agent_type, prompt, options, self.step_id)


# =============================================================================
# Fan-out
# =============================================================================


class SpawnSessionsStep(Step):
    """Create child sessions, then poll them until they all complete.

    get_command() is get-or-create: children that already exist for a
    component are reused, so re-issuing the command never duplicates them.
    handle_result() ignores the runner's status and reports on the children.
    """

    child_type: str = ""

    @abstractmethod
    def targets(self, scope: Scope, session: Session) -> List[Component]:
        """Components that each need one child session."""
        ...

    def child_state(self, scope: Scope, session: Session, component: Component) -> Dict[str, Any]:
        return {}

    def expected_files(self, scope: Scope, session: Session, child: Session) -> List[str]:
        """Files a completed child must have produced."""
        return []

    def children(self, session: Session) -> List[Session]:
        return self.services.store.list_sessions(parent_session_id=session.id, type=self.child_type)

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        targets = self.targets(scope, session)
        existing = {child.component_id: child for child in self.children(session)}

        children: List[Session] = []
        failed: List[str] = []
        for component in targets:
            child = existing.get(component.id)
            if child is None:
                try:
                    child = self._create_child(scope, session, component)
                except (ValueError, OSError) as e:
                    logger.error("Failed to create child session for component %s: %s", component.name, e)
                    failed.append(component.name)
                    continue
            children.append(child)

        if not children:
            raise StepError("Failed to spawn any child sessions", step_id=self.step_id)
        if failed:
            logger.warning("Partial session creation failure. Failed components: %s", ", ".join(failed))

        return Command.spawn(self.step_id, [child.id for child in children])

    def _create_child(self, scope: Scope, parent: Session, component: Component) -> Session:
        child = Session(
            id=generate_session_id(),
            type=self.child_type,
            status=SessionStatus.ACTIVE,
            execution_mode=ExecutionMode.AGENTIC,
            agent=parent.agent,
            environment=parent.environment,
            project_id=parent.project_id or scope.active_project_id,
            component_id=component.id,
            parent_session_id=parent.id,
            account_id=parent.account_id or scope.account_id,
            user_id=parent.user_id or scope.user_id,
            state=self.child_state(scope, parent, component),
        )
        created = self.services.store.create_session(child)
        logger.info("Spawned %s session %s for %s", self.child_type, created.id, component.name)
        return created

    def _child_name(self, scope: Scope, child: Session) -> str:
        component = self.services.catalog.get_component(scope, child.component_id)
        return component.name if component else child.id

    def handle_result(self, scope: Scope, session: Session, result: Result, opts: Dict[str, Any]) -> StepOutcome:
        children = self.children(session)
        if not children:
            return StepOutcome(state={}, result=result.with_error("No child sessions found"))

        by_status: Dict[SessionStatus, List[Session]] = {status: [] for status in SessionStatus}
        for child in children:
            by_status[child.status].append(child)

        state = {"child_session_ids": [child.id for child in children]}

        active = by_status[SessionStatus.ACTIVE]
        if active:
            names = ", ".join(self._child_name(scope, c) for c in active)
            return StepOutcome(
                state=state,
                result=result.with_error(f"Child sessions still running: {names}", awaiting_children=True),
            )

        failed = by_status[SessionStatus.ERROR]
        if failed:
            details = ", ".join(
                f"{self._child_name(scope, c)} (reason: {c.error_message or 'unknown'})" for c in failed
            )
            return StepOutcome(state=state, result=result.with_error(f"Child sessions failed: {details}"))

        cancelled = by_status[SessionStatus.CANCELLED]
        if cancelled:
            names = ", ".join(self._child_name(scope, c) for c in cancelled)
            return StepOutcome(state=state, result=result.with_error(f"Child sessions cancelled: {names}"))

        missing = self._missing_files(scope, session, children)
        if missing:
            return StepOutcome(state=state, result=result.with_error(f"Missing files: {'; '.join(missing)}"))

        return StepOutcome(state=state, result=result.with_status(ResultStatus.OK))

    def _missing_files(self, scope: Scope, session: Session, children: List[Session]) -> List[str]:
        environment = self.services.environment_for(session)
        missing: List[str] = []
        for child in children:
            paths = self.expected_files(scope, session, child)
            try:
                absent = [path for path in paths if not environment.file_exists(path)]
            except EnvironmentUnsupportedError:
                logger.info("Skipping file verification for %s: %s environment", child.id, environment.name)
                return []
            if absent:
                missing.append(f"{self._child_name(scope, child)} ({', '.join(absent)})")
        return missing


# =============================================================================
# Finalize
# =============================================================================


class FinalizeStep(Step):
    """Commit the session's documents, push the branch and open a PR."""

    step_id = "finalize"

    @abstractmethod
    def files(self, scope: Scope, session: Session, component: Component) -> List[str]:
        """Artifact paths the finalize commit should include."""
        ...

    @abstractmethod
    def title(self, component: Component) -> str:
        ...

    def body(self, component: Component) -> str:
        return f"## Summary\n\nDesign documentation for the {component.name} context."

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        component = self.require_component(scope, session, "Context component not found in session")
        settings = self.services.settings
        docs = shlex.quote(settings.docs_dir)
        branch = branch_name(session.type, component.name)
        paths = [shlex.quote(docs_relative(p, settings.docs_dir)) for p in self.files(scope, session, component)]
        title = self.title(component)

        parts = [
            f"git -C {docs} add {' '.join(paths)}",
            f"git -C {docs} commit -m {shell_quote(title)}",
            f"git -C {docs} push -u origin {shlex.quote(branch)}",
            f"gh pr create --title {shell_quote(title)} --body {shell_quote(self.body(component))}",
        ]
        teardown = self.services.environment_for(session).teardown_command()
        if teardown:
            parts.append(teardown)

        return Command.shell_command(self.step_id, " && ".join(parts), branch_name=branch)

    def handle_result(self, scope: Scope, session: Session, result: Result, opts: Dict[str, Any]) -> StepOutcome:
        if result.is_error:
            return StepOutcome(state={}, result=result)
        state = {
            "pr_url": extract_url(result.stdout),
            "finalized_at": _datetime_to_iso(result.timestamp),
        }
        return StepOutcome(state=state, result=result, status=SessionStatus.COMPLETE)
