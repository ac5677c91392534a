"""
base.py - The step contract.

A Step owns one unit of a workflow:
- get_command(): form the Command an external runner should execute
- handle_result(): interpret the runner's Result

Steps do NOT own:
- Sequencing (that's the orchestrator's job)
- Retries, revisions and persistence (that's the engine's job)

Precondition failures raise StepError. Anything else a step raises is
treated by the engine as a crash.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, Optional

from specflow.config.runtime_config import EngineSettings
from specflow.runtime.agents import AgentFactory
from specflow.runtime.catalog import ProjectCatalog
from specflow.runtime.documents import DocumentParser, SectionDocumentParser
from specflow.runtime.environments import Environment, get_environment
from specflow.runtime.errors import StepError
from specflow.runtime.storage import SessionStore
from specflow.runtime.types import (
    Command,
    Component,
    Project,
    Result,
    Scope,
    Session,
    SessionStatus,
)


@dataclass
class StepOutcome:
    """What a step's handle_result hands back to the engine.

    Attributes:
        state: Patch merged into Session.state.
        result: The (possibly rewritten) Result to persist.
        status: Session status the step wants applied, if any.
    """

    state: Dict[str, Any]
    result: Result
    status: Optional[SessionStatus] = None


@dataclass
class StepServices:
    """Collaborators injected into every step."""

    store: SessionStore
    catalog: ProjectCatalog
    agent_factory: AgentFactory = field(default_factory=AgentFactory)
    parser: DocumentParser = field(default_factory=SectionDocumentParser)
    settings: EngineSettings = field(default_factory=EngineSettings)
    root: Optional[Path] = None
    environment_factory: Callable[..., Environment] = get_environment

    def environment_for(self, session: Session) -> Environment:
        """Build the environment a session's commands run in."""
        name = session.environment or self.settings.default_environment
        return self.environment_factory(
            name,
            root=self.root,
            docs_dir=self.settings.docs_dir,
            base_branch=self.settings.base_branch,
        )


class Step(ABC):
    """Base class for workflow steps."""

    step_id: ClassVar[str] = ""

    def __init__(self, services: StepServices):
        self.services = services

    @abstractmethod
    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        """Form the command for this step.

        Raises:
            StepError: If a precondition is not met.
        """
        ...

    def handle_result(
        self,
        scope: Scope,
        session: Session,
        result: Result,
        opts: Dict[str, Any],
    ) -> StepOutcome:
        """Interpret a result. The default passes it through untouched."""
        return StepOutcome(state={}, result=result)

    # -- precondition helpers --------------------------------------------

    def require_component(self, scope: Scope, session: Session, message: str = "Component not found") -> Component:
        component = self.services.catalog.get_component(scope, session.component_id)
        if component is None:
            raise StepError(message, step_id=self.step_id)
        return component

    def require_project(self, scope: Scope, session: Session) -> Project:
        project = self.services.catalog.get_project(scope, session.project_id)
        if project is None:
            raise StepError("Project not found", step_id=self.step_id)
        return project

    def __repr__(self) -> str:
        return f"{type(self).__name__}(step_id={self.step_id!r})"
