"""
context_components_design.py - Design every component of a context.

Steps:
    initialize -> spawn_component_design_sessions -> spawn_review_session -> finalize

The spawn steps fan out child sessions (component_design, then
component_design_review) and poll them. While children are running the
spawn step reports an error flagged ``awaiting_children``; the engine
re-issues the same step without counting it as a retry.

State keys:
    branch_name         docs branch created by initialize
    child_session_ids   children seen by the last poll
    pr_url              pull request opened by finalize
    finalized_at        ISO timestamp of the finalize result
"""

from __future__ import annotations

from typing import Any, Dict, List

from specflow.runtime.errors import StepError
from specflow.runtime.steps import StepServices, component_files
from specflow.runtime.types import Component, Scope, Session

from . import component_design, component_design_review
from .common import FinalizeStep, InitializeStep, SpawnSessionsStep
from .orchestrator import Orchestrator

WORKFLOW_TYPE = "context_components_design"


class SpawnComponentDesignSessions(SpawnSessionsStep):
    """One component_design child per child component of the context."""

    step_id = "spawn_component_design_sessions"
    child_type = component_design.WORKFLOW_TYPE

    def targets(self, scope: Scope, session: Session) -> List[Component]:
        context = self.require_component(scope, session, "Context component not found")
        children = self.services.catalog.list_child_components(scope, context.id)
        if not children:
            raise StepError("No child components found for context", step_id=self.step_id)
        return children

    def child_state(self, scope: Scope, session: Session, component: Component) -> Dict[str, Any]:
        context = self.require_component(scope, session, "Context component not found")
        templates = self.services.settings.path_templates
        return {
            "parent_context_name": context.name,
            "context_design_path": component_files(context, templates)["design_file"],
        }

    def expected_files(self, scope: Scope, session: Session, child: Session) -> List[str]:
        component = self.services.catalog.get_component(scope, child.component_id)
        if component is None:
            return []
        return [component_files(component, self.services.settings.path_templates)["design_file"]]


class SpawnReviewSession(SpawnSessionsStep):
    """A single component_design_review child for the context."""

    step_id = "spawn_review_session"
    child_type = component_design_review.WORKFLOW_TYPE

    def targets(self, scope: Scope, session: Session) -> List[Component]:
        return [self.require_component(scope, session, "Context component not found")]

    def child_state(self, scope: Scope, session: Session, component: Component) -> Dict[str, Any]:
        files = component_files(component, self.services.settings.path_templates)
        return {
            "parent_context_name": component.name,
            "context_design_path": files["design_file"],
            "review_file_path": files["review_file"],
        }

    def expected_files(self, scope: Scope, session: Session, child: Session) -> List[str]:
        review_path = child.state.get("review_file_path")
        return [review_path] if review_path else []


class FinalizeContextComponentsDesign(FinalizeStep):
    def files(self, scope: Scope, session: Session, component: Component) -> List[str]:
        templates = self.services.settings.path_templates
        paths = [component_files(child, templates)["design_file"]
                 for child in self.services.catalog.list_child_components(scope, component.id)]
        paths.append(component_files(component, templates)["review_file"])
        return paths

    def title(self, component: Component) -> str:
        return f"Add component designs for {component.name} context"

    def body(self, component: Component) -> str:
        return (
            "## Summary\n\n"
            f"Component designs generated for the {component.name} context, "
            "with an architecture review of the context as a whole."
        )


def build(services: StepServices) -> Orchestrator:
    return Orchestrator(
        WORKFLOW_TYPE,
        [
            InitializeStep(services),
            SpawnComponentDesignSessions(services),
            SpawnReviewSession(services),
            FinalizeContextComponentsDesign(services),
        ],
    )
