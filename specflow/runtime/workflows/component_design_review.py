"""
component_design_review.py - Review a context and all of its component designs.

Spawned by context_components_design once every component design is in.

Steps:
    execute_review

State keys (set by the parent):
    parent_context_name
    context_design_path
    review_file_path
"""

from __future__ import annotations

from typing import Any, Dict

from specflow.runtime.steps import (
    Step,
    StepServices,
    build_agent_command,
    component_files,
    format_stories,
)
from specflow.runtime.types import Command, Scope, Session

from .orchestrator import Orchestrator

WORKFLOW_TYPE = "component_design_review"


class ExecuteReview(Step):
    """Agent reviews the context design together with every child design
    and writes a summary to the review file."""

    step_id = "execute_review"

    def get_command(self, scope: Scope, session: Session, opts: Dict[str, Any]) -> Command:
        context = self.require_component(scope, session, "Session must have an associated component")
        project = self.require_project(scope, session)
        catalog = self.services.catalog
        templates = self.services.settings.path_templates

        context_files = component_files(context, templates)
        context_path = session.state.get("context_design_path") or context_files["design_file"]
        review_path = session.state.get("review_file_path") or context_files["review_file"]
        child_paths = [
            f"- {child.name}: {component_files(child, templates)['design_file']}"
            for child in catalog.list_child_components(scope, context.id)
        ]

        prompt = "\n\n".join([
            f"Review the architecture of the {context.name} context in project {project.name}.",
            f"Context design: {context_path}",
            "Component designs:\n" + ("\n".join(child_paths) or "None."),
            "## User Stories",
            format_stories(catalog.list_stories(scope, context.id)),
            "Check that the component designs are consistent with the context design and with "
            "each other, that every dependency is declared, and that the stories are covered. "
            "Fix any issues you find directly in the documents.",
            f"Write a summary of the review to {review_path}",
        ])
        return build_agent_command(self.services, session, "context_reviewer", prompt, opts, self.step_id)


def build(services: StepServices) -> Orchestrator:
    return Orchestrator(WORKFLOW_TYPE, [ExecuteReview(services)])
