"""
component_design.py - Design one component of a context.

Usually spawned by context_components_design with execution_mode agentic.
It runs on the parent's docs branch, so it has no initialize or finalize.

Steps:
    generate_component_design -> validate_component_design

State keys (set by the parent):
    parent_context_name
    context_design_path
"""

from __future__ import annotations

from typing import List

from specflow.runtime.documents import COMPONENT_DESIGN
from specflow.runtime.steps import StepServices
from specflow.runtime.types import Scope, Session

from .common import GenerateDesignStep, ReviseDesignStep, ValidateDesignStep
from .orchestrator import Orchestrator

WORKFLOW_TYPE = "component_design"


class GenerateComponentDesign(GenerateDesignStep):
    step_id = "generate_component_design"
    document_kind = COMPONENT_DESIGN
    agent_type = "component_designer"

    def extra_context(self, scope: Scope, session: Session) -> List[str]:
        context_name = session.state.get("parent_context_name")
        context_path = session.state.get("context_design_path")
        if not context_path:
            return []
        return [
            "## Parent Context",
            f"This component belongs to the {context_name or 'parent'} context. "
            f"Read its design at {context_path} first and stay consistent with it.",
        ]


class ValidateComponentDesign(ValidateDesignStep):
    step_id = "validate_component_design"
    document_kind = COMPONENT_DESIGN
    agent_type = "component_designer"


class ReviseComponentDesign(ReviseDesignStep):
    step_id = "revise_component_design"
    document_kind = COMPONENT_DESIGN
    agent_type = "component_designer"


def build(services: StepServices) -> Orchestrator:
    validate = ValidateComponentDesign(services)
    return Orchestrator(
        WORKFLOW_TYPE,
        [GenerateComponentDesign(services), validate],
        revisions={validate.step_id: ReviseComponentDesign(services)},
    )
