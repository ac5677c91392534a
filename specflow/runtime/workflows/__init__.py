"""
workflows - Orchestrators and workflow steps.

Usage:
    from specflow.runtime.workflows import build_workflows

    workflows = build_workflows(services)
    orchestrator = workflows["context_design"]
    orchestrator.next_step(None)  # "initialize"
"""

from typing import Callable, Dict

from specflow.runtime.steps import StepServices

from . import component_design, component_design_review, context_components_design, context_design
from .orchestrator import SESSION_COMPLETE, Orchestrator

_BUILDERS: Dict[str, Callable[[StepServices], Orchestrator]] = {
    context_design.WORKFLOW_TYPE: context_design.build,
    component_design.WORKFLOW_TYPE: component_design.build,
    context_components_design.WORKFLOW_TYPE: context_components_design.build,
    component_design_review.WORKFLOW_TYPE: component_design_review.build,
}

WORKFLOW_TYPES = tuple(_BUILDERS)


def build_workflows(services: StepServices) -> Dict[str, Orchestrator]:
    """Build one orchestrator per workflow type, sharing ``services``."""
    return {workflow_type: build(services) for workflow_type, build in _BUILDERS.items()}


__all__ = [
    "SESSION_COMPLETE",
    "Orchestrator",
    "WORKFLOW_TYPES",
    "build_workflows",
]
