"""
context_design.py - Design a bounded context.

Steps:
    initialize -> generate_context_design -> validate_context_design -> finalize

validate_context_design is revised by revise_context_design until the
document parses. A valid design registers its child components (and the
dependency edges among project modules) in the catalog.

State keys:
    branch_name         docs branch created by initialize
    component_design    raw text of the last rejected design
    pr_url              pull request opened by finalize
    finalized_at        ISO timestamp of the finalize result
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from specflow.runtime.documents import CONTEXT_DESIGN, ParsedDocument
from specflow.runtime.steps import StepServices, component_files
from specflow.runtime.types import Component, Scope, Session

from .common import (
    FinalizeStep,
    GenerateDesignStep,
    InitializeStep,
    ReviseDesignStep,
    ValidateDesignStep,
)
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)

WORKFLOW_TYPE = "context_design"


class GenerateContextDesign(GenerateDesignStep):
    step_id = "generate_context_design"
    document_kind = CONTEXT_DESIGN
    agent_type = "context_designer"


class ValidateContextDesign(ValidateDesignStep):
    step_id = "validate_context_design"
    document_kind = CONTEXT_DESIGN
    agent_type = "context_designer"

    def on_valid(self, scope: Scope, session: Session, document: ParsedDocument) -> None:
        context = self.require_component(scope, session)
        project = self.require_project(scope, session)
        namespace = project.module_name

        components = [
            {
                "name": parsed.name,
                "module_name": parsed.module_name,
                "type": parsed.type,
                "description": parsed.description,
            }
            for parsed in document.components
        ]

        dependencies: List[Tuple[str, str]] = []
        for dep in document.dependencies:
            source = dep.source or context.module_name
            if _in_namespace(source, namespace) and _in_namespace(dep.target, namespace):
                dependencies.append((source, dep.target))
            else:
                logger.debug("Ignoring external dependency %s -> %s", source, dep.target)

        saved = self.services.catalog.create_components_with_dependencies(
            scope, project.id, context.id, components, dependencies
        )
        logger.info("Registered %d components for context %s", len(saved), context.name)


def _in_namespace(module_name: str, namespace: str) -> bool:
    return module_name == namespace or module_name.startswith(namespace + ".")


class ReviseContextDesign(ReviseDesignStep):
    step_id = "revise_context_design"
    document_kind = CONTEXT_DESIGN
    agent_type = "context_designer"


class FinalizeContextDesign(FinalizeStep):
    def files(self, scope: Scope, session: Session, component: Component) -> List[str]:
        return [component_files(component, self.services.settings.path_templates)["design_file"]]

    def title(self, component: Component) -> str:
        return f"Add context design for {component.name}"


def build(services: StepServices) -> Orchestrator:
    validate = ValidateContextDesign(services)
    return Orchestrator(
        WORKFLOW_TYPE,
        [
            InitializeStep(services),
            GenerateContextDesign(services),
            validate,
            FinalizeContextDesign(services),
        ],
        revisions={validate.step_id: ReviseContextDesign(services)},
    )
