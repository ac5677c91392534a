"""Domain records the workflows act upon.

Projects, components and stories are owned by an external catalog; the
engine only reads them (and creates components parsed out of designs).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Scope:
    """Caller scope used for permission checks and record stamping."""

    user_id: Optional[str] = None
    account_id: Optional[str] = None
    active_project_id: Optional[str] = None


@dataclass
class Project:
    """A software project whose architecture is being designed.

    Attributes:
        module_name: Root module namespace (e.g. "MyApp"). Dependencies
            outside this namespace are treated as external.
    """

    id: str
    name: str
    module_name: str
    description: str = ""
    code_repo: Optional[str] = None
    docs_repo: Optional[str] = None


@dataclass
class Component:
    """A unit of architecture: a context, schema, repository, etc."""

    id: str
    project_id: str
    name: str
    module_name: str
    type: str = "other"
    description: str = ""
    parent_component_id: Optional[str] = None

    @property
    def is_context(self) -> bool:
        return self.type in ("context", "coordination_context")


@dataclass
class Story:
    """A user story linked to a component."""

    id: str
    title: str
    description: str = ""
    acceptance_criteria: List[str] = field(default_factory=list)
    component_id: Optional[str] = None


@dataclass
class Dependency:
    """Directed dependency edge between two components."""

    source_component_id: str
    target_component_id: str


def component_from_dict(data: Dict[str, Any]) -> Component:
    return Component(
        id=str(data["id"]),
        project_id=str(data["project_id"]),
        name=data["name"],
        module_name=data.get("module_name") or data["name"],
        type=data.get("type", "other"),
        description=data.get("description", ""),
        parent_component_id=data.get("parent_component_id"),
    )


def project_from_dict(data: Dict[str, Any]) -> Project:
    return Project(
        id=str(data["id"]),
        name=data["name"],
        module_name=data.get("module_name") or data["name"],
        description=data.get("description", ""),
        code_repo=data.get("code_repo"),
        docs_repo=data.get("docs_repo"),
    )


def story_from_dict(data: Dict[str, Any]) -> Story:
    return Story(
        id=str(data["id"]),
        title=data["title"],
        description=data.get("description", ""),
        acceptance_criteria=list(data.get("acceptance_criteria") or []),
        component_id=data.get("component_id"),
    )
