"""
catalog.py - Project, component and story lookups.

Workflow steps read domain records through a ProjectCatalog and write
back only one thing: components (and their dependency edges) parsed out
of a validated context design.

InMemoryProjectCatalog is the bundled implementation. It can be seeded
from a YAML file:

    projects:
      - id: proj-1
        name: My App
        module_name: MyApp
    components:
      - id: comp-accounts
        project_id: proj-1
        name: Accounts
        module_name: MyApp.Accounts
        type: context
    stories:
      - id: story-1
        title: Register
        component_id: comp-accounts
        acceptance_criteria: ["User can sign up"]
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .types import (
    Component,
    Dependency,
    Project,
    Scope,
    Story,
    component_from_dict,
    project_from_dict,
    story_from_dict,
)

logger = logging.getLogger(__name__)


class ProjectCatalog(ABC):
    """Read access to projects/components/stories plus component creation."""

    @abstractmethod
    def get_project(self, scope: Scope, project_id: Optional[str]) -> Optional[Project]:
        ...

    @abstractmethod
    def get_component(self, scope: Scope, component_id: Optional[str]) -> Optional[Component]:
        ...

    @abstractmethod
    def list_child_components(self, scope: Scope, component_id: str) -> List[Component]:
        ...

    @abstractmethod
    def list_stories(self, scope: Scope, component_id: str) -> List[Story]:
        ...

    @abstractmethod
    def list_dependencies(self, scope: Scope, component_id: str) -> List[Dependency]:
        """Outgoing dependency edges of a component."""
        ...

    @abstractmethod
    def list_similar_components(self, scope: Scope, component: Component) -> List[Component]:
        """Components of the same type elsewhere in the project."""
        ...

    @abstractmethod
    def create_components_with_dependencies(
        self,
        scope: Scope,
        project_id: str,
        parent_component_id: Optional[str],
        components: List[Dict[str, Any]],
        dependencies: List[Tuple[str, str]],
    ) -> List[Component]:
        """Upsert components and dependency edges.

        Components are matched by (project_id, module_name); dependency
        edges are given as (source_module, target_module) pairs and are
        created at most once. Calling this twice with the same input
        leaves the catalog unchanged.

        Args:
            scope: Caller scope.
            project_id: Owning project.
            parent_component_id: Context the components belong to.
            components: Dicts with module_name, name, type, description.
            dependencies: (source_module, target_module) pairs.

        Returns:
            The created or updated components, in input order.
        """
        ...


class InMemoryProjectCatalog(ProjectCatalog):
    """Dict-backed catalog."""

    def __init__(
        self,
        projects: Iterable[Project] = (),
        components: Iterable[Component] = (),
        stories: Iterable[Story] = (),
        dependencies: Iterable[Dependency] = (),
    ):
        self._projects: Dict[str, Project] = {p.id: p for p in projects}
        self._components: Dict[str, Component] = {c.id: c for c in components}
        self._stories: Dict[str, Story] = {s.id: s for s in stories}
        self._dependencies: List[Dependency] = list(dependencies)
        self._lock = threading.Lock()

    @classmethod
    def from_yaml(cls, path: Path) -> "InMemoryProjectCatalog":
        """Load a catalog from a YAML seed file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        catalog = cls(
            projects=[project_from_dict(p) for p in data.get("projects") or []],
            components=[component_from_dict(c) for c in data.get("components") or []],
            stories=[story_from_dict(s) for s in data.get("stories") or []],
            dependencies=[
                Dependency(d["source_component_id"], d["target_component_id"])
                for d in data.get("dependencies") or []
            ],
        )
        logger.debug(
            "Loaded catalog from %s: %d projects, %d components",
            path,
            len(catalog._projects),
            len(catalog._components),
        )
        return catalog

    def add_project(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    def add_component(self, component: Component) -> Component:
        self._components[component.id] = component
        return component

    def add_story(self, story: Story) -> Story:
        self._stories[story.id] = story
        return story

    def get_project(self, scope: Scope, project_id: Optional[str]) -> Optional[Project]:
        if project_id is None:
            return None
        return self._projects.get(project_id)

    def get_component(self, scope: Scope, component_id: Optional[str]) -> Optional[Component]:
        if component_id is None:
            return None
        return self._components.get(component_id)

    def get_component_by_module(self, project_id: str, module_name: str) -> Optional[Component]:
        for component in self._components.values():
            if component.project_id == project_id and component.module_name == module_name:
                return component
        return None

    def list_child_components(self, scope: Scope, component_id: str) -> List[Component]:
        children = [c for c in self._components.values() if c.parent_component_id == component_id]
        return sorted(children, key=lambda c: c.module_name)

    def list_stories(self, scope: Scope, component_id: str) -> List[Story]:
        return [s for s in self._stories.values() if s.component_id == component_id]

    def list_dependencies(self, scope: Scope, component_id: str) -> List[Dependency]:
        return [d for d in self._dependencies if d.source_component_id == component_id]

    def list_similar_components(self, scope: Scope, component: Component) -> List[Component]:
        similar = [
            c
            for c in self._components.values()
            if c.project_id == component.project_id and c.type == component.type and c.id != component.id
        ]
        return sorted(similar, key=lambda c: c.module_name)

    def create_components_with_dependencies(
        self,
        scope: Scope,
        project_id: str,
        parent_component_id: Optional[str],
        components: List[Dict[str, Any]],
        dependencies: List[Tuple[str, str]],
    ) -> List[Component]:
        with self._lock:
            saved: List[Component] = []
            for attrs in components:
                module_name = attrs["module_name"]
                existing = self.get_component_by_module(project_id, module_name)
                component = Component(
                    id=existing.id if existing else f"comp-{uuid.uuid4().hex[:12]}",
                    project_id=project_id,
                    name=attrs.get("name") or module_name.split(".")[-1],
                    module_name=module_name,
                    type=attrs.get("type") or "other",
                    description=attrs.get("description", ""),
                    parent_component_id=parent_component_id,
                )
                self._components[component.id] = component
                saved.append(component)

            for source_module, target_module in dependencies:
                source = self.get_component_by_module(project_id, source_module)
                target = self.get_component_by_module(project_id, target_module)
                if source is None or target is None:
                    logger.debug("Skipping dependency %s -> %s: unknown component", source_module, target_module)
                    continue
                edge = Dependency(source.id, target.id)
                if edge not in self._dependencies:
                    self._dependencies.append(edge)

            return saved
