"""
Shared fixtures for specflow tests.

Provides an in-memory engine wired with the default workflows and a small
project catalog (the MyApp.Accounts context). Sample documents and
stepping helpers live in tests/support.py.
"""

import os
from pathlib import Path
from typing import Dict

import pytest

from specflow.config.agent_types import reset_agent_types
from specflow.config.runtime_config import EngineSettings, reset_config
from specflow.runtime.agents import AgentFactory, ClaudeCodeBackend, GeminiCliBackend
from specflow.runtime.catalog import InMemoryProjectCatalog
from specflow.runtime.engine import SessionEngine
from specflow.runtime.steps import StepServices
from specflow.runtime.storage import InMemorySessionStore
from specflow.runtime.types import Component, Project, Scope, Story
from specflow.runtime.workflows import build_workflows


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Fresh config caches and no SPECFLOW_* overrides for every test."""
    for name in list(os.environ):
        if name.startswith("SPECFLOW_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_agent_types()
    yield
    reset_config()
    reset_agent_types()


@pytest.fixture
def scope() -> Scope:
    return Scope(user_id="user-1", account_id="acct-1", active_project_id="proj-1")


@pytest.fixture
def project() -> Project:
    return Project(id="proj-1", name="My App", module_name="MyApp", description="Demo application")


@pytest.fixture
def context_component() -> Component:
    return Component(
        id="comp-accounts",
        project_id="proj-1",
        name="Accounts",
        module_name="MyApp.Accounts",
        type="context",
        description="User accounts",
    )


@pytest.fixture
def catalog(project, context_component) -> InMemoryProjectCatalog:
    return InMemoryProjectCatalog(
        projects=[project],
        components=[context_component],
        stories=[
            Story(
                id="story-1",
                title="Register an account",
                description="As a visitor I can sign up",
                acceptance_criteria=["Email must be unique"],
                component_id="comp-accounts",
            )
        ],
    )


@pytest.fixture
def child_components(catalog) -> Dict[str, Component]:
    """Three components under the Accounts context, keyed by name."""
    children = {}
    for name, type_ in (("User", "schema"), ("UserRepository", "repository"), ("Registration", "other")):
        component = Component(
            id=f"comp-{name.lower()}",
            project_id="proj-1",
            name=name,
            module_name=f"MyApp.Accounts.{name}",
            type=type_,
            parent_component_id="comp-accounts",
        )
        catalog.add_component(component)
        children[name] = component
    return children


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(max_retries=3)


@pytest.fixture
def agent_factory() -> AgentFactory:
    return AgentFactory(
        {"claude_code": ClaudeCodeBackend("claude"), "gemini": GeminiCliBackend("gemini")},
        default_implementation="claude_code",
    )


@pytest.fixture
def services(store, catalog, agent_factory, settings, tmp_path: Path) -> StepServices:
    return StepServices(
        store=store,
        catalog=catalog,
        agent_factory=agent_factory,
        settings=settings,
        root=tmp_path,
    )


@pytest.fixture
def engine(store, services, settings) -> SessionEngine:
    return SessionEngine(store, build_workflows(services), settings)


