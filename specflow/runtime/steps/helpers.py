"""
helpers.py - Shared building blocks for workflow steps.

Naming (branches, module paths), artifact paths, agent command
construction and prompt fragments used by more than one workflow.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Optional

from specflow.runtime.types import Command, Component, Session, Story

from .base import StepServices

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def sanitize_name(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to "-", trim dashes.

    Idempotent: sanitize_name(sanitize_name(x)) == sanitize_name(x).

    Examples:
        >>> sanitize_name("User---Admin:::System")
        'user-admin-system'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def branch_name(session_type: str, component_name: str) -> str:
    """Deterministic docs branch for a session, e.g.
    docs-context-design-session-for-accounts."""
    return sanitize_name(f"docs-{session_type}-session-for-{component_name}")


def module_to_path(module_name: str) -> str:
    """Convert a dotted module name to a relative path.

    Examples:
        >>> module_to_path("MyApp.Accounts.UserRepo")
        'my_app/accounts/user_repo'
    """
    parts = [_CAMEL_BOUNDARY.sub("_", part).lower() for part in module_name.split(".") if part]
    return "/".join(parts)


def component_files(component: Component, templates: Dict[str, str]) -> Dict[str, str]:
    """Resolve every artifact path template for a component."""
    module_path = module_to_path(component.module_name)
    return {kind: template.format(module_path=module_path) for kind, template in templates.items()}


def build_agent_command(
    services: StepServices,
    session: Session,
    agent_type: str,
    prompt: str,
    opts: Dict[str, Any],
    step_id: str,
) -> Command:
    """Create an agent of ``agent_type`` on the session's backend and
    build its command.

    ``continue`` in opts resumes the session's external conversation when
    one is known.
    """
    factory = services.agent_factory
    agent = factory.create_agent(
        agent_type,
        name=f"{agent_type}-{session.id}",
        implementation=session.agent or services.settings.default_agent,
    )
    options = dict(opts)
    if options.get("continue") and session.external_conversation_id:
        options["resume"] = session.external_conversation_id
    return factory.build_command(agent, prompt, options, step_id)


def last_error_message(session: Session) -> Optional[str]:
    """Error message of the most recent interaction whose result is an error."""
    for interaction in reversed(session.interactions):
        if interaction.result is not None and interaction.result.is_error:
            return interaction.result.error_message or ""
    return None


def format_stories(stories: Iterable[Story]) -> str:
    lines = []
    for story in stories:
        lines.append(f"### {story.title}")
        if story.description:
            lines.append(story.description)
        for criterion in story.acceptance_criteria:
            lines.append(f"- {criterion}")
        lines.append("")
    return "\n".join(lines).strip() or "No user stories are linked to this component."


def format_similar_components(components: Iterable[Component], templates: Dict[str, str]) -> str:
    lines = [
        f"- {c.module_name} ({c.type}): {component_files(c, templates).get('design_file', '')}"
        for c in components
    ]
    return "\n".join(lines) or "None."
