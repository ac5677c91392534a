"""
documents.py - Design document parsing.

Design documents are markdown split into ``## `` sections. The
SectionDocumentParser checks that the sections required for a document
kind are present and extracts component and dependency bullets:

    ## Components
    - MyApp.Accounts.User (schema): User account record
    - MyApp.Accounts.UserRepository (repository): Persists users

    ## Dependencies
    - MyApp.Mailer: sends confirmation emails
    - MyApp.Accounts.UserRepository -> MyApp.Accounts.User

A dependency bullet without an arrow is an edge from the document's own
component. Parse failures raise DocumentParseError with a message meant
to be fed back to the agent that wrote the document.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import DocumentParseError

CONTEXT_DESIGN = "context_design"
COMPONENT_DESIGN = "component_design"

REQUIRED_SECTIONS: Dict[str, Tuple[str, ...]] = {
    CONTEXT_DESIGN: ("purpose", "components", "dependencies"),
    COMPONENT_DESIGN: ("purpose", "public api"),
}

_COMPONENT_RE = re.compile(
    r"^[-*]\s+(?P<module>[A-Z][\w]*(?:\.[A-Z][\w]*)*)\s*(?:\((?P<type>[\w\s-]+)\))?\s*:\s*(?P<description>.*)$"
)
_DEPENDENCY_RE = re.compile(
    r"^[-*]\s+(?:(?P<source>[A-Z][\w]*(?:\.[A-Z][\w]*)*)\s*->\s*)?"
    r"(?P<target>[A-Z][\w]*(?:\.[A-Z][\w]*)*)\s*(?::\s*(?P<reason>.*))?$"
)
_NONE_MARKERS = ("none", "- none", "n/a", "- n/a")


@dataclass
class ParsedComponent:
    module_name: str
    type: str = "other"
    description: str = ""

    @property
    def name(self) -> str:
        return self.module_name.split(".")[-1]


@dataclass
class ParsedDependency:
    """A dependency edge. ``source`` None means the document's subject."""

    target: str
    source: Optional[str] = None
    reason: str = ""


@dataclass
class ParsedDocument:
    kind: str
    title: str
    sections: Dict[str, str] = field(default_factory=dict)
    components: List[ParsedComponent] = field(default_factory=list)
    dependencies: List[ParsedDependency] = field(default_factory=list)


class DocumentParser(ABC):
    """Turns raw design text into a ParsedDocument."""

    @abstractmethod
    def parse(self, raw_text: str, kind: str) -> ParsedDocument:
        """Parse a document.

        Raises:
            DocumentParseError: If the text does not match the kind's shape.
        """
        ...


def split_sections(raw_text: str) -> Tuple[str, Dict[str, str]]:
    """Split markdown into (title, {lowercased heading: body})."""
    title = ""
    sections: Dict[str, str] = {}
    current: Optional[str] = None
    buffer: List[str] = []

    for line in raw_text.splitlines():
        if line.startswith("## "):
            if current is not None:
                sections[current] = "\n".join(buffer).strip()
            current = line[3:].strip().lower()
            buffer = []
        elif line.startswith("# ") and current is None and not title:
            title = line[2:].strip()
        elif current is not None:
            buffer.append(line)

    if current is not None:
        sections[current] = "\n".join(buffer).strip()
    return title, sections


def _bullets(body: str) -> List[str]:
    return [line.strip() for line in body.splitlines() if line.strip().startswith(("-", "*"))]


class SectionDocumentParser(DocumentParser):
    """Default parser for ``## ``-sectioned markdown designs."""

    def parse(self, raw_text: str, kind: str) -> ParsedDocument:
        if kind not in REQUIRED_SECTIONS:
            raise DocumentParseError(f"Unknown document kind: {kind}")
        if not raw_text or not raw_text.strip():
            raise DocumentParseError("Document is empty")

        title, sections = split_sections(raw_text)
        missing = [name for name in REQUIRED_SECTIONS[kind] if name not in sections]
        if missing:
            raise DocumentParseError(f"Missing required sections: {', '.join(missing)}")

        components = self._parse_components(sections.get("components", ""))
        if kind == CONTEXT_DESIGN and not components:
            raise DocumentParseError("Components section lists no components")

        dependencies = self._parse_dependencies(sections.get("dependencies", ""))

        return ParsedDocument(
            kind=kind,
            title=title,
            sections=sections,
            components=components,
            dependencies=dependencies,
        )

    def _parse_components(self, body: str) -> List[ParsedComponent]:
        components: List[ParsedComponent] = []
        errors: List[str] = []
        for bullet in _bullets(body):
            match = _COMPONENT_RE.match(bullet)
            if not match:
                errors.append(f"Invalid component entry: {bullet!r} (expected '- Module.Name (type): description')")
                continue
            description = match.group("description").strip()
            if not description:
                errors.append(f"description is required for component: {match.group('module')}")
                continue
            components.append(
                ParsedComponent(
                    module_name=match.group("module"),
                    type=(match.group("type") or "other").strip().replace(" ", "_").lower(),
                    description=description,
                )
            )
        if errors:
            raise DocumentParseError("Components section error: " + "; ".join(errors))
        return components

    def _parse_dependencies(self, body: str) -> List[ParsedDependency]:
        if body.strip().lower() in _NONE_MARKERS:
            return []
        dependencies: List[ParsedDependency] = []
        errors: List[str] = []
        for bullet in _bullets(body):
            if bullet.lower() in _NONE_MARKERS:
                continue
            match = _DEPENDENCY_RE.match(bullet)
            if not match:
                errors.append(f"Invalid dependency entry: {bullet!r}")
                continue
            dependencies.append(
                ParsedDependency(
                    target=match.group("target"),
                    source=match.group("source"),
                    reason=(match.group("reason") or "").strip(),
                )
            )
        if errors:
            raise DocumentParseError("Dependencies section error: " + "; ".join(errors))
        return dependencies


_TEMPLATES: Dict[str, str] = {
    CONTEXT_DESIGN: """\
# {Context Name}

## Purpose
What this context is responsible for, in two or three sentences.

## Entity Ownership
Entities this context owns.

## Public API
Functions other contexts may call.

## Components
- {Module.Name} ({type}): {one line description}

## Dependencies
- {Other.Context}: {why it is needed}
""",
    COMPONENT_DESIGN: """\
# {Component Name}

## Purpose
What this component does.

## Public API
Functions with their signatures and behavior.

## Dependencies
- {Other.Module}: {why it is needed}

## Test Assertions
- {behavior the tests must check}
""",
}


def document_template(kind: str) -> str:
    """Markdown skeleton an agent fills in for a document kind."""
    try:
        return _TEMPLATES[kind]
    except KeyError:
        raise DocumentParseError(f"Unknown document kind: {kind}") from None
