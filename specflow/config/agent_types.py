"""Agent type registry.

Provides:
1. Agent type definitions (prompt, default config, extra tools)
2. Lookup by name with an in-code fallback when the YAML is unavailable

The YAML lives next to this module (agent_types.yaml).
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Cache for loaded agent types
_types_cache: Optional[Dict[str, Any]] = None
_config_path: Optional[Path] = None


def _get_config_path() -> Path:
    """Get the path to agent_types.yaml."""
    return Path(__file__).parent / "agent_types.yaml"


def _load_agent_types() -> Dict[str, Any]:
    """Load and cache agent types from YAML."""
    global _types_cache, _config_path

    config_path = _get_config_path()

    if _types_cache is not None and _config_path == config_path:
        return _types_cache

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    _types_cache = data.get("agent_types") or {}
    _config_path = config_path
    return _types_cache


def reset_agent_types() -> None:
    """Reset cached agent types (for testing)."""
    global _types_cache, _config_path
    _types_cache = None
    _config_path = None


# Fallback definitions (used if YAML loading fails)
FALLBACK_AGENT_TYPES: Dict[str, Dict[str, Any]] = {
    "context_designer": {
        "prompt": "You are a software architect designing a bounded context.",
        "config": {"model": "sonnet"},
    },
    "context_reviewer": {
        "prompt": "You review a bounded context design and its component designs.",
        "config": {"model": "sonnet"},
    },
    "component_designer": {
        "prompt": "You are a software designer writing a component design.",
        "config": {"model": "sonnet"},
    },
    "component_reviewer": {
        "prompt": "You review a single component design.",
        "config": {"model": "sonnet"},
    },
    "test_writer": {
        "prompt": "You write tests for a component from its design.",
        "config": {"model": "sonnet"},
        "additional_tools": ["Bash"],
    },
    "coder": {
        "prompt": "You implement a component from its design.",
        "config": {"model": "sonnet"},
        "additional_tools": ["Bash"],
    },
}


def _all_types() -> Dict[str, Any]:
    try:
        types = _load_agent_types()
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Falling back to built-in agent types: %s", exc)
        return FALLBACK_AGENT_TYPES
    return types or FALLBACK_AGENT_TYPES


def get_agent_type_definition(name: str) -> Optional[Dict[str, Any]]:
    """Get the raw definition of an agent type.

    Args:
        name: Agent type name (e.g., "component_designer").

    Returns:
        Dict with prompt/config/implementation/additional_tools, or None.
    """
    definition = _all_types().get(name)
    return dict(definition) if definition is not None else None


def list_agent_types() -> List[str]:
    """List all available agent type names."""
    return sorted(_all_types().keys())
