"""Runtime configuration registry for the session engine.

Provides centralized configuration for retry bounds, defaults, git
settings, path templates and agent CLI paths. Environment variables take
precedence over YAML config.

Usage:
    from specflow.config.runtime_config import get_max_retries, get_cli_path

    max_retries = get_max_retries()          # 3 unless overridden
    claude = get_cli_path("claude_code")     # "claude" unless overridden

    settings = EngineSettings.from_config()  # snapshot for the engine

Environment overrides:
    SPECFLOW_MAX_RETRIES, SPECFLOW_DEFAULT_AGENT,
    SPECFLOW_DEFAULT_ENVIRONMENT, SPECFLOW_DOCS_DIR, SPECFLOW_BASE_BRANCH,
    SPECFLOW_<ENGINE>_CLI (e.g. SPECFLOW_CLAUDE_CODE_CLI)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional[Dict[str, Any]] = None

DEFAULT_MAX_RETRIES = 3


def _load_config() -> Dict[str, Any]:
    """Load runtime.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH, encoding="utf-8") as f:
            _cached_config = yaml.safe_load(f) or {}
    else:
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "engine": {"max_retries": DEFAULT_MAX_RETRIES},
        "defaults": {
            "agent": "claude_code",
            "environment": "local",
            "timeout_seconds": 1800,
        },
        "git": {"docs_dir": "docs", "base_branch": "main"},
        "paths": {
            "design_file": "docs/design/{module_path}.md",
            "code_file": "lib/{module_path}.ex",
            "test_file": "test/{module_path}_test.exs",
            "review_file": "docs/design/{module_path}/design_review.md",
        },
        "engines": {
            "claude_code": {"cli_path": "claude"},
            "gemini": {"cli_path": "gemini"},
        },
        "driver": {"max_cycles": 50, "max_workers": 4},
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def _section(name: str) -> Dict[str, Any]:
    return _load_config().get(name) or {}


def _int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value for %s: %r", name, raw)
        return None


def get_max_retries() -> int:
    """Get the per-step retry bound.

    Precedence: SPECFLOW_MAX_RETRIES, then engine.max_retries, then 3.
    Negative values are clamped to 0 (no retries).
    """
    value = _int_env("SPECFLOW_MAX_RETRIES")
    if value is None:
        value = _section("engine").get("max_retries", DEFAULT_MAX_RETRIES)
    if value < 0:
        logger.warning("max_retries %d is negative. Clamping to 0.", value)
        value = 0
    return value


def get_default(key: str, fallback: Any = None) -> Any:
    """Get a value from the defaults section, with env override.

    The env var is SPECFLOW_DEFAULT_<KEY> (e.g. SPECFLOW_DEFAULT_AGENT).
    """
    env_value = os.environ.get(f"SPECFLOW_DEFAULT_{key.upper()}")
    if env_value:
        return env_value
    return _section("defaults").get(key, fallback)


def get_git_setting(key: str, fallback: Optional[str] = None) -> Optional[str]:
    """Get a git setting (docs_dir, base_branch), with env override."""
    env_value = os.environ.get(f"SPECFLOW_{key.upper()}")
    if env_value:
        return env_value
    return _section("git").get(key, fallback)


def get_path_templates() -> Dict[str, str]:
    """Get the artifact path templates keyed by file kind."""
    templates = dict(_default_config()["paths"])
    templates.update(_section("paths"))
    return templates


def get_cli_path(engine: str) -> str:
    """Get CLI path for an agent engine, with env var override.

    Environment variable precedence:
    1. SPECFLOW_<ENGINE>_CLI (e.g., SPECFLOW_CLAUDE_CODE_CLI)
    2. Config file cli_path value
    3. Default: engine name
    """
    cli_value = os.environ.get(f"SPECFLOW_{engine.upper()}_CLI")
    if cli_value:
        return cli_value

    engine_config = _section("engines").get(engine.lower(), {})
    cli_path = engine_config.get("cli_path")
    if cli_path:
        return cli_path

    return engine.lower()


def get_driver_setting(key: str, fallback: int) -> int:
    """Get an integer driver setting (max_cycles, max_workers)."""
    value = _int_env(f"SPECFLOW_DRIVER_{key.upper()}")
    if value is None:
        value = _section("driver").get(key, fallback)
    return value


@dataclass
class EngineSettings:
    """Resolved settings snapshot handed to the engine and the steps.

    Attributes:
        max_retries: Consecutive error results allowed per step.
        default_agent: Agent backend used when a session names none.
        default_environment: Environment used when a session names none.
        docs_dir: Directory of the docs repository (git -C target).
        base_branch: Branch restored by environment teardown.
        path_templates: Artifact path templates keyed by file kind.
        timeout_seconds: Timeout the runner applies to commands.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    default_agent: str = "claude_code"
    default_environment: str = "local"
    docs_dir: str = "docs"
    base_branch: str = "main"
    path_templates: Dict[str, str] = field(default_factory=lambda: dict(_default_config()["paths"]))
    timeout_seconds: int = 1800

    @classmethod
    def from_config(cls) -> "EngineSettings":
        """Build settings from runtime.yaml and the environment."""
        return cls(
            max_retries=get_max_retries(),
            default_agent=get_default("agent", "claude_code"),
            default_environment=get_default("environment", "local"),
            docs_dir=get_git_setting("docs_dir", "docs") or "docs",
            base_branch=get_git_setting("base_branch", "main") or "main",
            path_templates=get_path_templates(),
            timeout_seconds=int(get_default("timeout_seconds", 1800)),
        )
