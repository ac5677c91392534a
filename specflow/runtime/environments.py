"""
environments.py - Where commands run and where files live.

An Environment contributes the git commands that bracket a docs session
and answers file questions for steps that verify artifacts:

    local    filesystem under a root directory, git branch per session
    cli      like local, but leaves the session branch checked out
    vscode   commands run inside the editor; the server has no file access
"""

from __future__ import annotations

import logging
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Type

from .errors import EnvironmentUnsupportedError

logger = logging.getLogger(__name__)


class Environment(ABC):
    """Execution context for a session's commands."""

    name: str = ""

    def __init__(self, root: Optional[Path] = None, docs_dir: str = "docs", base_branch: str = "main"):
        self.root = Path(root) if root is not None else Path.cwd()
        self.docs_dir = docs_dir
        self.base_branch = base_branch

    def setup_command(self, branch: str) -> str:
        """Command that prepares the docs checkout for a session branch."""
        return f"git -C {shlex.quote(self.docs_dir)} switch -C {shlex.quote(branch)}"

    def teardown_command(self) -> str:
        """Command run after the session's work is pushed. May be empty."""
        return f"git -C {shlex.quote(self.docs_dir)} switch {shlex.quote(self.base_branch)}"

    @abstractmethod
    def read_file(self, path: str) -> str:
        ...

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        ...

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        ...


class LocalEnvironment(Environment):
    """Commands and files on the server's own filesystem."""

    name = "local"

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    def read_file(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()


class CliEnvironment(LocalEnvironment):
    """Terminal sessions: the user keeps working on the session branch."""

    name = "cli"

    def teardown_command(self) -> str:
        return ""


class VSCodeEnvironment(Environment):
    """Commands are executed by the editor extension on the user's machine."""

    name = "vscode"

    def read_file(self, path: str) -> str:
        raise EnvironmentUnsupportedError("vscode environment cannot read files server-side")

    def write_file(self, path: str, content: str) -> None:
        raise EnvironmentUnsupportedError("vscode environment cannot write files server-side")

    def file_exists(self, path: str) -> bool:
        raise EnvironmentUnsupportedError("vscode environment cannot check files server-side")


ENVIRONMENTS: Dict[str, Type[Environment]] = {
    LocalEnvironment.name: LocalEnvironment,
    CliEnvironment.name: CliEnvironment,
    VSCodeEnvironment.name: VSCodeEnvironment,
}


def get_environment(
    name: str,
    root: Optional[Path] = None,
    docs_dir: str = "docs",
    base_branch: str = "main",
) -> Environment:
    """Instantiate an environment by name.

    Raises:
        ValueError: If the name is unknown.
    """
    env_cls = ENVIRONMENTS.get(name)
    if env_cls is None:
        raise ValueError(f"Unknown environment: {name}. Valid options: {', '.join(sorted(ENVIRONMENTS))}")
    return env_cls(root=root, docs_dir=docs_dir, base_branch=base_branch)
