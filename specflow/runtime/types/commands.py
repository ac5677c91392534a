"""Command and Result value types.

A Command describes what a step wants executed; a Result describes what
happened when an external runner executed it. Both are immutable once
created. Steps rewrite a Result by producing a modified copy.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ._time import _datetime_to_iso, _iso_to_datetime, utc_now

# Sentinel command string for fan-out steps. It carries child session ids
# in metadata and does not represent external work.
SPAWN_SESSIONS = "spawn_sessions"


class ResultStatus(str, Enum):
    """Outcome of a command execution."""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Command:
    """A runnable instruction produced by a step.

    Attributes:
        step_id: Identifier of the step that produced this command. The
            orchestrator uses it to decide which step comes next.
        command: Literal shell command line (or the spawn sentinel).
        executable: Executable for structured agent commands.
        args: Argument list for structured agent commands.
        metadata: Arbitrary metadata (child session ids, cwd, agent info).
        pipe: Optional payload piped to the command's stdin.
        created_at: When the command was issued.
    """

    step_id: str
    command: str
    executable: Optional[str] = None
    args: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)
    pipe: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def shell_command(cls, step_id: str, command: str, **metadata: Any) -> "Command":
        """Build a literal shell command."""
        return cls(step_id=step_id, command=command, metadata=dict(metadata))

    @classmethod
    def agent_command(
        cls,
        step_id: str,
        executable: str,
        args: List[str],
        pipe: Optional[str] = None,
        **metadata: Any,
    ) -> "Command":
        """Build a structured agent command.

        ``command`` holds the shell-quoted executable and args so a manual
        runner can paste it and feed ``pipe`` on stdin.
        """
        return cls(
            step_id=step_id,
            command=shlex.join([executable, *args]),
            executable=executable,
            args=tuple(args),
            metadata=dict(metadata),
            pipe=pipe,
        )

    @classmethod
    def spawn(cls, step_id: str, child_session_ids: list, **metadata: Any) -> "Command":
        """Build the spawn sentinel carrying child session ids."""
        meta = dict(metadata)
        meta["child_session_ids"] = list(child_session_ids)
        return cls(step_id=step_id, command=SPAWN_SESSIONS, metadata=meta)

    @property
    def is_spawn(self) -> bool:
        return self.command == SPAWN_SESSIONS

    @property
    def is_structured(self) -> bool:
        return self.executable is not None


@dataclass(frozen=True)
class Result:
    """Outcome of executing a command.

    Attributes:
        status: ok, warning or error.
        data: Structured payload.
        stdout: Captured standard output.
        stderr: Captured standard error.
        code: Process exit code, when one exists.
        error_message: Human-readable message for error/warning results.
        timestamp: When the result was produced.
    """

    status: ResultStatus
    data: Dict[str, Any] = field(default_factory=dict)
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    code: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Result":
        return cls(status=ResultStatus.OK, data=dict(data or {}), **kwargs)

    @classmethod
    def warning(cls, message: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Result":
        return cls(status=ResultStatus.WARNING, data=dict(data or {}), error_message=message, **kwargs)

    @classmethod
    def error(cls, message: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> "Result":
        return cls(status=ResultStatus.ERROR, data=dict(data or {}), error_message=message, **kwargs)

    @property
    def is_ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    def with_status(self, status: ResultStatus, error_message: Optional[str] = None) -> "Result":
        """Return a copy with a different status (and optionally message)."""
        return replace(self, status=status, error_message=error_message)

    def with_error(self, message: str, **data: Any) -> "Result":
        """Return a copy rewritten to an error, merging extra data."""
        merged = dict(self.data)
        merged.update(data)
        return replace(self, status=ResultStatus.ERROR, error_message=message, data=merged)


# =============================================================================
# Serialization Functions
# =============================================================================


def command_to_dict(command: Command) -> Dict[str, Any]:
    """Convert Command to a dictionary for serialization."""
    return {
        "step_id": command.step_id,
        "command": command.command,
        "executable": command.executable,
        "args": list(command.args),
        "metadata": dict(command.metadata),
        "pipe": command.pipe,
        "created_at": _datetime_to_iso(command.created_at),
    }


def command_from_dict(data: Dict[str, Any]) -> Command:
    """Parse Command from a dictionary."""
    return Command(
        step_id=data["step_id"],
        command=data.get("command", ""),
        executable=data.get("executable"),
        args=tuple(data.get("args", ())),
        metadata=dict(data.get("metadata", {})),
        pipe=data.get("pipe"),
        created_at=_iso_to_datetime(data.get("created_at")) or utc_now(),
    )


def result_to_dict(result: Result) -> Dict[str, Any]:
    """Convert Result to a dictionary for serialization."""
    return {
        "status": result.status.value,
        "data": dict(result.data),
        "stdout": result.stdout,
        "stderr": result.stderr,
        "code": result.code,
        "error_message": result.error_message,
        "timestamp": _datetime_to_iso(result.timestamp),
    }


def result_from_dict(data: Dict[str, Any]) -> Result:
    """Parse a stored Result from a dictionary.

    For payloads submitted by external runners use
    ``specflow.runtime.result_io.result_from_raw`` instead, which
    validates the payload and derives missing fields.
    """
    return Result(
        status=ResultStatus(data.get("status", "ok")),
        data=dict(data.get("data") or {}),
        stdout=data.get("stdout"),
        stderr=data.get("stderr"),
        code=data.get("code"),
        error_message=data.get("error_message"),
        timestamp=_iso_to_datetime(data.get("timestamp")) or utc_now(),
    )
