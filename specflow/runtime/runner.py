"""
runner.py - Executes commands and drives sessions end to end.

The engine never runs anything itself. SubprocessRunner executes a
Command locally and returns the raw result payload that
SessionEngine.handle_result() accepts. SessionDriver loops

    next_command -> run -> handle_result

until the session is terminal, driving spawned child sessions
concurrently on a thread pool before the parent polls them.

Usage:
    driver = SessionDriver(engine, SubprocessRunner(cwd=repo_root))
    session = driver.drive(scope, session_id)
"""

from __future__ import annotations

import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional

from specflow.config.runtime_config import get_driver_setting

from .engine import SessionEngine
from .errors import SessionTerminalError, SpecflowError, StepError
from .types import Command, Scope, Session, SessionId, SessionStatus

logger = logging.getLogger(__name__)


class SubprocessRunner:
    """Runs commands with subprocess and reports raw results.

    Args:
        cwd: Working directory (a command's ``cwd`` metadata wins).
        timeout: Seconds before a command is killed. None waits forever.
    """

    def __init__(self, cwd: Optional[Path] = None, timeout: Optional[int] = None):
        self.cwd = Path(cwd) if cwd is not None else None
        self.timeout = timeout

    def run(self, command: Command) -> Dict[str, Any]:
        if command.is_spawn:
            return {
                "status": "ok",
                "data": {"child_session_ids": list(command.metadata.get("child_session_ids", []))},
            }

        cwd = command.metadata.get("cwd") or self.cwd
        try:
            if command.is_structured:
                proc = subprocess.run(
                    [command.executable, *command.args],
                    cwd=cwd,
                    input=command.pipe,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            else:
                proc = subprocess.run(
                    command.command,
                    cwd=cwd,
                    shell=True,
                    input=command.pipe,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired:
            logger.warning("Command for step %s timed out after %ss", command.step_id, self.timeout)
            return {"status": "error", "error_message": f"Command timed out after {self.timeout}s"}
        except OSError as e:
            logger.warning("Command for step %s could not start: %s", command.step_id, e)
            return {"status": "error", "error_message": str(e)}

        return {"code": proc.returncode, "stdout": proc.stdout, "stderr": proc.stderr}


class SessionDriver:
    """Runs sessions to completion without a human in the loop."""

    def __init__(
        self,
        engine: SessionEngine,
        runner: SubprocessRunner,
        max_cycles: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        self.engine = engine
        self.runner = runner
        self.max_cycles = max_cycles if max_cycles is not None else get_driver_setting("max_cycles", 50)
        self.max_workers = max_workers if max_workers is not None else get_driver_setting("max_workers", 4)

    def drive(self, scope: Scope, session_id: SessionId, max_cycles: Optional[int] = None) -> Session:
        """Run a session until it is terminal or the cycle budget is spent.

        Returns:
            The session as last stored.
        """
        budget = max_cycles if max_cycles is not None else self.max_cycles
        for _ in range(budget):
            try:
                session = self.engine.next_command(scope, session_id)
            except SessionTerminalError:
                break
            except StepError as e:
                logger.warning("Session %s stopped: %s", session_id, e.message)
                break

            interaction = session.pending_interaction
            if session.is_terminal or interaction is None:
                break

            command = interaction.command
            if command.is_spawn:
                self._drive_children(scope, command.metadata.get("child_session_ids", []), budget)

            raw = self.runner.run(command)
            self.engine.handle_result(scope, session_id, interaction.id, raw)
        else:
            logger.warning("Session %s still active after %d cycles", session_id, budget)

        return self.engine.get_session(scope, session_id)

    def _drive_children(self, scope: Scope, child_ids: List[SessionId], budget: int) -> None:
        active = [
            cid for cid in child_ids
            if self.engine.get_session(scope, cid).status == SessionStatus.ACTIVE
        ]
        if not active:
            return

        logger.info("Driving %d child sessions", len(active))
        with ThreadPoolExecutor(max_workers=max(1, self.max_workers)) as pool:
            futures = {pool.submit(self.drive, scope, cid, budget): cid for cid in active}
            for future in as_completed(futures):
                child_id = futures[future]
                try:
                    child = future.result()
                except SpecflowError as e:
                    logger.error("Child session %s failed to run: %s", child_id, e)
                    continue
                logger.info("Child session %s finished as %s", child_id, child.status.value)
