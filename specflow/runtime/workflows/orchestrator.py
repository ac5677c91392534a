"""
orchestrator.py - Fixed step sequencing for one workflow type.

An Orchestrator knows the ordered step list of a workflow and which
steps have a paired revision step. It does not branch: retries and
revisions are decided by the engine from the last result, and the
orchestrator only answers "what comes after X".

Revision steps are looked up by id but never appear in the ordered list.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from specflow.runtime.errors import InvalidInteractionError
from specflow.runtime.steps import Step

# Returned by next_step() when the last step of the workflow has run.
SESSION_COMPLETE = "session_complete"


class Orchestrator:
    """Step sequence for a workflow type.

    Args:
        workflow_type: Session type key (e.g. "context_design").
        steps: Ordered steps.
        revisions: Map of revise-capable step id -> its revision step.
    """

    def __init__(
        self,
        workflow_type: str,
        steps: Sequence[Step],
        revisions: Optional[Dict[str, Step]] = None,
    ):
        if not steps:
            raise ValueError(f"Workflow '{workflow_type}' has no steps")
        self.workflow_type = workflow_type
        self._order: List[str] = [step.step_id for step in steps]
        if len(set(self._order)) != len(self._order):
            raise ValueError(f"Workflow '{workflow_type}' has duplicate step ids")

        self._steps: Dict[str, Step] = {step.step_id: step for step in steps}
        self._revisions: Dict[str, str] = {}
        self._revised: Dict[str, str] = {}
        for step_id, revision in (revisions or {}).items():
            if step_id not in self._steps:
                raise ValueError(f"Revision target '{step_id}' is not a step of '{workflow_type}'")
            self._steps[revision.step_id] = revision
            self._revisions[step_id] = revision.step_id
            self._revised[revision.step_id] = step_id

    @property
    def step_ids(self) -> List[str]:
        return list(self._order)

    @property
    def first_step(self) -> str:
        return self._order[0]

    def next_step(self, last_step_id: Optional[str]) -> str:
        """Step id following ``last_step_id``, or SESSION_COMPLETE.

        None means nothing has run yet.

        Raises:
            InvalidInteractionError: If the id is not in the ordered list.
        """
        if last_step_id is None:
            return self._order[0]
        try:
            index = self._order.index(last_step_id)
        except ValueError:
            raise InvalidInteractionError(self.workflow_type, last_step_id) from None
        if index + 1 >= len(self._order):
            return SESSION_COMPLETE
        return self._order[index + 1]

    def revision_for(self, step_id: str) -> Optional[str]:
        """Revision step paired with ``step_id``, if any."""
        return self._revisions.get(step_id)

    def revised_step(self, revision_step_id: str) -> Optional[str]:
        """Step a revision step loops back to, if it is a revision step."""
        return self._revised.get(revision_step_id)

    def step(self, step_id: str) -> Step:
        """Look up a step (revision steps included).

        Raises:
            InvalidInteractionError: If the id is unknown.
        """
        try:
            return self._steps[step_id]
        except KeyError:
            raise InvalidInteractionError(self.workflow_type, step_id) from None

    def __repr__(self) -> str:
        return f"Orchestrator({self.workflow_type!r}, steps={self._order!r})"
