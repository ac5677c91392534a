"""Tests for the context_components_design fan-out workflow.

The parent spawns one component_design child per child component, polls
them until they complete, spawns a single review child, then finalizes.
"""

import pytest

from specflow.runtime.environments import LocalEnvironment
from specflow.runtime.errors import StepError
from specflow.runtime.types import ExecutionMode, SessionStatus
from tests.support import ok, pending_step_id, step

CONTEXT_DESIGN_PATH = "docs/design/my_app/accounts.md"
REVIEW_PATH = "docs/design/my_app/accounts/design_review.md"
CHILD_DESIGN_PATHS = {
    "Registration": "docs/design/my_app/accounts/registration.md",
    "User": "docs/design/my_app/accounts/user.md",
    "UserRepository": "docs/design/my_app/accounts/user_repository.md",
}


@pytest.fixture
def parent(engine, scope, child_components):
    created = engine.create_session(
        scope, {"type": "context_components_design", "component_id": "comp-accounts", "agent": "claude_code"}
    )
    step(engine, scope, created.id)  # initialize
    return created


def _spawn(engine, scope, parent_id):
    issued = engine.next_command(scope, parent_id)
    assert pending_step_id(issued) == "spawn_component_design_sessions"
    return issued


def _children(engine, scope, parent_id, workflow_type="component_design"):
    return engine.list_sessions(scope, parent_session_id=parent_id, type=workflow_type)


def _finish(engine, scope, children, status="complete", **extra):
    for child in children:
        attrs = {"status": status}
        attrs.update(extra)
        engine.update_session(scope, child.id, attrs)


def _write(tmp_path, paths):
    env = LocalEnvironment(root=tmp_path)
    for path in paths:
        env.write_file(path, "# design\n")


class TestSpawnComponentDesignSessions:
    """Child creation."""

    def test_spawns_one_child_per_component(self, engine, scope, parent):
        issued = _spawn(engine, scope, parent.id)
        command = issued.pending_interaction.command

        children = _children(engine, scope, parent.id)
        assert command.is_spawn
        assert sorted(command.metadata["child_session_ids"]) == sorted(c.id for c in children)
        assert sorted(c.component_id for c in children) == ["comp-registration", "comp-user", "comp-userrepository"]
        for child in children:
            assert child.execution_mode == ExecutionMode.AGENTIC
            assert child.agent == "claude_code"
            assert child.environment == "local"
            assert child.account_id == "acct-1"
            assert child.project_id == "proj-1"
            assert child.state == {
                "parent_context_name": "Accounts",
                "context_design_path": CONTEXT_DESIGN_PATH,
            }

    def test_reissue_reuses_children(self, engine, scope, parent):
        first = _spawn(engine, scope, parent.id)
        engine.handle_result(scope, parent.id, first.pending_interaction.id, {"status": "ok"})

        second = _spawn(engine, scope, parent.id)

        assert len(_children(engine, scope, parent.id)) == 3
        assert sorted(second.pending_interaction.command.metadata["child_session_ids"]) == sorted(
            first.pending_interaction.command.metadata["child_session_ids"]
        )

    def test_context_without_children(self, engine, scope):
        created = engine.create_session(scope, {"type": "context_components_design", "component_id": "comp-accounts"})
        step(engine, scope, created.id)

        with pytest.raises(StepError, match="No child components found for context"):
            engine.next_command(scope, created.id)

        assert engine.get_session(scope, created.id).status == SessionStatus.ERROR

    def test_missing_context_component(self, engine, scope):
        created = engine.create_session(scope, {"type": "context_components_design", "component_id": "comp-gone"})

        with pytest.raises(StepError, match="Component not found"):
            engine.next_command(scope, created.id)


class TestPolling:
    """The spawn step reports on its children when a result comes in."""

    def test_running_children_do_not_count_as_retries(self, engine, scope, parent):
        for _ in range(6):
            issued = _spawn(engine, scope, parent.id)
            polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

            result = polled.interactions[-1].result
            assert result.is_error
            assert result.error_message.startswith("Child sessions still running: ")
            for name in ("Registration", "User", "UserRepository"):
                assert name in result.error_message
            assert result.data["awaiting_children"] is True
            assert "spawn_component_design_sessions" not in polled.state["retry_counts"]

        assert polled.status == SessionStatus.ACTIVE
        assert len(polled.state["child_session_ids"]) == 3

    def test_partial_completion_still_waits(self, engine, scope, parent, tmp_path):
        issued = _spawn(engine, scope, parent.id)
        children = _children(engine, scope, parent.id)
        user = next(c for c in children if c.component_id == "comp-user")
        _finish(engine, scope, [c for c in children if c.id != user.id])

        polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.error_message == "Child sessions still running: User"

    def test_failed_child_reported_with_reason(self, engine, scope, parent):
        issued = _spawn(engine, scope, parent.id)
        children = _children(engine, scope, parent.id)
        user = next(c for c in children if c.component_id == "comp-user")
        _finish(engine, scope, [c for c in children if c.id != user.id])
        _finish(engine, scope, [user], status="error", error_message="validation never converged")

        polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.error_message == (
            "Child sessions failed: User (reason: validation never converged)"
        )
        assert polled.state["retry_counts"] == {"spawn_component_design_sessions": 1}

    def test_cancelled_child_reported(self, engine, scope, parent):
        issued = _spawn(engine, scope, parent.id)
        children = _children(engine, scope, parent.id)
        registration = next(c for c in children if c.component_id == "comp-registration")
        _finish(engine, scope, [c for c in children if c.id != registration.id])
        engine.cancel_session(scope, registration.id)

        polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.error_message == "Child sessions cancelled: Registration"

    def test_completed_children_must_produce_designs(self, engine, scope, parent, tmp_path):
        issued = _spawn(engine, scope, parent.id)
        _finish(engine, scope, _children(engine, scope, parent.id))
        _write(tmp_path, [CHILD_DESIGN_PATHS["Registration"], CHILD_DESIGN_PATHS["UserRepository"]])

        polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.error_message == (
            f"Missing files: User ({CHILD_DESIGN_PATHS['User']})"
        )

    def test_all_children_complete_with_files(self, engine, scope, parent, tmp_path):
        issued = _spawn(engine, scope, parent.id)
        _finish(engine, scope, _children(engine, scope, parent.id))
        _write(tmp_path, CHILD_DESIGN_PATHS.values())

        polled = engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.is_ok
        assert pending_step_id(engine.next_command(scope, parent.id)) == "spawn_review_session"

    def test_vscode_skips_file_verification(self, engine, scope, child_components):
        created = engine.create_session(
            scope,
            {"type": "context_components_design", "component_id": "comp-accounts", "environment": "vscode"},
        )
        step(engine, scope, created.id)
        issued = _spawn(engine, scope, created.id)
        children = _children(engine, scope, created.id)
        assert {c.environment for c in children} == {"vscode"}
        _finish(engine, scope, children)

        polled = engine.handle_result(scope, created.id, issued.pending_interaction.id, {"status": "ok"})

        assert polled.interactions[-1].result.is_ok

    def test_runner_status_is_ignored(self, engine, scope, parent, tmp_path):
        issued = _spawn(engine, scope, parent.id)
        _finish(engine, scope, _children(engine, scope, parent.id))
        _write(tmp_path, CHILD_DESIGN_PATHS.values())

        polled = engine.handle_result(
            scope, parent.id, issued.pending_interaction.id, {"status": "error", "error_message": "runner hiccup"}
        )

        assert polled.interactions[-1].result.is_ok
        assert polled.interactions[-1].result.error_message is None


class TestReviewAndFinalize:
    """After the designs are in, one review child runs, then the PR is opened."""

    @pytest.fixture
    def designs_done(self, engine, scope, parent, tmp_path):
        issued = _spawn(engine, scope, parent.id)
        _finish(engine, scope, _children(engine, scope, parent.id))
        _write(tmp_path, CHILD_DESIGN_PATHS.values())
        engine.handle_result(scope, parent.id, issued.pending_interaction.id, {"status": "ok"})
        return parent

    def test_single_review_child(self, engine, scope, designs_done):
        issued = engine.next_command(scope, designs_done.id)

        reviews = _children(engine, scope, designs_done.id, "component_design_review")
        assert len(reviews) == 1
        review = reviews[0]
        assert issued.pending_interaction.command.metadata["child_session_ids"] == [review.id]
        assert review.component_id == "comp-accounts"
        assert review.state["review_file_path"] == REVIEW_PATH
        assert review.state["context_design_path"] == CONTEXT_DESIGN_PATH

    def test_review_child_command(self, engine, scope, designs_done):
        engine.next_command(scope, designs_done.id)
        review = _children(engine, scope, designs_done.id, "component_design_review")[0]

        command = engine.next_command(scope, review.id).pending_interaction.command

        assert command.step_id == "execute_review"
        assert command.args[0] == "-p"
        assert command.metadata["agent_type"] == "context_reviewer"
        assert f"Write a summary of the review to {REVIEW_PATH}" in command.pipe
        assert CHILD_DESIGN_PATHS["User"] in command.pipe

    def test_finalize_commits_designs_and_review(self, engine, scope, designs_done, tmp_path):
        issued = engine.next_command(scope, designs_done.id)
        _finish(engine, scope, _children(engine, scope, designs_done.id, "component_design_review"))
        _write(tmp_path, [REVIEW_PATH])
        engine.handle_result(scope, designs_done.id, issued.pending_interaction.id, {"status": "ok"})

        finalize = engine.next_command(scope, designs_done.id)
        command = finalize.pending_interaction.command.command

        assert pending_step_id(finalize) == "finalize"
        assert command.startswith(
            "git -C docs add design/my_app/accounts/registration.md design/my_app/accounts/user.md"
            " design/my_app/accounts/user_repository.md design/my_app/accounts/design_review.md"
            " && git -C docs commit -m 'Add component designs for Accounts context'"
            " && git -C docs push -u origin docs-context-components-design-session-for-accounts"
        )

        done = engine.handle_result(
            scope, designs_done.id, finalize.pending_interaction.id, ok("https://github.com/acme/docs/pull/8")
        )
        assert done.status == SessionStatus.COMPLETE
        assert done.state["pr_url"] == "https://github.com/acme/docs/pull/8"


class TestComponentDesignChild:
    """The spawned component_design sessions run their own workflow."""

    def test_child_prompt_points_at_context_design(self, engine, scope, parent):
        _spawn(engine, scope, parent.id)
        child = next(c for c in _children(engine, scope, parent.id) if c.component_id == "comp-user")

        command = engine.next_command(scope, child.id).pending_interaction.command

        assert command.step_id == "generate_component_design"
        assert command.args[0] == "-p"
        assert f"Read its design at {CONTEXT_DESIGN_PATH}" in command.pipe
        assert f"Write the document to {CHILD_DESIGN_PATHS['User']}" in command.pipe
        assert command.metadata["agent_type"] == "component_designer"
