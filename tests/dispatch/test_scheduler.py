"""Test next-step selection."""

import pytest

from antfarm.dispatch.scheduler import StepScheduler
from antfarm.storage.steps import RunStatus, StepStatus


@pytest.fixture
def scheduler(store):
    return StepScheduler(store)


class TestNextPendingStep:
    """Test StepScheduler.next_pending_step."""

    def test_lowest_index_wins(self, store, scheduler):
        """Test steps with indexes {3, 1, 2} yield index 1."""
        store.create_run("run-1", RunStatus.RUNNING)
        store.add_step("run-1", "agent-c", "review", 3)
        store.add_step("run-1", "agent-a", "plan", 1)
        store.add_step("run-1", "agent-b", "build", 2)

        step = scheduler.next_pending_step("run-1")

        assert step.step_index == 1
        assert step.agent_id == "agent-a"
        assert step.step_id == "plan"

    @pytest.mark.parametrize("run_status", [RunStatus.FAILED, RunStatus.CANCELLED])
    def test_terminated_run_never_advances(self, store, scheduler, run_status):
        """Test failed or cancelled runs return no step despite pending steps."""
        store.create_run("run-1", run_status)
        store.add_step("run-1", "agent-a", "plan", 1)

        assert scheduler.next_pending_step("run-1") is None

    @pytest.mark.parametrize(
        "run_status",
        [RunStatus.PENDING, RunStatus.RUNNING, RunStatus.COMPLETED],
    )
    def test_live_run_statuses_advance(self, store, scheduler, run_status):
        """Test every other run status allows selection."""
        store.create_run("run-1", run_status)
        store.add_step("run-1", "agent-a", "plan", 1)

        assert scheduler.next_pending_step("run-1") is not None

    def test_no_pending_steps(self, store, scheduler):
        """Test a run whose steps are all past pending yields None."""
        store.create_run("run-1", RunStatus.RUNNING)
        store.add_step("run-1", "agent-a", "plan", 1, StepStatus.COMPLETED)
        store.add_step("run-1", "agent-b", "build", 2, StepStatus.RUNNING)
        store.add_step("run-1", "agent-c", "review", 3, StepStatus.FAILED)

        assert scheduler.next_pending_step("run-1") is None

    def test_unknown_run(self, scheduler):
        """Test an unknown run id yields None."""
        assert scheduler.next_pending_step("does-not-exist") is None

    def test_advances_as_steps_complete(self, store, scheduler):
        """Test selection follows status transitions."""
        store.create_run("run-1", RunStatus.RUNNING)
        plan = store.add_step("run-1", "agent-a", "plan", 1)
        store.add_step("run-1", "agent-b", "build", 2)

        assert scheduler.next_pending_step("run-1").id == plan.id

        store.set_step_status(plan.id, StepStatus.COMPLETED)

        assert scheduler.next_pending_step("run-1").step_id == "build"
