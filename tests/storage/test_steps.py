"""Test run and step storage."""

import sqlite3

import pytest

from antfarm.storage.steps import RunStatus, StepStatus, StepStore


class TestStepStore:
    """Test StepStore functionality."""

    def test_create_run(self, store):
        """Test creating a run persists it."""
        run = store.create_run("run-1")

        assert run.id == "run-1"
        assert run.status == RunStatus.PENDING
        assert store.get_run("run-1").status == RunStatus.PENDING

    def test_create_run_generates_id(self, store):
        """Test a run id is generated when none is given."""
        run = store.create_run()

        assert run.id
        assert store.get_run(run.id) is not None

    def test_get_unknown_run(self, store):
        """Test unknown runs return None."""
        assert store.get_run("nope") is None

    def test_list_steps_in_index_order(self, store):
        """Test steps come back ordered by step_index."""
        store.create_run("run-1")
        store.add_step("run-1", "agent-c", "review", 3)
        store.add_step("run-1", "agent-a", "plan", 1)
        store.add_step("run-1", "agent-b", "build", 2)

        steps = store.list_steps("run-1")

        assert [s.step_index for s in steps] == [1, 2, 3]
        assert [s.step_id for s in steps] == ["plan", "build", "review"]

    def test_duplicate_step_index_rejected(self, store):
        """Test step_index is unique within a run."""
        store.create_run("run-1")
        store.add_step("run-1", "agent-a", "plan", 1)

        with pytest.raises(sqlite3.IntegrityError):
            store.add_step("run-1", "agent-b", "also-plan", 1)

    def test_same_index_in_different_runs(self, store):
        """Test the uniqueness of step_index is scoped to a run."""
        store.create_run("run-1")
        store.create_run("run-2")
        store.add_step("run-1", "agent-a", "plan", 1)
        store.add_step("run-2", "agent-a", "plan", 1)

        assert len(store.list_steps("run-2")) == 1

    def test_status_updates_persist(self, store):
        """Test run and step status updates."""
        store.create_run("run-1")
        step = store.add_step("run-1", "agent-a", "plan", 1)

        store.set_run_status("run-1", RunStatus.RUNNING)
        store.set_step_status(step.id, StepStatus.COMPLETED)

        assert store.get_run("run-1").status == RunStatus.RUNNING
        assert store.list_steps("run-1")[0].status == StepStatus.COMPLETED

    def test_list_runs(self, store):
        """Test all runs are listed."""
        store.create_run("run-1")
        store.create_run("run-2")

        assert {run.id for run in store.list_runs()} == {"run-1", "run-2"}

    def test_database_survives_reopen(self, config):
        """Test data persists across store instances."""
        StepStore(config.db_path).create_run("run-1")

        assert StepStore(config.db_path).get_run("run-1") is not None


class TestNextPendingStepQuery:
    """Test the query the scheduler relies on."""

    def test_returns_lowest_pending_index(self, store):
        """Test the lowest pending step_index is chosen."""
        store.create_run("run-1", RunStatus.RUNNING)
        first = store.add_step("run-1", "agent-a", "plan", 1, StepStatus.COMPLETED)
        store.add_step("run-1", "agent-c", "review", 3)
        store.add_step("run-1", "agent-b", "build", 2)

        step = store.next_pending_step("run-1")

        assert step is not None
        assert step.id != first.id
        assert step.step_index == 2
        assert step.agent_id == "agent-b"

    def test_ignores_other_runs(self, store):
        """Test steps from other runs are never selected."""
        store.create_run("run-1")
        store.create_run("run-2")
        store.add_step("run-2", "agent-x", "other", 0)
        store.add_step("run-1", "agent-a", "plan", 5)

        assert store.next_pending_step("run-1").agent_id == "agent-a"


class TestStatusesFromTheEngine:
    """Statuses written by the workflow engine that this package does not enumerate."""

    def test_unknown_step_status_is_kept_as_text(self, store):
        """Test a step status outside the enum is listed and never picked."""
        store.create_run("run-1", RunStatus.RUNNING)
        step = store.add_step("run-1", "agent-a", "plan", 1)
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE steps SET status = 'waiting' WHERE id = ?", (step.id,))

        steps = store.list_steps("run-1")

        assert steps[0].status == "waiting"
        assert steps[0].status_value == "waiting"
        assert store.next_pending_step("run-1") is None

    def test_unknown_run_status_is_kept_as_text(self, store):
        """Test a run status outside the enum survives reads."""
        store.create_run("run-1")
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE runs SET status = 'paused' WHERE id = 'run-1'")

        run = store.get_run("run-1")

        assert run.status == "paused"
        assert [r.status_value for r in store.list_runs()] == ["paused"]

    def test_known_statuses_stay_enums(self, store):
        """Test known statuses still map to their members."""
        store.create_run("run-1", RunStatus.RUNNING)
        store.add_step("run-1", "agent-a", "plan", 1)

        assert store.get_run("run-1").status is RunStatus.RUNNING
        assert store.list_steps("run-1")[0].status is StepStatus.PENDING
