"""Next-step selection for workflow runs."""

import logging

from antfarm.storage.steps import Step, StepStore

logger = logging.getLogger(__name__)


class StepScheduler:
    """Selects the next runnable step of a single run.

    A step is runnable when it is pending and its run has neither failed nor
    been cancelled. Among runnable steps the lowest ``step_index`` wins.
    """

    def __init__(self, store: StepStore):
        self.store = store

    def next_pending_step(self, run_id: str) -> Step | None:
        """Return the next runnable step of ``run_id``, or None."""
        step = self.store.next_pending_step(run_id)
        if step is None:
            logger.debug("No runnable step for run %s", run_id)
        return step
