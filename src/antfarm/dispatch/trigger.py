"""Wake the next agent once a workflow step completes."""

import asyncio
import logging
import threading

from antfarm.config import AntfarmConfig
from antfarm.dispatch.scheduler import StepScheduler
from antfarm.gateway.client import GatewayClient
from antfarm.storage.steps import Step, StepStore

logger = logging.getLogger(__name__)


class WakeTrigger:
    """Fire-and-forget notification of the agent owning a run's next step.

    ``wake_next_agent`` returns as soon as the wake is scheduled. Inside a
    running event loop the wake becomes a task on that loop; from plain
    synchronous code it runs on a short-lived background thread. Either way
    its outcome only reaches the log.
    """

    def __init__(self, scheduler: StepScheduler, gateway: GatewayClient):
        self.scheduler = scheduler
        self.gateway = gateway

        # Keep references so in-flight wakes are not garbage collected
        self._pending_tasks: set[asyncio.Task] = set()
        self._pending_threads: set[threading.Thread] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AntfarmConfig) -> "WakeTrigger":
        return cls(
            StepScheduler(StepStore(config.db_path)),
            GatewayClient.from_config(config),
        )

    def wake_next_agent(self, run_id: str) -> None:
        """Notify the agent of the next pending step in ``run_id``, if any."""
        try:
            step = self.scheduler.next_pending_step(run_id)
        except Exception:
            logger.exception("Could not look up the next step for run %s", run_id)
            return

        if step is None:
            logger.info("No pending step found for run %s", run_id)
            return

        logger.info(
            "Waking agent %s for step %s in run %s",
            step.agent_id,
            step.step_id,
            run_id,
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._wake(step))
            with self._lock:
                self._pending_tasks.add(task)
            task.add_done_callback(self._on_task_done)
        else:
            thread = threading.Thread(
                target=self._wake_in_thread,
                args=(step,),
                name=f"wake-{step.agent_id}",
                daemon=True,
            )
            with self._lock:
                self._pending_threads.add(thread)
            thread.start()

    async def _wake(self, step: Step) -> bool:
        try:
            woke = await self.gateway.wake(step.agent_id)
        except Exception:
            logger.exception(
                "Wake for agent %s (run %s) raised",
                step.agent_id,
                step.run_id,
            )
            return False

        if woke:
            logger.info("Woke agent %s for step %s", step.agent_id, step.step_id)
        else:
            logger.warning(
                "Failed to wake agent %s for step %s",
                step.agent_id,
                step.step_id,
            )
        return woke

    def _wake_in_thread(self, step: Step) -> None:
        try:
            asyncio.run(self._wake(step))
        finally:
            with self._lock:
                self._pending_threads.discard(threading.current_thread())

    def _on_task_done(self, task: asyncio.Task) -> None:
        with self._lock:
            self._pending_tasks.discard(task)
        if task.cancelled():
            logger.debug("Wake task cancelled")

    def wait_pending(self, timeout: float | None = None) -> None:
        """Block until wakes running on background threads finish."""
        with self._lock:
            threads = list(self._pending_threads)
        for thread in threads:
            thread.join(timeout)

    async def drain(self) -> None:
        """Await wakes scheduled on the current event loop."""
        with self._lock:
            tasks = list(self._pending_tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
