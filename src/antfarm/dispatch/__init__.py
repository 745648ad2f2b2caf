"""Step dispatch: pick the next step of a run and wake its agent."""

from .scheduler import StepScheduler
from .trigger import WakeTrigger

__all__ = ["StepScheduler", "WakeTrigger"]
