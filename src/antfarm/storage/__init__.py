"""Persistent storage for workflow runs and steps."""

from .steps import Run, RunStatus, Step, StepStatus, StepStore

__all__ = ["Run", "RunStatus", "Step", "StepStatus", "StepStore"]
