"""Exceptions raised inside roleflow and caught at its public boundaries."""

from __future__ import annotations

from typing import List


class RoleflowError(Exception):
    """Base class for roleflow errors."""


class WorkflowValidationError(RoleflowError):
    """A plan cannot be executed as given."""


class DependencyCycleError(WorkflowValidationError):
    """The step dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class StepExecutionError(RoleflowError):
    """A single workflow step did not succeed."""
