"""Workflow execution engine for roleflow plans."""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Set,
    Tuple,
)

from .automation import AutomationClient
from .config import load_config
from .contracts import AutomationResult, Progress, WorkflowPlan, WorkflowStep, utc_now
from .exceptions import (
    DependencyCycleError,
    StepExecutionError,
    WorkflowValidationError,
)
from .tracker import normalize_plan

logger = logging.getLogger(__name__)

StepCallback = Callable[[WorkflowPlan], Awaitable[None]]


class StepDispatcher(Protocol):
    """Anything able to trigger an automation run for a description."""

    async def trigger(self, description: str, is_test: bool = False) -> AutomationResult:
        ...


def step_instruction(step: WorkflowStep) -> str:
    """Build the automation instruction for ``step`` from its parameters."""
    params = step.parameters
    if params.type == "meeting":
        return f"สร้างการประชุม: {params.title} เวลา {params.time}"
    if params.type == "email":
        return f"ส่ง email ถึง {', '.join(params.recipients)} เรื่อง: {params.subject}"
    if params.type == "post":
        return f"โพสข้อความใน {params.platform}: {params.message}"
    if params.type == "reminder":
        return f"ตั้งการแจ้งเตือน: {params.message}"
    return f"{step.title}: {step.description}"


def execution_order(steps: List[WorkflowStep]) -> List[str]:
    """Return step ids with every dependency ahead of its dependents.

    Steps are visited in their original order and dependencies are visited
    first, so independent steps keep creation order. Ids that name no step
    are ignored.

    Raises:
        DependencyCycleError: If the dependency graph contains a cycle.
    """
    by_id: Dict[str, WorkflowStep] = {}
    for step in steps:
        by_id.setdefault(step.id, step)

    order: List[str] = []
    visited: Set[str] = set()
    # Current DFS path; each frame keeps its position in the dependency list.
    path: List[str] = []
    on_path: Set[str] = set()
    stack: List[Tuple[str, Iterator[str]]] = []

    def enter(step_id: str) -> None:
        path.append(step_id)
        on_path.add(step_id)
        stack.append((step_id, iter(by_id[step_id].dependencies)))

    for root in steps:
        if root.id in visited:
            continue
        enter(root.id)
        while stack:
            step_id, pending = stack[-1]
            for dep_id in pending:
                if dep_id in visited or dep_id not in by_id:
                    continue
                if dep_id in on_path:
                    raise DependencyCycleError(path[path.index(dep_id):] + [dep_id])
                enter(dep_id)
                break
            else:
                stack.pop()
                path.pop()
                on_path.discard(step_id)
                visited.add(step_id)
                order.append(step_id)
    return order


def validate_dependencies(steps: List[WorkflowStep]) -> List[str]:
    """Check that ``steps`` form an executable graph and return their order."""
    seen: Set[str] = set()
    for step in steps:
        if step.id in seen:
            raise WorkflowValidationError(f"Duplicate step id: {step.id}")
        seen.add(step.id)
    return execution_order(steps)


class WorkflowExecutor:
    """Runs plan steps one at a time against an automation dispatcher."""

    def __init__(
        self,
        client: StepDispatcher,
        step_delay: float = 0.5,
        on_step: Optional[StepCallback] = None,
    ) -> None:
        self._client = client
        self.step_delay = step_delay
        self._on_step = on_step

    async def _notify(self, workflow: WorkflowPlan) -> None:
        if self._on_step is None:
            return
        try:
            await self._on_step(workflow)
        except Exception as e:
            logger.warning(f"Step callback failed for workflow {workflow.id}: {e}")

    async def run_step(self, step: WorkflowStep) -> Any:
        """Execute a single step and return its result.

        Raises:
            StepExecutionError: If the automation call reports failure.
        """
        if step.type == "analysis":
            return {"analysis": "completed", "insights": ["Task completed successfully"]}

        result = await self._client.trigger(step_instruction(step), False)
        if not result.success:
            raise StepExecutionError(result.error or "Automation call failed")
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def execute(self, plan: WorkflowPlan) -> WorkflowPlan:
        """Execute ``plan`` and return a new plan describing the outcome.

        The input plan is left untouched. Step failures are recorded on the
        returned plan; nothing is raised for them.
        """
        workflow = plan.model_copy(deep=True)
        logger.info(f"Starting workflow execution: {workflow.title}")
        workflow.status = "executing"
        workflow.started_at = utc_now()
        workflow.progress = Progress.from_steps(workflow.steps)

        try:
            order = validate_dependencies(workflow.steps)
        except WorkflowValidationError as e:
            logger.error(f"Rejected workflow {workflow.id}: {e}")
            workflow.status = "failed"
            workflow.completed_at = utc_now()
            return workflow

        total = len(workflow.steps)
        for position, step_id in enumerate(order):
            step = workflow.get_step(step_id)
            if step is None or step.status != "pending":
                continue

            logger.info(f"Executing step: {step.title}")
            step.status = "in_progress"
            step.start_time = utc_now()
            await self._notify(workflow)

            try:
                result = await self.run_step(step)
            except Exception as e:
                step.status = "failed"
                step.error = str(e) or e.__class__.__name__
                step.end_time = utc_now()
                logger.error(f"Step failed: {step.title}: {step.error}")

                if step.priority == "high":
                    workflow.status = "failed"
                    await self._notify(workflow)
                    break
                step.status = "skipped"
                logger.info(f"Skipping non-critical step: {step.title}")
            else:
                step.status = "completed"
                step.result = result
                step.end_time = utc_now()
                workflow.progress = Progress.from_counts(
                    workflow.progress.completed + 1, total
                )
                logger.info(f"Step completed: {step.title}")

            await self._notify(workflow)
            if position < len(order) - 1 and self.step_delay > 0:
                await asyncio.sleep(self.step_delay)

        if workflow.status == "executing":
            workflow.status = "completed"
        workflow.completed_at = utc_now()
        await self._notify(workflow)
        logger.info(f"Workflow {workflow.status}: {workflow.title}")
        return workflow


async def execute_workflow(
    plan: Any,
    client: Optional[StepDispatcher] = None,
    step_delay: Optional[float] = None,
) -> WorkflowPlan:
    """Execute ``plan`` with a client built from configuration when omitted."""
    workflow = normalize_plan(plan)
    config = load_config()
    delay = config.workflow.step_delay if step_delay is None else step_delay

    if client is not None:
        return await WorkflowExecutor(client, step_delay=delay).execute(workflow)

    async with AutomationClient(config.automation) as owned_client:
        return await WorkflowExecutor(owned_client, step_delay=delay).execute(workflow)
