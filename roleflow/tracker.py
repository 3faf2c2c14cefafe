"""Reconcile out-of-band status updates into workflow plans.

Every function here is a pure transformation: plans handed in are never
mutated, and malformed input is normalized and logged instead of raised.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .contracts import (
    PARAMETER_MODELS,
    STEP_PRIORITIES,
    STEP_STATUSES,
    STEP_TYPES,
    WORKFLOW_STATUSES,
    Progress,
    Timestamp,
    WorkflowPlan,
    WorkflowStep,
    WorkflowUpdate,
    utc_now,
)

logger = logging.getLogger(__name__)

UNKNOWN_WORKFLOW_ID = "unknown"

_DATETIME = TypeAdapter(Timestamp)


# ----------------------------------------------------------------------
# Field helpers for loosely shaped mappings


def _field(data: Mapping, name: str) -> Any:
    if name in data:
        return data[name]
    return data.get(to_camel(name))


def _text(data: Mapping, name: str, default: Optional[str]) -> Optional[str]:
    value = _field(data, name)
    return value if isinstance(value, str) and value else default


def _integer(data: Mapping, name: str, default: int) -> int:
    value = _field(data, name)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _choice(data: Mapping, name: str, allowed: tuple, default: str) -> str:
    value = _field(data, name)
    return value if value in allowed else default


def _timestamp(data: Mapping, name: str) -> Optional[datetime]:
    value = _field(data, name)
    if value is None:
        return None
    try:
        return _DATETIME.validate_python(value)
    except ValidationError:
        return None


def _parameters(step_type: str, raw: Any):
    model = PARAMETER_MODELS[step_type]
    if isinstance(raw, Mapping):
        data = {key: value for key, value in raw.items() if key != "type"}
        try:
            return model.model_validate(data)
        except ValidationError:
            logger.warning(f"Malformed {step_type} parameters, using defaults")
    return model()


# ----------------------------------------------------------------------
# Normalization


def normalize_step(raw: Any, index: int = 0) -> Optional[WorkflowStep]:
    """Coerce ``raw`` into a step, or ``None`` when it is not a mapping."""
    if isinstance(raw, WorkflowStep):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning(f"Dropping malformed step at position {index + 1}")
        return None
    try:
        return WorkflowStep.model_validate(dict(raw))
    except ValidationError as exc:
        logger.warning(f"Normalizing malformed step at position {index + 1}: {exc}")

    step_type = _choice(raw, "type", STEP_TYPES, "task")
    dependencies = _field(raw, "dependencies")
    error = _field(raw, "error")
    return WorkflowStep(
        id=_text(raw, "id", f"step-{index + 1}"),
        type=step_type,
        title=_text(raw, "title", "Untitled Step"),
        description=_text(raw, "description", ""),
        dependencies=[d for d in dependencies if isinstance(d, str)]
        if isinstance(dependencies, list)
        else [],
        estimated_duration=max(0, _integer(raw, "estimated_duration", 0)),
        priority=_choice(raw, "priority", STEP_PRIORITIES, "medium"),
        parameters=_parameters(step_type, _field(raw, "parameters")),
        status=_choice(raw, "status", STEP_STATUSES, "pending"),
        result=_field(raw, "result"),
        error=str(error) if error is not None else None,
        start_time=_timestamp(raw, "start_time"),
        end_time=_timestamp(raw, "end_time"),
    )


def _sanitize_plan(data: Mapping) -> WorkflowPlan:
    raw_steps = _field(data, "steps")
    steps: List[WorkflowStep] = []
    if isinstance(raw_steps, list):
        for index, raw in enumerate(raw_steps):
            step = normalize_step(raw, index)
            if step is not None:
                steps.append(step)
    else:
        logger.warning("Workflow steps is not a list, using no steps")

    return WorkflowPlan(
        id=_text(data, "id", UNKNOWN_WORKFLOW_ID),
        title=_text(data, "title", "Untitled Workflow"),
        description=_text(data, "description", ""),
        steps=steps,
        total_estimated_duration=_integer(
            data,
            "total_estimated_duration",
            sum(step.estimated_duration for step in steps),
        ),
        status=_choice(data, "status", WORKFLOW_STATUSES, "planning"),
        created_at=_timestamp(data, "created_at") or utc_now(),
        started_at=_timestamp(data, "started_at"),
        completed_at=_timestamp(data, "completed_at"),
        progress=Progress.from_steps(steps),
    )


def empty_plan() -> WorkflowPlan:
    return WorkflowPlan(
        id=UNKNOWN_WORKFLOW_ID,
        title="Unknown Workflow",
        description="Workflow data not available",
    )


def normalize_plan(obj: Any) -> WorkflowPlan:
    """Return a well-formed plan for any input.

    Accepts a :class:`WorkflowPlan`, a mapping with camelCase or snake_case
    keys, or a JSON document. Missing or invalid fields are replaced with
    defaults and progress is recomputed from the steps.
    """
    if isinstance(obj, WorkflowPlan):
        return obj
    if isinstance(obj, (str, bytes)):
        try:
            obj = json.loads(obj)
        except ValueError:
            logger.warning("Workflow document is not valid JSON, using an empty plan")
            return empty_plan()
    if not isinstance(obj, Mapping):
        logger.warning("Workflow is missing or malformed, using an empty plan")
        return empty_plan()

    try:
        plan = WorkflowPlan.model_validate(dict(obj))
    except ValidationError as exc:
        logger.warning(f"Normalizing malformed workflow: {exc.error_count()} errors")
        return _sanitize_plan(obj)

    progress = Progress.from_steps(plan.steps)
    if plan.progress != progress:
        plan = plan.model_copy(update={"progress": progress})
    return plan


def validate_workflow(obj: Any) -> WorkflowPlan:
    """Best-effort sanitize an external object into a plan; never raises."""
    return normalize_plan(obj)


# ----------------------------------------------------------------------
# Updates


def parse_webhook(data: Any) -> Optional[WorkflowUpdate]:
    """Convert an automation webhook body into a :class:`WorkflowUpdate`."""
    if not isinstance(data, Mapping):
        return None
    if not data.get("status") or not data.get("workflowId"):
        return None
    try:
        return WorkflowUpdate.model_validate(
            {key: value for key, value in data.items() if value is not None}
        )
    except ValidationError as exc:
        logger.error(f"Failed to parse automation webhook: {exc}")
        return None


def _coerce_update(raw: Any) -> Optional[WorkflowUpdate]:
    if isinstance(raw, WorkflowUpdate):
        return raw
    if isinstance(raw, Mapping):
        try:
            return WorkflowUpdate.model_validate(dict(raw))
        except ValidationError as exc:
            logger.warning(f"Skipping malformed workflow update: {exc}")
            return None
    logger.warning(f"Skipping workflow update of type {type(raw).__name__}")
    return None


def _step_changes(update: WorkflowUpdate) -> Dict[str, Any]:
    if update.status == "step_in_progress":
        return {"status": "in_progress", "start_time": update.timestamp}
    if update.status == "step_completed":
        return {"status": "completed", "end_time": update.timestamp, "result": update.data}
    if update.status == "step_failed":
        return {"status": "failed", "error": update.message, "end_time": update.timestamp}
    logger.debug(f"Ignoring unknown step status {update.status!r}")
    return {}


def _workflow_changes(update: WorkflowUpdate) -> Dict[str, Any]:
    if update.status == "workflow_executing":
        return {"status": "executing", "started_at": update.timestamp}
    if update.status == "workflow_completed":
        return {"status": "completed", "completed_at": update.timestamp}
    if update.status == "workflow_failed":
        return {"status": "failed", "completed_at": update.timestamp}
    logger.debug(f"Ignoring unknown workflow status {update.status!r}")
    return {}


def reconcile(plan: Any, updates: Any) -> WorkflowPlan:
    """Apply ``updates`` in order to a copy of ``plan``.

    Updated steps are replaced by copies and the steps list itself is
    rebuilt, so observers holding the original plan never see a partial
    change. Progress is recomputed from the resulting step statuses.
    """
    workflow = normalize_plan(plan)
    if not isinstance(updates, (list, tuple)):
        logger.warning("Updates is not a list, skipping update")
        return workflow

    steps = list(workflow.steps)
    positions = {step.id: index for index, step in enumerate(steps)}
    plan_changes: Dict[str, Any] = {}

    for raw in updates:
        update = _coerce_update(raw)
        if update is None:
            continue
        if update.step_id:
            index = positions.get(update.step_id)
            if index is None:
                logger.debug(f"Ignoring update for unknown step {update.step_id}")
                continue
            changes = _step_changes(update)
            if changes:
                steps[index] = steps[index].model_copy(update=changes)
        else:
            plan_changes.update(_workflow_changes(update))

    return workflow.model_copy(
        update={**plan_changes, "steps": steps, "progress": Progress.from_steps(steps)}
    )
