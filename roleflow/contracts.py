"""Core data contracts for roleflow workflows."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

StepType = Literal["meeting", "email", "post", "reminder", "task", "analysis"]
StepStatus = Literal["pending", "in_progress", "completed", "failed", "skipped"]
StepPriority = Literal["high", "medium", "low"]
WorkflowStatus = Literal["planning", "executing", "completed", "failed", "paused"]

STEP_TYPES: tuple[str, ...] = StepType.__args__
STEP_STATUSES: tuple[str, ...] = StepStatus.__args__
STEP_PRIORITIES: tuple[str, ...] = StepPriority.__args__
WORKFLOW_STATUSES: tuple[str, ...] = WorkflowStatus.__args__


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so all plan times compare safely."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Timestamp = Annotated[datetime, AfterValidator(as_utc)]


def percentage_of(completed: int, total: int) -> int:
    """Return ``completed / total`` as a whole percentage, rounding half up."""
    if total <= 0:
        return 0
    return int(math.floor(100 * completed / total + 0.5))


class ContractModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either casing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ----------------------------------------------------------------------
# Step parameters, one variant per step type


class MeetingParameters(ContractModel):
    type: Literal["meeting"] = "meeting"
    time: str = "09:00"
    title: str = ""
    description: str = ""
    attendees: List[str] = Field(default_factory=list)


class EmailParameters(ContractModel):
    type: Literal["email"] = "email"
    recipients: List[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""
    include_calendar_invite: bool = False


class PostParameters(ContractModel):
    type: Literal["post"] = "post"
    platform: str = "Microsoft Teams"
    message: str = ""
    scheduled_time: Optional[str] = None


class ReminderParameters(ContractModel):
    type: Literal["reminder"] = "reminder"
    reminder_time: str = "1 hour before"
    message: str = ""


class TaskParameters(ContractModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["task"] = "task"


class AnalysisParameters(ContractModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["analysis"] = "analysis"


StepParameters = Annotated[
    Union[
        MeetingParameters,
        EmailParameters,
        PostParameters,
        ReminderParameters,
        TaskParameters,
        AnalysisParameters,
    ],
    Field(discriminator="type"),
]

PARAMETER_MODELS: Dict[str, type[ContractModel]] = {
    "meeting": MeetingParameters,
    "email": EmailParameters,
    "post": PostParameters,
    "reminder": ReminderParameters,
    "task": TaskParameters,
    "analysis": AnalysisParameters,
}


# ----------------------------------------------------------------------
# Workflow aggregate


class WorkflowStep(ContractModel):
    """One unit of automation work within a plan."""

    id: str = Field(default_factory=new_id)
    type: StepType
    title: str
    description: str = ""
    dependencies: List[str] = Field(default_factory=list)
    estimated_duration: int = Field(default=0, ge=0)
    priority: StepPriority = "medium"
    parameters: StepParameters
    status: StepStatus = "pending"
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[Timestamp] = None
    end_time: Optional[Timestamp] = None

    @model_validator(mode="before")
    @classmethod
    def _tag_parameters(cls, data: Any) -> Any:
        # Parameter bags arriving without a tag inherit the step type.
        if not isinstance(data, dict):
            return data
        step_type = data.get("type")
        params = data.get("parameters")
        if step_type in PARAMETER_MODELS:
            if params is None:
                data = {**data, "parameters": {"type": step_type}}
            elif isinstance(params, dict) and "type" not in params:
                data = {**data, "parameters": {**params, "type": step_type}}
        return data

    @model_validator(mode="after")
    def _check_parameters(self) -> "WorkflowStep":
        if self.parameters.type != self.type:
            raise ValueError(
                f"parameters for {self.parameters.type!r} do not match step type {self.type!r}"
            )
        return self


class Progress(ContractModel):
    completed: int = 0
    total: int = 0
    percentage: int = 0

    @classmethod
    def from_counts(cls, completed: int, total: int) -> "Progress":
        return cls(
            completed=completed, total=total, percentage=percentage_of(completed, total)
        )

    @classmethod
    def from_steps(cls, steps: List[WorkflowStep]) -> "Progress":
        completed = sum(1 for step in steps if step.status == "completed")
        return cls.from_counts(completed, len(steps))


class WorkflowPlan(ContractModel):
    """The aggregate task graph for one user request."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    description: str = ""
    steps: List[WorkflowStep] = Field(default_factory=list)
    total_estimated_duration: int = 0
    status: WorkflowStatus = "planning"
    created_at: Timestamp = Field(default_factory=utc_now)
    started_at: Optional[Timestamp] = None
    completed_at: Optional[Timestamp] = None
    progress: Progress = Field(default_factory=Progress)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def step_number(self, step_id: str) -> int:
        """Return the 1-based position of ``step_id`` or 0 when unknown."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index + 1
        return 0

    def is_empty(self) -> bool:
        return not self.steps

    def to_json(self) -> str:
        """Serialize plan to JSON."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "WorkflowPlan":
        """Deserialize plan from JSON."""
        return cls.model_validate_json(data)


# ----------------------------------------------------------------------
# Automation backend


class AutomationTask(BaseModel):
    """A task result entry as returned by the automation backend."""

    task_type: str = "unknown"
    action_details: Any = None
    result: Any = None
    status: str = ""


class AutomationResult(ContractModel):
    """Outcome of one automation trigger or probe."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    retry_after: Optional[int] = None
    tracking_id: Optional[str] = None
    is_temporary: Optional[bool] = None
    is_processing: Optional[bool] = None
    tasks: Optional[List[AutomationTask]] = None
    flow_summary: Optional[str] = None


class WorkflowUpdate(ContractModel):
    """Out-of-band status update for a plan or one of its steps."""

    workflow_id: Optional[str] = None
    step_id: Optional[str] = None
    status: str
    progress: Optional[int] = None
    message: Optional[str] = None
    timestamp: Timestamp = Field(default_factory=utc_now)
    data: Any = None
