"""Roleflow: chat-driven workflow planning on top of Power Automate."""

from .analyzer import analyze, should_trigger_workflow
from .automation import AutomationClient, get_automation_client
from .chat import ChatService, SendMessageResult
from .config import RoleflowConfig, load_config
from .contracts import AutomationResult, WorkflowPlan, WorkflowStep, WorkflowUpdate
from .display import format_automation_result, format_workflow_display
from .execute import WorkflowExecutor, execute_workflow
from .persistence import get_repository
from .planner import plan_workflow
from .tracker import parse_webhook, reconcile, validate_workflow

__version__ = "0.1.0"
__all__ = [
    "AutomationClient",
    "AutomationResult",
    "ChatService",
    "RoleflowConfig",
    "SendMessageResult",
    "WorkflowExecutor",
    "WorkflowPlan",
    "WorkflowStep",
    "WorkflowUpdate",
    "analyze",
    "execute_workflow",
    "format_automation_result",
    "format_workflow_display",
    "get_automation_client",
    "get_repository",
    "load_config",
    "parse_webhook",
    "plan_workflow",
    "reconcile",
    "should_trigger_workflow",
    "validate_workflow",
]
