"""Chat orchestration: persist turns, plan and run workflows, reply."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .analyzer import should_trigger_workflow
from .automation import AutomationClient
from .config import WorkflowSettings
from .contracts import AutomationResult, ContractModel, WorkflowPlan
from .display import format_workflow_display
from .execute import WorkflowExecutor
from .persistence import Conversation, ConversationRepository, Message
from .planner import plan_workflow
from .responder import ConversationalResponder

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "ขอโทษครับ เกิดข้อผิดพลาดในการประมวลผลคำขอของคุณ กรุณาลองใหม่อีกครั้ง"


class SendMessageResult(ContractModel):
    """Everything the UI needs after one user turn."""

    user_message: Message
    assistant_message: Message
    workflow_triggered: bool = False
    workflow_success: bool = False
    workflow_error: Optional[str] = None
    status_code: Optional[int] = None
    tracking_id: Optional[str] = None
    is_temporary: bool = False
    is_processing: bool = False
    workflow_plan: Optional[WorkflowPlan] = None
    workflow_display: Optional[str] = None


class ChatService:
    """Coordinates the repository, automation client and responder."""

    def __init__(
        self,
        repository: ConversationRepository,
        client: AutomationClient,
        responder: Optional[ConversationalResponder] = None,
        settings: Optional[WorkflowSettings] = None,
    ) -> None:
        self.repository = repository
        self.client = client
        self.responder = responder or ConversationalResponder()
        self.settings = settings or WorkflowSettings()

    def _executor(self) -> WorkflowExecutor:
        return WorkflowExecutor(self.client, step_delay=self.settings.step_delay)

    async def _run_workflow(self, content: str) -> WorkflowPlan:
        plan = plan_workflow(content)
        logger.info(f"Workflow planned with {len(plan.steps)} steps")
        return await self._executor().execute(plan)

    async def send_message(
        self, conversation_id: str, content: str, user_id: str
    ) -> SendMessageResult:
        """Handle one user turn end to end.

        Unexpected failures are reported through the returned result and a
        saved apology message rather than raised.
        """
        logger.info(f"Handling message for conversation {conversation_id}")
        user_message: Optional[Message] = None
        try:
            user_message = await self.repository.save_message(
                conversation_id, "user", content
            )

            triggered = should_trigger_workflow(content)
            workflow: Optional[WorkflowPlan] = None
            workflow_display = ""
            if triggered:
                try:
                    workflow = await self._run_workflow(content)
                    workflow_display = format_workflow_display(workflow)
                    logger.info(f"Workflow {workflow.status}: {workflow.title}")
                except Exception as e:
                    logger.error(f"Workflow execution failed: {e}")
                    workflow_display = (
                        "❌ **Workflow Error**\n\n"
                        f"เกิดข้อผิดพลาดในการดำเนินการ: {e}"
                    )

            history = await self.repository.list_messages(conversation_id)
            reply = await self.responder.respond(content, history, workflow)
            if workflow_display:
                reply += "\n\n" + workflow_display

            assistant_message = await self.repository.save_message(
                conversation_id, "assistant", reply
            )
        except Exception as e:
            logger.error(f"Error handling message: {e}")
            return await self._failure_result(conversation_id, content, user_message, e)

        succeeded = workflow is not None and workflow.status == "completed"
        return SendMessageResult(
            user_message=user_message,
            assistant_message=assistant_message,
            workflow_triggered=triggered,
            workflow_success=succeeded,
            workflow_error=(
                "Workflow execution failed"
                if workflow is not None and workflow.status == "failed"
                else None
            ),
            status_code=(200 if succeeded else 500) if workflow is not None else None,
            tracking_id=workflow.id if workflow is not None else None,
            workflow_plan=workflow,
            workflow_display=workflow_display or None,
        )

    async def _failure_result(
        self,
        conversation_id: str,
        content: str,
        user_message: Optional[Message],
        error: Exception,
    ) -> SendMessageResult:
        try:
            assistant_message = await self.repository.save_message(
                conversation_id, "assistant", APOLOGY_MESSAGE
            )
        except Exception as e:
            logger.error(f"Could not save apology message: {e}")
            assistant_message = Message(
                conversation_id=conversation_id, role="assistant", content=APOLOGY_MESSAGE
            )
        return SendMessageResult(
            user_message=user_message
            or Message(conversation_id=conversation_id, role="user", content=content),
            assistant_message=assistant_message,
            workflow_error=str(error) or error.__class__.__name__,
            is_temporary=True,
        )

    async def create_conversation(
        self, user_id: str, title: Optional[str] = None
    ) -> Conversation:
        title = title or f"New Chat {date.today().isoformat()}"
        return await self.repository.create_conversation(user_id, title)

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        return await self.repository.list_conversations(user_id)

    async def list_messages(self, conversation_id: str) -> List[Message]:
        return await self.repository.list_messages(conversation_id)

    async def trigger_manually(self, description: str) -> AutomationResult:
        """Plan and run ``description`` outside of a conversation."""
        try:
            workflow = await self._run_workflow(description)
        except Exception as e:
            logger.error(f"Manual workflow trigger failed: {e}")
            return AutomationResult(
                success=False, error=str(e) or "Unknown error", is_temporary=True
            )
        display = format_workflow_display(workflow)
        return AutomationResult(
            success=workflow.status == "completed",
            message=display,
            tracking_id=workflow.id,
            flow_summary=display,
        )

    async def test_connection(self) -> AutomationResult:
        """Probe endpoint health, then send a test trigger."""
        health = await self.client.check_health()
        if not health.success and (health.status_code or 0) >= 500:
            logger.warning(f"Automation endpoint unhealthy: {health.message}")
            return AutomationResult(
                success=False,
                error=f"Power Automate endpoint is not healthy (HTTP {health.status_code})",
                status_code=health.status_code,
                is_temporary=True,
            )
        return await self.client.test_connection()
