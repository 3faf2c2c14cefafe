"""Conversational replies backed by a pydantic-ai agent."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from pydantic_ai import Agent

from .config import ResponderSettings, load_config
from .contracts import WorkflowPlan
from .persistence.models import Message

logger = logging.getLogger(__name__)

THAI_SCRIPT = re.compile(r"[\u0E00-\u0E7F]")

SYSTEM_PROMPT = """You are Role, an intelligent AI assistant that acts as a Generative Agent with workflow planning capabilities.

When users request tasks involving meetings, emails, posts, or scheduling, you:
1. Analyze the request to identify actionable items
2. Create a structured workflow plan with dependencies
3. Execute the workflow step by step
4. Provide detailed progress updates

You can break down complex requests into manageable steps and execute them systematically.

Respond concisely and helpfully in the same language as the user. Support Thai language naturally."""

WORKFLOW_SUCCEEDED_NOTE = (
    "Note: A workflow was successfully planned and executed for this request. "
    "The user's tasks have been processed systematically."
)
WORKFLOW_PROBLEM_NOTE = (
    "Note: A workflow was planned but encountered some issues during execution."
)


def fallback_response(content: str) -> str:
    """Canned acknowledgment used when the language model is unavailable."""
    if THAI_SCRIPT.search(content):
        response = "ขอบคุณสำหรับข้อความของคุณ ฉันได้รับข้อมูลแล้ว"
        if "ประชุม" in content or "meeting" in content:
            response += "\n\nเกี่ยวกับการประชุมที่คุณกล่าวถึง ระบบได้บันทึกข้อมูลไว้แล้ว"
        if "email" in content:
            response += "\n\nข้อมูลการส่ง email ได้ถูกส่งไปประมวลผลแล้ว"
        if "team" in content or "โพส" in content:
            response += "\n\nข้อมูลการโพสใน Team ได้ถูกบันทึกไว้แล้ว"
        if any(word in content for word in ("กำหนด", "schedule", "นัดหมาย")):
            response += "\n\nข้อมูลการกำหนดตารางงานได้ถูกบันทึกไว้แล้ว"
        return response

    lowered = content.lower()
    response = "Thank you for your message. I have received your information."
    if "meeting" in lowered:
        response += "\n\nRegarding the meeting you mentioned, the information has been recorded."
    if "email" in lowered:
        response += "\n\nThe email information has been sent for processing."
    if "team" in lowered or "post" in lowered:
        response += "\n\nThe Team posting information has been recorded."
    if "schedule" in lowered or "appointment" in lowered:
        response += "\n\nThe scheduling information has been recorded."
    return response


def system_prompt_for(workflow_plan: Optional[WorkflowPlan]) -> str:
    if workflow_plan is None:
        return SYSTEM_PROMPT
    if workflow_plan.status == "completed":
        return f"{SYSTEM_PROMPT}\n\n{WORKFLOW_SUCCEEDED_NOTE}"
    return f"{SYSTEM_PROMPT}\n\n{WORKFLOW_PROBLEM_NOTE}"


def build_prompt(content: str, history: Sequence[Message], window: int = 10) -> str:
    """Format the last ``window`` turns followed by the new user message."""
    recent = list(history)[-window:] if window > 0 else []
    turns = [
        f"{'User' if message.role == 'user' else 'Assistant'}: {message.content}"
        for message in recent
    ]
    if turns:
        return "Previous conversation:\n" + "\n".join(turns) + f"\n\nUser: {content}"
    return f"User: {content}"


class ConversationalResponder:
    """Generate assistant replies, degrading to canned text on any failure."""

    def __init__(self, settings: Optional[ResponderSettings] = None) -> None:
        self.settings = settings or load_config().responder

    @property
    def available(self) -> bool:
        return bool(self.settings.api_key and self.settings.api_key.strip())

    def _agent(self, system_prompt: str) -> Agent:
        return Agent(
            self.settings.model,
            system_prompt=system_prompt,
            model_settings={
                "max_tokens": self.settings.max_tokens,
                "temperature": self.settings.temperature,
            },
        )

    async def respond(
        self,
        content: str,
        history: Sequence[Message] = (),
        workflow_plan: Optional[WorkflowPlan] = None,
    ) -> str:
        if not self.available:
            logger.info("Language model key not configured, using fallback response")
            return fallback_response(content)

        try:
            agent = self._agent(system_prompt_for(workflow_plan))
            result = await agent.run(
                build_prompt(content, history, self.settings.history_window)
            )
            reply = str(result.output or "")
        except Exception as e:
            logger.error(f"Language model call failed, using fallback response: {e}")
            return fallback_response(content)

        if not reply.strip():
            logger.info("Empty reply from language model, using fallback response")
            return fallback_response(content)
        return reply
