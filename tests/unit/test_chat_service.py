"""Tests for chat orchestration."""

import json

import httpx
import pytest

from roleflow.automation import AutomationClient
from roleflow.chat import APOLOGY_MESSAGE, ChatService
from roleflow.config import AutomationSettings, ResponderSettings, WorkflowSettings
from roleflow.persistence import InMemoryConversationRepository
from roleflow.responder import ConversationalResponder

URL = "https://flows.example.com/run?sig=secret"
THAI_REQUEST = "สร้างประชุมทีมพรุ่งนี้ 9 โมง แล้วส่ง email ให้ a@b.com"


def _service(handler, repository=None):
    client = AutomationClient(
        AutomationSettings(url=URL, retry_delay=0, max_retry_after=0),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return ChatService(
        repository or InMemoryConversationRepository(),
        client,
        ConversationalResponder(ResponderSettings(api_key=None)),
        WorkflowSettings(step_delay=0),
    )


def _ok(request):
    return httpx.Response(200, json={"tasks": []})


class BrokenRepository(InMemoryConversationRepository):
    async def save_message(self, conversation_id, role, content):
        raise ConnectionError("db down")


@pytest.mark.asyncio
async def test_workflow_request_is_planned_and_executed():
    posted = []

    def handler(request):
        posted.append(json.loads(request.content)["description"])
        return httpx.Response(200, json={"tasks": []})

    service = _service(handler)
    conversation = await service.create_conversation("user-1")

    result = await service.send_message(conversation.id, THAI_REQUEST, "user-1")

    assert result.workflow_triggered
    assert result.workflow_success
    assert result.status_code == 200
    assert result.workflow_plan.status == "completed"
    assert result.tracking_id == result.workflow_plan.id
    assert len(posted) == 3
    assert result.assistant_message.content.startswith("ขอบคุณสำหรับข้อความของคุณ")
    assert "🎉 **เสร็จสิ้น**" in result.assistant_message.content
    assert result.workflow_display in result.assistant_message.content

    messages = await service.list_messages(conversation.id)
    assert [m.role for m in messages] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_failed_workflow_is_reported():
    service = _service(lambda request: httpx.Response(403, json={"error": {"code": "Forbidden"}}))
    conversation = await service.create_conversation("user-1")

    result = await service.send_message(conversation.id, THAI_REQUEST, "user-1")

    assert result.workflow_triggered
    assert not result.workflow_success
    assert result.workflow_error == "Workflow execution failed"
    assert result.status_code == 500
    assert "❌" in result.assistant_message.content


@pytest.mark.asyncio
async def test_plain_chat_does_not_trigger_workflow():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    service = _service(handler)
    conversation = await service.create_conversation("user-1", "Small talk")

    result = await service.send_message(conversation.id, "hello there", "user-1")

    assert not result.workflow_triggered
    assert result.workflow_plan is None
    assert result.status_code is None
    assert result.assistant_message.content.startswith("Thank you for your message.")
    assert calls == []


@pytest.mark.asyncio
async def test_storage_failure_returns_apology():
    service = _service(_ok, repository=BrokenRepository())

    result = await service.send_message("c-1", "hello", "user-1")

    assert result.assistant_message.content == APOLOGY_MESSAGE
    assert result.user_message.content == "hello"
    assert result.is_temporary
    assert result.workflow_error == "db down"


@pytest.mark.asyncio
async def test_conversations_are_listed_per_user():
    service = _service(_ok)
    first = await service.create_conversation("user-1")
    await service.create_conversation("user-2", "Other")

    conversations = await service.list_conversations("user-1")

    assert [c.id for c in conversations] == [first.id]
    assert first.title.startswith("New Chat ")


@pytest.mark.asyncio
async def test_trigger_manually():
    service = _service(_ok)

    result = await service.trigger_manually(THAI_REQUEST)

    assert result.success
    assert "Workflow: การประชุม + Email" in result.message
    assert result.flow_summary == result.message


@pytest.mark.asyncio
async def test_connection_test_stops_on_unhealthy_endpoint():
    methods = []

    def handler(request):
        methods.append(request.method)
        return httpx.Response(503)

    result = await _service(handler).test_connection()

    assert not result.success
    assert result.is_temporary
    assert result.status_code == 503
    assert methods == ["HEAD"]


@pytest.mark.asyncio
async def test_connection_test_after_healthy_probe():
    methods = []

    def handler(request):
        methods.append(request.method)
        return httpx.Response(200)

    result = await _service(handler).test_connection()

    assert result.success
    assert result.message == "Test connection successful"
    assert methods == ["HEAD", "POST"]
