"""Tests for the automation HTTP client, using an in-process transport."""

import asyncio
import json

import httpx
import pytest

from roleflow.automation import AutomationClient
from roleflow.config import AutomationSettings

URL = "https://prod.example.com/workflows/abc/triggers/manual/run?sig=secret"


def _client(handler, **overrides):
    settings = AutomationSettings(
        url=URL, retry_delay=0, max_retry_after=0, **overrides
    )
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AutomationClient(settings, http_client=http_client)


class Recorder:
    """Replays ``responses`` in order and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.mark.asyncio
async def test_success_with_task_report():
    body = {
        "tasks": [
            {
                "task_type": "send_email",
                "action_details": {"recipients": ["a@b.com"], "description": "kickoff"},
                "status": "success",
            }
        ]
    }
    recorder = Recorder(httpx.Response(200, json=body))

    async with _client(recorder) as client:
        result = await client.trigger("send the kickoff email")

    assert result.success
    assert result.status_code == 200
    assert len(result.tasks) == 1
    assert "สำเร็จ 1/1" in result.flow_summary
    sent = json.loads(recorder.requests[0].content)
    assert sent["description"] == "send the kickoff email"
    assert sent["source"] == "Role-Chat-Interface"
    assert sent["isTest"] is False
    assert recorder.requests[0].headers["User-Agent"] == "Role-Chat-Interface/1.0"


@pytest.mark.asyncio
async def test_success_with_unparseable_body():
    recorder = Recorder(httpx.Response(202, text="accepted"))
    async with _client(recorder) as client:
        result = await client.trigger("do it")

    assert result.success
    assert result.tasks == []
    assert result.flow_summary == "✅ Power Automate workflow ดำเนินการสำเร็จ"


@pytest.mark.asyncio
async def test_no_response_is_processing():
    error = {"error": {"code": "NoResponse", "message": "no reply", "trackingId": "t-1"}}
    recorder = Recorder(httpx.Response(502, json=error))

    async with _client(recorder) as client:
        result = await client.trigger("create meeting")

    assert result.success is True
    assert result.is_processing is True
    assert result.tracking_id == "t-1"
    assert result.status_code == 502
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_no_response_on_other_status_is_processing():
    error = {"error": {"code": "NoResponse", "message": "no reply"}}
    async with _client(Recorder(httpx.Response(504, json=error))) as client:
        result = await client.trigger("create meeting")

    assert result.success
    assert result.is_processing


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    recorder = Recorder(
        httpx.Response(429, headers={"Retry-After": "30"}),
        httpx.Response(200, json={"tasks": []}),
    )
    async with _client(recorder) as client:
        result = await client.trigger("post update")

    assert result.success
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_rate_limit_reports_retry_after():
    recorder = Recorder(httpx.Response(429, headers={"Retry-After": "30"}))
    async with _client(recorder, max_retries=1) as client:
        result = await client.trigger("post update")

    assert not result.success
    assert result.retry_after == 30
    assert result.is_temporary
    assert result.error == "Rate limited by Power Automate"


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    error = {"error": {"code": "Forbidden", "message": "nope", "trackingId": "t-9"}}
    recorder = Recorder(httpx.Response(403, json=error))

    async with _client(recorder) as client:
        result = await client.trigger("send email")

    assert not result.success
    assert result.is_temporary is False
    assert result.error == "Access denied to workflow"
    assert result.tracking_id == "t-9"
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried_then_reported():
    recorder = Recorder(httpx.Response(503, text="unavailable"))

    async with _client(recorder) as client:
        result = await client.trigger("send email")

    assert not result.success
    assert result.status_code == 503
    assert result.is_temporary
    assert result.error == "Server error"
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_unknown_error_code_is_described():
    error = {"error": {"code": "BadTemplate", "message": "bad input"}}
    async with _client(Recorder(httpx.Response(400, json=error))) as client:
        result = await client.trigger("send email")

    assert result.error == "Logic Apps error: BadTemplate - bad input"
    assert result.tracking_id == "Unknown"


@pytest.mark.asyncio
async def test_network_errors_exhaust_retries():
    recorder = Recorder(httpx.ConnectError("connection refused"))

    async with _client(recorder) as client:
        result = await client.trigger("send email")

    assert not result.success
    assert result.is_temporary
    assert result.error == "connection refused"
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_timeouts_are_reported():
    async def slow(request):
        await asyncio.sleep(1)
        return httpx.Response(200)

    async with _client(slow, timeout=0.01) as client:
        result = await client.trigger("send email")

    assert not result.success
    assert result.is_temporary
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_connection_test_is_attempted_once():
    recorder = Recorder(httpx.Response(503))

    async with _client(recorder) as client:
        result = await client.test_connection()

    assert not result.success
    assert len(recorder.requests) == 1
    assert json.loads(recorder.requests[0].content)["isTest"] is True


@pytest.mark.asyncio
async def test_connection_test_success_message():
    async with _client(Recorder(httpx.Response(200))) as client:
        result = await client.test_connection()

    assert result.success
    assert result.message == "Test connection successful"


@pytest.mark.asyncio
async def test_long_descriptions_are_truncated():
    recorder = Recorder(httpx.Response(200))

    async with _client(recorder) as client:
        await client.trigger("x" * 2000)

    sent = json.loads(recorder.requests[0].content)["description"]
    assert len(sent) == 1503
    assert sent.endswith("...")


@pytest.mark.asyncio
async def test_blank_description_is_rejected_without_a_request():
    recorder = Recorder(httpx.Response(200))

    async with _client(recorder) as client:
        result = await client.trigger("   ")

    assert not result.success
    assert result.error == "Description is required"
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_missing_endpoint_is_a_permanent_failure():
    client = AutomationClient(AutomationSettings(url=""))
    result = await client.trigger("send email")

    assert not result.success
    assert result.is_temporary is False


@pytest.mark.asyncio
async def test_health_check_uses_head_without_query():
    recorder = Recorder(httpx.Response(405))

    async with _client(recorder) as client:
        result = await client.check_health()

    request = recorder.requests[0]
    assert request.method == "HEAD"
    assert request.url.query == b""
    assert str(request.url) == URL.split("?")[0]
    assert result.success
    assert result.status_code == 405


@pytest.mark.asyncio
async def test_health_check_reports_server_errors():
    async with _client(Recorder(httpx.Response(503))) as client:
        result = await client.check_health()

    assert not result.success
    assert result.is_temporary
