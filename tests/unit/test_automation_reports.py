"""Tests for error classification and task summaries."""

import json

from roleflow.automation.errors import fallback_error, is_no_response, parse_error_body
from roleflow.automation.summary import (
    GENERIC_SUCCESS_SUMMARY,
    describe_task,
    parse_success_body,
    summarize_tasks,
)
from roleflow.contracts import AutomationTask


def test_known_error_codes():
    info = parse_error_body(
        {"error": {"code": "WorkflowRunInProgress", "trackingId": "abc"}}
    )
    assert info.message == "Another workflow run is in progress"
    assert info.is_temporary
    assert info.tracking_id == "abc"

    info = parse_error_body({"error": {"code": "TriggerNotFound"}})
    assert not info.is_temporary
    assert info.tracking_id == "Unknown"


def test_unknown_timeout_codes_are_temporary():
    info = parse_error_body({"error": {"code": "GatewayTimeout", "message": "slow"}})
    assert info.is_temporary
    assert info.message == "Logic Apps error: GatewayTimeout - slow"


def test_malformed_error_body():
    info = parse_error_body({"unexpected": True})
    assert info.message == "Unknown Logic Apps error"
    assert info.is_temporary


def test_fallback_errors_by_status():
    assert fallback_error(502).message == "Bad Gateway"
    assert fallback_error(500).is_temporary
    assert not fallback_error(404).is_temporary


def test_no_response_detection():
    body = {"error": {"code": "NoResponse"}}
    assert is_no_response(body, parse_error_body(body))
    other = {"error": {"code": "Forbidden"}}
    assert not is_no_response(other, parse_error_body(other))


def test_meeting_task_description():
    task = AutomationTask(
        task_type="create_meeting",
        action_details=json.dumps({"time": "10:00", "description": "Sprint review"}),
        result=json.dumps(
            {
                "subject": "Sprint review",
                "startWithTimeZone": "2024-05-01T10:00:00",
                "webLink": "https://teams/x",
            }
        ),
        status="success",
    )
    description, outcome = describe_task(task)

    assert description == "📅 **สร้างการประชุม** เวลา 10:00: Sprint review"
    assert "หัวข้อ: Sprint review" in outcome
    assert "01/05/2024 10:00:00" in outcome
    assert "สร้างแล้ว" in outcome


def test_meeting_task_with_unreadable_result():
    task = AutomationTask(
        task_type="create_meeting", action_details={}, result="not json", status="success"
    )
    _, outcome = describe_task(task)
    assert outcome == "   ✅ สร้างการประชุมสำเร็จ"


def test_unknown_task_type_uses_generic_description():
    description, outcome = describe_task(
        AutomationTask(task_type="archive", status="success")
    )
    assert description == "⚙️ **archive**"
    assert outcome == "   ✅ ดำเนินการสำเร็จ"


def test_summary_counts_successes():
    tasks = [
        AutomationTask(task_type="send_email", action_details={"recipients": ["a@b.com"]}, status="success"),
        AutomationTask(task_type="post_message", action_details={"platform": "Teams"}, status="failed"),
    ]
    summary = summarize_tasks(tasks)

    assert "**1.** ✅ 📧 **ส่ง Email** ถึง 1 คน" in summary
    assert "**2.** ❌ 💬 **โพสข้อความ** ใน Teams" in summary
    assert "เกิดข้อผิดพลาด" in summary
    assert summary.endswith("สำเร็จ 1/2 งาน")


def test_parse_success_body_variants():
    assert parse_success_body("") == ([], GENERIC_SUCCESS_SUMMARY)
    assert parse_success_body('{"status": "ok"}') == ([], GENERIC_SUCCESS_SUMMARY)

    tasks, summary = parse_success_body(
        json.dumps([{"task_type": "archive", "status": "success"}])
    )
    assert [task.task_type for task in tasks] == ["archive"]
    assert "สำเร็จ 1/1" in summary
