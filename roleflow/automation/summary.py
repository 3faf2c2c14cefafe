"""Human readable reports for automation task results."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from ..contracts import AutomationTask

logger = logging.getLogger(__name__)

GENERIC_SUCCESS_SUMMARY = "✅ Power Automate workflow ดำเนินการสำเร็จ"
NO_TASKS_SUMMARY = "ไม่มีงานที่ดำเนินการ"


def _load_json(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, str):
        return json.loads(value)
    raise ValueError("not a JSON document")


def _format_timestamp(value: Any) -> str:
    try:
        return datetime.fromisoformat(str(value)).strftime("%d/%m/%Y %H:%M:%S")
    except ValueError:
        return str(value)


def _describe_meeting(task: AutomationTask, details: dict) -> Tuple[str, str]:
    description = "📅 **สร้างการประชุม**"
    if details.get("time"):
        description += f" เวลา {details['time']}"
    if details.get("description"):
        description += f": {details['description']}"

    outcome = ""
    if task.result and task.status == "success":
        try:
            meeting = _load_json(task.result)
            outcome = f"   📋 หัวข้อ: {meeting['subject']}\n"
            outcome += f"   🕐 เวลา: {_format_timestamp(meeting.get('startWithTimeZone'))}\n"
            outcome += f"   🔗 ลิงก์: {'สร้างแล้ว' if meeting.get('webLink') else 'ไม่มี'}"
        except (ValueError, KeyError, TypeError, AttributeError):
            outcome = "   ✅ สร้างการประชุมสำเร็จ"
    return description, outcome


def _describe_email(task: AutomationTask, details: dict) -> Tuple[str, str]:
    recipients = details.get("recipients")
    description = "📧 **ส่ง Email**"
    if isinstance(recipients, list):
        description += f" ถึง {len(recipients)} คน"
    if details.get("description"):
        description += f": {details['description']}"

    outcome = ""
    if task.status == "success":
        outcome = "   ✅ ส่ง Email สำเร็จ"
        if isinstance(recipients, list) and recipients:
            outcome += f"\n   👥 ผู้รับ: {', '.join(str(r) for r in recipients)}"
    return description, outcome


def _describe_post(task: AutomationTask, details: dict) -> Tuple[str, str]:
    description = "💬 **โพสข้อความ**"
    if details.get("platform"):
        description += f" ใน {details['platform']}"
    if details.get("time"):
        description += f" เวลา {details['time']}"
    if details.get("description"):
        description += f": {details['description']}"

    outcome = ""
    if task.result and task.status == "success":
        try:
            post = _load_json(task.result)
            outcome = "   ✅ โพสข้อความสำเร็จ\n"
            outcome += f"   🔗 ลิงก์: {'สร้างแล้ว' if post.get('messageLink') else 'ไม่มี'}"
        except (ValueError, TypeError, AttributeError):
            outcome = "   ✅ โพสข้อความสำเร็จ"
    return description, outcome


def _describe_other(task: AutomationTask) -> Tuple[str, str]:
    outcome = "   ✅ ดำเนินการสำเร็จ" if task.status == "success" else ""
    return f"⚙️ **{task.task_type}**", outcome


_DESCRIBERS = {
    "create_meeting": _describe_meeting,
    "send_email": _describe_email,
    "post_message": _describe_post,
}


def describe_task(task: AutomationTask) -> Tuple[str, str]:
    """Return the headline and outcome lines for one task entry."""
    describer = _DESCRIBERS.get(task.task_type)
    if describer is None:
        return _describe_other(task)
    try:
        details = _load_json(task.action_details)
        if not isinstance(details, dict):
            raise ValueError("action details are not an object")
    except (ValueError, TypeError):
        return _describe_other(task)
    return describer(task, details)


def summarize_tasks(tasks: List[AutomationTask]) -> str:
    """Render a numbered report with an aggregate success count."""
    if not tasks:
        return NO_TASKS_SUMMARY

    summary = "🔄 **การดำเนินงาน Power Automate:**\n\n"
    for index, task in enumerate(tasks, start=1):
        status_icon = "✅" if task.status == "success" else "❌"
        description, outcome = describe_task(task)
        summary += f"**{index}.** {status_icon} {description}\n"
        if outcome:
            summary += f"{outcome}\n"
        if task.status != "success":
            summary += "   ❌ เกิดข้อผิดพลาด\n"
        summary += "\n"

    success_count = sum(1 for task in tasks if task.status == "success")
    summary += f"📊 **สรุป**: สำเร็จ {success_count}/{len(tasks)} งาน"
    return summary


def parse_success_body(text: Optional[str]) -> Tuple[List[AutomationTask], str]:
    """Decode a 2xx body into task entries and a summary.

    A body that is empty or cannot be understood still counts as success and
    gets the generic summary.
    """
    if not text or not text.strip():
        return [], GENERIC_SUCCESS_SUMMARY

    try:
        parsed = json.loads(text)
    except ValueError:
        logger.info("Could not parse automation response as JSON, treating as success")
        return [], GENERIC_SUCCESS_SUMMARY

    if isinstance(parsed, list):
        raw_tasks = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("tasks"), list):
        raw_tasks = parsed["tasks"]
    else:
        return [], GENERIC_SUCCESS_SUMMARY

    try:
        tasks = [AutomationTask.model_validate(item) for item in raw_tasks]
    except ValidationError as exc:
        logger.warning(f"Malformed task entries in automation response: {exc}")
        return [], GENERIC_SUCCESS_SUMMARY
    return tasks, summarize_tasks(tasks)
