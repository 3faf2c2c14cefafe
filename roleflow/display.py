"""Markdown renderings of plans and automation outcomes for the chat UI."""

from __future__ import annotations

from .contracts import AutomationResult, WorkflowPlan, as_utc

WORKFLOW_ICONS = {
    "planning": "📋",
    "executing": "⚡",
    "completed": "✅",
    "failed": "❌",
    "paused": "⏸️",
}

STEP_ICONS = {
    "pending": "⏳",
    "in_progress": "⚡",
    "completed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}

PRIORITY_ICONS = {
    "high": "🔴",
    "medium": "🟡",
    "low": "🟢",
}


def progress_bar(percentage: int, width: int = 10) -> str:
    filled = max(0, min(width, percentage // 10))
    return "█" * filled + "░" * (width - filled)


def format_workflow_display(workflow: WorkflowPlan) -> str:
    """Render ``workflow`` with progress, steps and their outcomes."""
    percentage = workflow.progress.percentage
    display = f"{WORKFLOW_ICONS[workflow.status]} **{workflow.title}**\n\n"
    display += f"📊 **ความคืบหน้า**: {percentage}% [{progress_bar(percentage)}]\n"
    display += f"⏱️ **เวลาประมาณ**: {workflow.total_estimated_duration} นาที\n\n"
    display += "🔄 **ขั้นตอนการทำงาน**:\n\n"

    for index, step in enumerate(workflow.steps, start=1):
        display += (
            f"**{index}.** {STEP_ICONS[step.status]} {PRIORITY_ICONS[step.priority]} "
            f"**{step.title}**\n"
        )
        display += f"   {step.description}\n"

        if step.dependencies:
            numbers = [str(workflow.step_number(dep_id)) for dep_id in step.dependencies]
            display += f"   📎 รอขั้นตอน: {', '.join(numbers)}\n"

        if step.status == "completed" and step.result:
            display += "   ✅ สำเร็จ\n"
        elif step.status in ("failed", "skipped") and step.error:
            display += f"   ❌ ล้มเหลว: {step.error}\n"
        elif step.status == "in_progress":
            display += "   ⚡ กำลังดำเนินการ...\n"

        display += "\n"

    if workflow.status == "completed":
        duration = 0
        if workflow.completed_at and workflow.started_at:
            elapsed = as_utc(workflow.completed_at) - as_utc(workflow.started_at)
            duration = round(elapsed.total_seconds())
        display += f"🎉 **เสร็จสิ้น** ใช้เวลา {duration} วินาที\n"

    return display


def format_automation_result(result: AutomationResult) -> str:
    """Render an automation outcome as a bilingual chat message."""
    if result.success:
        if result.is_processing:
            headline = "⏳ **กำลังประมวลผล / Processing in background**"
        else:
            headline = "✅ **ดำเนินการสำเร็จ / Completed successfully**"
        body = result.flow_summary or result.message or ""
        text = f"{headline}\n\n{body}".rstrip()
    else:
        text = "❌ **เกิดข้อผิดพลาด / Automation failed**\n\n"
        text += f"{result.error or 'Unknown error'}\n"
        if result.is_temporary:
            text += "\n🔁 ข้อผิดพลาดชั่วคราว กรุณาลองใหม่อีกครั้ง / Temporary failure, please try again."
        else:
            text += "\n⛔ ข้อผิดพลาดถาวร / Permanent failure, retrying will not help."
        if result.status_code is not None:
            text += f"\n📟 HTTP {result.status_code}"

    if result.tracking_id:
        text += f"\n🔎 Tracking ID: {result.tracking_id}"
    return text
