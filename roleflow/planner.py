"""Turn an analyzed request into a workflow plan."""

from __future__ import annotations

import logging
from typing import List

from .analyzer import AnalysisResult, analyze
from .contracts import (
    EmailParameters,
    MeetingParameters,
    PostParameters,
    Progress,
    ReminderParameters,
    WorkflowPlan,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

REMINDER_TIME = "1 hour before"
REMINDER_MESSAGE = "ติดตามผลการประชุมและ feedback"


def _chain(steps: List[WorkflowStep]) -> List[str]:
    """Dependencies for the next step in the linear chain."""
    return [steps[-1].id] if steps else []


def build_steps(analysis: AnalysisResult) -> List[WorkflowStep]:
    """Create the ordered steps for ``analysis``.

    Steps are appended meeting, email, post, each depending on the step
    before it. A reminder depending on every earlier step closes plans
    that include a meeting or an email.
    """
    steps: List[WorkflowStep] = []

    if analysis.has_meeting:
        meeting = analysis.meeting
        steps.append(
            WorkflowStep(
                type="meeting",
                title="สร้างการประชุม",
                description=f"สร้างการประชุม: {meeting.title}",
                dependencies=_chain(steps),
                estimated_duration=2,
                priority="high",
                parameters=MeetingParameters(
                    time=meeting.time,
                    title=meeting.title,
                    description=meeting.description,
                    attendees=meeting.attendees,
                ),
            )
        )

    if analysis.has_email:
        email = analysis.email
        steps.append(
            WorkflowStep(
                type="email",
                title="ส่ง Email แจ้งเตือน",
                description=f"ส่ง email ถึง {len(email.recipients)} คน",
                dependencies=_chain(steps),
                estimated_duration=1,
                priority="high",
                parameters=EmailParameters(
                    recipients=email.recipients,
                    subject=email.subject,
                    body=email.body,
                    include_calendar_invite=analysis.has_meeting,
                ),
            )
        )

    if analysis.has_post:
        post = analysis.post
        steps.append(
            WorkflowStep(
                type="post",
                title="โพสข้อความใน Team",
                description=f"โพสข้อความเกี่ยวกับ {post.topic}",
                dependencies=_chain(steps),
                estimated_duration=1,
                priority="medium",
                parameters=PostParameters(
                    platform=post.platform,
                    message=post.message,
                    scheduled_time=post.scheduled_time,
                ),
            )
        )

    if analysis.has_meeting or analysis.has_email:
        steps.append(
            WorkflowStep(
                type="reminder",
                title="ตั้งการแจ้งเตือน",
                description="ตั้งการแจ้งเตือนสำหรับติดตามผล",
                dependencies=[step.id for step in steps],
                estimated_duration=1,
                priority="low",
                parameters=ReminderParameters(
                    reminder_time=REMINDER_TIME, message=REMINDER_MESSAGE
                ),
            )
        )

    return steps


def workflow_title(analysis: AnalysisResult) -> str:
    return f"Workflow: {' + '.join(analysis.components)}"


def plan_workflow(request: str) -> WorkflowPlan:
    """Synthesize a plan for ``request`` without performing any I/O."""
    request = request or ""
    logger.info(f"Planning workflow for: {request[:100]}")
    analysis = analyze(request)
    steps = build_steps(analysis)
    total_duration = sum(step.estimated_duration for step in steps)

    plan = WorkflowPlan(
        title=workflow_title(analysis),
        description=request,
        steps=steps,
        total_estimated_duration=total_duration,
        status="planning",
        progress=Progress.from_counts(0, len(steps)),
    )
    logger.info(
        f"Generated workflow {plan.id} with {len(steps)} steps, estimated {total_duration} minutes"
    )
    return plan
