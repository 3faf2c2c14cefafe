"""Keyword based intent detection for free-text requests.

Thai and English lexicons are matched with equal priority. Every rule is a
plain pattern so the whole analysis stays a pure function of its input.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

DEFAULT_MEETING_TIME = "09:00"
AFTERNOON_POST_TIME = "13:00"
DEFAULT_PLATFORM = "Microsoft Teams"

# intent name -> keyword pattern
INTENT_RULES: Dict[str, re.Pattern[str]] = {
    "meeting": re.compile(r"ประชุม|meeting|นัดหมาย|appointment", re.IGNORECASE),
    "email": re.compile(r"email|ส่ง|แจ้ง", re.IGNORECASE),
    "post": re.compile(r"โพส|post|team|แชร์|share", re.IGNORECASE),
}

EMAIL_ADDRESS_PATTERN = re.compile(r"[\w.-]+@[\w.-]+\.\w+", re.ASCII)
MEETING_TIME_PATTERN = re.compile(r"(\d{1,2})\s*(?:โมง|:00|am|pm)", re.IGNORECASE | re.ASCII)
AFTERNOON_PATTERN = re.compile(r"บ่าย|afternoon|(\d{1,2})\s*โมงเย็น", re.IGNORECASE | re.ASCII)

# Checked in order, first match wins.
MEETING_TITLE_LADDER: List[Tuple[str, str]] = [
    ("ประชุมทีม", "ประชุมทีม"),
    ("ประชุม", "ประชุมงาน"),
    ("meeting", "Team Meeting"),
]
DEFAULT_MEETING_TITLE = "การประชุม"

TOPIC_LADDER: List[Tuple[str, str]] = [
    ("ประชุม", "การประชุม"),
    ("โครงการ", "โครงการ"),
    ("งาน", "งาน"),
]
DEFAULT_TOPIC = "หัวข้อทั่วไป"

WORKFLOW_TRIGGERS = (
    "ประชุม",
    "meeting",
    "email",
    "โพส",
    "post",
    "team",
    "ส่ง",
    "send",
    "แจ้ง",
    "notify",
    "reminder",
    "เตือน",
    "schedule",
    "กำหนด",
    "นัดหมาย",
    "appointment",
)


class MeetingDetails(BaseModel):
    time: str = DEFAULT_MEETING_TIME
    title: str = ""
    description: str = ""
    attendees: List[str] = Field(default_factory=list)


class EmailDetails(BaseModel):
    recipients: List[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""


class PostDetails(BaseModel):
    platform: str = DEFAULT_PLATFORM
    message: str = ""
    topic: str = DEFAULT_TOPIC
    scheduled_time: Optional[str] = None


class AnalysisResult(BaseModel):
    """Intent flags and extracted parameters for one request."""

    has_meeting: bool = False
    meeting: MeetingDetails = Field(default_factory=MeetingDetails)
    has_email: bool = False
    email: EmailDetails = Field(default_factory=EmailDetails)
    has_post: bool = False
    post: PostDetails = Field(default_factory=PostDetails)

    @property
    def components(self) -> List[str]:
        """Display labels for the detected intents, in planning order."""
        labels = []
        if self.has_meeting:
            labels.append("การประชุม")
        if self.has_email:
            labels.append("Email")
        if self.has_post:
            labels.append("Team Post")
        return labels


def _first_match(text: str, ladder: List[Tuple[str, str]], default: str) -> str:
    lowered = text.lower()
    for keyword, label in ladder:
        if keyword in lowered:
            return label
    return default


def extract_meeting_title(text: str) -> str:
    return _first_match(text, MEETING_TITLE_LADDER, DEFAULT_MEETING_TITLE)


def extract_main_topic(text: str) -> str:
    return _first_match(text, TOPIC_LADDER, DEFAULT_TOPIC)


def extract_meeting_time(text: str) -> str:
    match = MEETING_TIME_PATTERN.search(text)
    return f"{match.group(1)}:00" if match else DEFAULT_MEETING_TIME


def extract_email_addresses(text: str) -> List[str]:
    return EMAIL_ADDRESS_PATTERN.findall(text)


def generate_email_body(text: str) -> str:
    return (
        "สวัสดีครับ/ค่ะ\n\n"
        f"ขอแจ้งให้ทราบเกี่ยวกับ: {text}\n\n"
        "รายละเอียดเพิ่มเติมจะแจ้งให้ทราบอีกครั้ง\n\n"
        "ขอบคุณครับ/ค่ะ"
    )


def generate_post_message(text: str) -> str:
    return f"📢 อัพเดท: {text}\n\n#TeamUpdate #Meeting"


def analyze(text: str) -> AnalysisResult:
    """Extract intent signals and parameters from ``text``.

    Absence of a signal yields a negative detection; this function never
    raises for string input.
    """
    text = text or ""
    has_meeting = bool(INTENT_RULES["meeting"].search(text))
    addresses = extract_email_addresses(text)
    has_email = bool(INTENT_RULES["email"].search(text)) or bool(addresses)
    has_post = bool(INTENT_RULES["post"].search(text))

    meeting_title = extract_meeting_title(text) if has_meeting else ""

    return AnalysisResult(
        has_meeting=has_meeting,
        meeting=MeetingDetails(
            time=extract_meeting_time(text),
            title=meeting_title,
            description=text if has_meeting else "",
            attendees=list(addresses),
        ),
        has_email=has_email,
        email=EmailDetails(
            recipients=list(addresses),
            subject=f"การประชุม: {meeting_title}" if has_meeting else "แจ้งเตือนจากระบบ",
            body=generate_email_body(text),
        ),
        has_post=has_post,
        post=PostDetails(
            message=generate_post_message(text),
            topic=extract_main_topic(text),
            scheduled_time=AFTERNOON_POST_TIME if AFTERNOON_PATTERN.search(text) else None,
        ),
    )


def should_trigger_workflow(text: str) -> bool:
    """Return ``True`` when ``text`` mentions anything worth planning for."""
    lowered = (text or "").lower()
    return any(trigger in lowered for trigger in WORKFLOW_TRIGGERS)
