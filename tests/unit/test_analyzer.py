"""Tests for request intent detection."""

from roleflow.analyzer import analyze, should_trigger_workflow


def test_thai_meeting_with_email_address():
    result = analyze("สร้างประชุมทีมพรุ่งนี้ 9 โมง แล้วส่ง email ให้ a@b.com")

    assert result.has_meeting
    assert result.has_email
    assert not result.has_post
    assert result.meeting.title == "ประชุมทีม"
    assert result.meeting.time == "9:00"
    assert result.meeting.attendees == ["a@b.com"]
    assert result.email.recipients == ["a@b.com"]
    assert result.email.subject == "การประชุม: ประชุมทีม"
    assert result.components == ["การประชุม", "Email"]


def test_english_meeting_time_and_title():
    result = analyze("Set up a meeting at 3pm with the designers")

    assert result.has_meeting
    assert result.meeting.title == "Team Meeting"
    assert result.meeting.time == "3:00"


def test_meeting_time_defaults_when_absent():
    result = analyze("นัดหมายลูกค้า")

    assert result.has_meeting
    assert result.meeting.time == "09:00"
    assert result.meeting.title == "การประชุม"


def test_email_detected_from_addresses_alone():
    result = analyze("cc john@example.com and jane@test.org")

    assert result.has_email
    assert not result.has_meeting
    assert result.email.recipients == ["john@example.com", "jane@test.org"]
    assert result.email.subject == "แจ้งเตือนจากระบบ"
    assert "cc john@example.com" in result.email.body


def test_afternoon_post_is_scheduled():
    result = analyze("โพสสรุปโครงการใน team บ่ายนี้")

    assert result.has_post
    assert result.post.platform == "Microsoft Teams"
    assert result.post.topic == "โครงการ"
    assert result.post.scheduled_time == "13:00"
    assert result.post.message.startswith("📢 อัพเดท:")


def test_post_without_afternoon_has_no_schedule():
    result = analyze("share the release notes")

    assert result.has_post
    assert result.post.scheduled_time is None
    assert result.post.topic == "หัวข้อทั่วไป"


def test_plain_text_detects_nothing():
    result = analyze("hello there")

    assert not result.has_meeting
    assert not result.has_email
    assert not result.has_post
    assert result.components == []


def test_empty_input_is_safe():
    result = analyze("")
    assert result.components == []
    assert not should_trigger_workflow("")


def test_should_trigger_workflow():
    assert should_trigger_workflow("Please NOTIFY the team")
    assert should_trigger_workflow("ตั้งเตือนพรุ่งนี้")
    assert should_trigger_workflow("schedule a review")
    assert not should_trigger_workflow("what is the weather today?")
