from datetime import datetime, timedelta, timezone

import pytest

from app.models.domain import NotificationType, ReminderType
from app.services import notifications, transitions
from app.utils.errors import TransportFailure, ValidationError

from fakes import NOW, RecordingSender

# Saturday 19:30 in Seoul
SATURDAY_EVENING = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
async def mixed_meetup(make_meetup, register, store):
    """Three unconfirmed, one confirmed, one waitlisted."""
    meetup = await make_meetup(max_participants=4, date=SATURDAY_EVENING, fee_display="15,000원")
    people = {}
    for i, name in enumerate(["Alice", "Bob", "Carol", "Dave", "Erin"]):
        people[name] = await register(meetup, name, f"010-4444-{i:04d}")
    await transitions.confirm(store, people["Dave"].token, now=NOW)
    return meetup, people


async def test_d7_goes_to_unconfirmed_and_records_reminder(mixed_meetup, store, sender):
    meetup, people = mixed_meetup

    count = await notifications.dispatch(store, sender, meetup, "d7", now=NOW)

    assert count == 3
    assert len(sender.batches) == 1
    assert {m["to"] for m in sender.sent} == {"01044440000", "01044440001", "01044440002"}

    (reminder,) = await store.list_reminders(meetup.id)
    assert reminder.type == ReminderType.D7
    assert reminder.sent_at == NOW
    assert reminder.sent_by == "sms"


async def test_confirm_reminder_skips_confirmed_and_waitlisted(mixed_meetup, store, sender):
    meetup, _ = mixed_meetup

    count = await notifications.dispatch(store, sender, meetup, "confirm_reminder", now=NOW)

    assert count == 3
    assert await store.list_reminders(meetup.id) == []


async def test_waitlist_promote_reaches_head_only(make_meetup, register, store, sender):
    meetup = await make_meetup(max_participants=2)
    await register(meetup, "Alice", "010-4444-0001")
    await register(meetup, "Bob", "010-4444-0002")
    head = await register(meetup, "Carol", "010-4444-0003")
    await register(meetup, "Dave", "010-4444-0004")

    count = await notifications.dispatch(store, sender, meetup, "waitlist_promote", now=NOW)

    assert count == 1
    assert sender.sent[0]["to"] == "01044440003"
    assert f"token={head.token}" in sender.sent[0]["text"]


async def test_targets_restrict_recipients(mixed_meetup, store, sender):
    meetup, people = mixed_meetup

    count = await notifications.dispatch(
        store, sender, meetup, "registration",
        target_ids=[people["Bob"].id, people["Erin"].id],
        now=NOW,
    )

    assert count == 2
    assert [m["to"] for m in sender.sent] == ["01044440001", "01044440004"]


async def test_cancelled_participants_are_never_targeted(mixed_meetup, store, sender):
    meetup, people = mixed_meetup
    await transitions.cancel(store, people["Alice"].token, now=NOW)

    await notifications.dispatch(store, sender, meetup, "registration", now=NOW)

    assert "01044440000" not in {m["to"] for m in sender.sent}


async def test_no_qualifying_recipients(make_meetup, register, store, sender):
    meetup = await make_meetup()
    alice = await register(meetup, "Alice", "010-4444-0001")
    await transitions.confirm(store, alice.token, now=NOW)

    with pytest.raises(ValidationError) as exc:
        await notifications.dispatch(store, sender, meetup, "d1", now=NOW)
    assert exc.value.code == "NO_TARGETS"
    assert sender.batches == []


async def test_unknown_notification_type(mixed_meetup, store, sender):
    meetup, _ = mixed_meetup

    with pytest.raises(ValidationError) as exc:
        await notifications.dispatch(store, sender, meetup, "d2", now=NOW)
    assert exc.value.code == "INVALID_NOTIFICATION_TYPE"


async def test_transport_failure_leaves_reminder_unrecorded(mixed_meetup, store):
    meetup, _ = mixed_meetup

    with pytest.raises(TransportFailure) as exc:
        await notifications.dispatch(store, RecordingSender(fail=True), meetup, "d3", now=NOW)

    assert exc.value.code == "SMS_FAILED"
    assert await store.list_reminders(meetup.id) == []


async def test_render_uses_display_timezone_and_links(mixed_meetup):
    meetup, people = mixed_meetup

    text = notifications.render(NotificationType.D1, meetup, people["Alice"])

    assert "Alice님" in text
    assert "3월 14일 (토) 오후 07:30" in text
    assert "참가비: 15,000원" in text
    assert f"https://meetup.example/confirm/{meetup.id}?token={people['Alice'].token}" in text
    assert f"https://meetup.example/cancel/{meetup.id}?token={people['Alice'].token}" in text


async def test_render_omits_fee_line_without_fee(make_meetup, register):
    meetup = await make_meetup(date=SATURDAY_EVENING)
    alice = await register(meetup, "Alice", "010-4444-0001")

    assert "참가비" not in notifications.render(NotificationType.D7, meetup, alice)


def test_every_type_has_template_and_filter():
    for notification_type in NotificationType:
        assert notification_type in notifications.TEMPLATES
        assert notification_type in notifications.RECIPIENT_FILTERS


async def test_dday_template_has_no_confirm_link(mixed_meetup):
    meetup, people = mixed_meetup

    text = notifications.render(NotificationType.DDAY, meetup, people["Alice"])

    assert "/confirm/" not in text
    assert "/cancel/" in text


async def test_redispatch_overwrites_reminder(mixed_meetup, store, sender):
    meetup, _ = mixed_meetup
    later = NOW + timedelta(hours=3)

    await notifications.dispatch(store, sender, meetup, "d7", now=NOW)
    await notifications.dispatch(store, sender, meetup, "d7", now=later)

    (reminder,) = await store.list_reminders(meetup.id)
    assert reminder.sent_at == later
