import logging
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from app.models.domain import Meetup, Reminder, ReminderType
from app.services.store import MeetupStore
from app.utils.errors import service_error
from app.utils.formatting import to_display_tz

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = {
    ReminderType.D7: timedelta(days=7),
    ReminderType.D3: timedelta(days=3),
    ReminderType.D1: timedelta(days=1),
}


def parse_reminder_type(value) -> ReminderType:
    try:
        return ReminderType(value)
    except ValueError:
        raise service_error('INVALID_REMINDER_TYPE')


async def record_reminder(
    store: MeetupStore,
    meetup_id: UUID,
    reminder_type,
    sent_by: Optional[str] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Reminder:
    """Mark a reminder as sent. One row per (meetup, type); later calls overwrite it."""
    reminder_type = parse_reminder_type(reminder_type)
    reminder = await store.upsert_reminder(
        meetup_id,
        reminder_type,
        sent_at=now or datetime.now(timezone.utc),
        sent_by=sent_by or None,
        note=note or None,
    )
    logger.info(f"Reminder {reminder_type.value} recorded for meetup {meetup_id}")
    return reminder


def due_at(meetup: Meetup, reminder_type: ReminderType) -> datetime:
    """When a reminder becomes due. Day-of reminders are due from midnight of the meetup day."""
    if reminder_type == ReminderType.DDAY:
        local = to_display_tz(meetup.date)
        return datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)
    return meetup.date - REMINDER_OFFSETS[reminder_type]


def reminder_schedule(
    meetup: Meetup,
    reminders: List[Reminder],
    now: Optional[datetime] = None,
) -> List[dict]:
    """Reminder status computed on demand from the current time; there is no scheduler."""
    now = now or datetime.now(timezone.utc)
    sent = {r.type: r for r in reminders}

    schedule = []
    for reminder_type in ReminderType:
        record = sent.get(reminder_type)
        due = due_at(meetup, reminder_type)
        already_sent = record is not None and record.sent_at is not None
        schedule.append({
            "type": reminder_type,
            "due_at": due,
            "is_due": due <= now < meetup.date and not already_sent,
            "sent_at": record.sent_at if record else None,
            "sent_by": record.sent_by if record else None,
            "note": record.note if record else None,
        })
    return schedule
