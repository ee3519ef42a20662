from fastapi import APIRouter, Depends, Request
from uuid import UUID

from app.auth import HostCredential, authorize_host
from app.dependencies import get_host_credential, get_sms_sender, get_store
from app.models.requests import DispatchNotificationRequest, MarkReminderRequest
from app.models.responses import (
    DispatchResponse,
    ReminderInfo,
    ReminderScheduleEntry,
    ReminderScheduleResponse,
)
from app.services import notifications, reminders
from app.services.capacity import get_meetup_or_404
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups", tags=["notifications"])


@router.get("/{meetup_id}/reminders", response_model=ReminderScheduleResponse)
@limiter.limit("60/minute")
async def get_reminder_schedule(
    request: Request,
    meetup_id: UUID,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Reminder schedule for the host dashboard.

    Due state is computed from the current time on each request.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential)

    schedule = reminders.reminder_schedule(meetup, await store.list_reminders(meetup_id))

    return ReminderScheduleResponse(
        meetup_id=meetup_id,
        reminders=[ReminderScheduleEntry(**entry) for entry in schedule]
    )


@router.post("/{meetup_id}/reminders", response_model=ReminderInfo)
@limiter.limit("30/minute")
async def mark_reminder_sent(
    request: Request,
    meetup_id: UUID,
    body: MarkReminderRequest,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """Record that a reminder went out (host only). Re-marking overwrites."""
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential.with_code(body.host_code))

    reminder = await reminders.record_reminder(
        store,
        meetup_id,
        body.type,
        sent_by=body.sent_by,
        note=body.note,
    )
    return ReminderInfo(**reminder.model_dump())


@router.post("/{meetup_id}/notifications", response_model=DispatchResponse)
@limiter.limit("5/minute")
async def dispatch_notification(
    request: Request,
    meetup_id: UUID,
    body: DispatchNotificationRequest,
    store: MeetupStore = Depends(get_store),
    sender=Depends(get_sms_sender),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Send an SMS batch of one notification type (host only).

    Optional `targets` restricts recipients to those participant ids.
    Reminder types (d7/d3/d1/dday) are recorded as sent on success.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential.with_code(body.host_code))

    count = await notifications.dispatch(store, sender, meetup, body.type, target_ids=body.targets)

    return DispatchResponse(
        meetup_id=meetup_id,
        type=body.type,
        count=count,
        message=f"Sent {count} SMS"
    )
