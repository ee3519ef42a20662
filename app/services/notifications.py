"""
Notification dispatch policy.

Each notification type has a recipient filter and a message template.
Rendering is pure; `dispatch` hands the batch to the SMS transport and, for
the scheduled reminder types, records the reminder as sent.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional
from uuid import UUID

from app.config import settings
from app.models.domain import Meetup, NotificationType, Participant, ParticipantStatus, ReminderType
from app.services.reminders import record_reminder
from app.services.store import MeetupStore
from app.utils.errors import service_error
from app.utils.formatting import format_date, format_time, sms_number, to_display_tz

logger = logging.getLogger(__name__)

REMINDER_TYPES = {t.value for t in ReminderType}

TEMPLATES: Dict[NotificationType, str] = {
    NotificationType.REGISTRATION: (
        "{name}님, {title} 모임에 신청이 완료되었습니다.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "참석 확정: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.D7: (
        "{name}님, {title} 모임이 일주일 앞으로 다가왔습니다.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "미리 참석을 확정해주세요: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.D3: (
        "{name}님, {title} 모임이 3일 앞으로 다가왔습니다.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "미리 참석을 확정해주세요: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.D1: (
        "{name}님, 내일 {title} 모임이 예정되어 있습니다.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "참석 확정: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.DDAY: (
        "{name}님, 오늘 {title} 모임이 있습니다.\n\n"
        "{time}\n{location}{fee}\n\n"
        "참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.CONFIRM_REMINDER: (
        "{name}님, {title} 모임 참석을 확정해주세요.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "참석 확정: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.WAITLIST_PROMOTE: (
        "{name}님, {title} 모임에 자리가 났습니다!\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "참석 확정: {confirm_link}\n참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.WAITLIST_REGISTRATION: (
        "{name}님, {title} 모임 대기 신청이 완료되었습니다.\n\n"
        "현재 대기 순번으로 등록되었으며, 참여자가 빠지면 참여 신청 링크를 전송해드리겠습니다.\n\n"
        "{date} {time}\n{location}"
    ),
    NotificationType.CONFIRMED_COMPLETE: (
        "{name}님, {title} 모임 참석이 확정되었습니다.\n\n"
        "{date} {time}\n{location}{fee}\n\n"
        "참석이 어려우시면: {cancel_link}"
    ),
    NotificationType.CANCELLED_COMPLETE: (
        "{name}님, {title} 모임 참가가 취소되었습니다.\n\n"
        "다음 모임에서 뵙겠습니다."
    ),
}


def _unconfirmed_committed(p: Participant) -> bool:
    return p.status != ParticipantStatus.CONFIRMED and not p.is_waitlisted


def _awaiting_confirmation(p: Participant) -> bool:
    return p.status == ParticipantStatus.REGISTERED and not p.is_waitlisted


def _queued(p: Participant) -> bool:
    return p.is_waitlisted and p.status == ParticipantStatus.WAITLISTED


# None means every targeted participant
RECIPIENT_FILTERS: Dict[NotificationType, Optional[Callable[[Participant], bool]]] = {
    NotificationType.REGISTRATION: None,
    NotificationType.CONFIRMED_COMPLETE: None,
    NotificationType.CANCELLED_COMPLETE: None,
    NotificationType.WAITLIST_REGISTRATION: None,
    NotificationType.D7: _unconfirmed_committed,
    NotificationType.D3: _unconfirmed_committed,
    NotificationType.D1: _unconfirmed_committed,
    NotificationType.DDAY: _unconfirmed_committed,
    NotificationType.CONFIRM_REMINDER: _awaiting_confirmation,
    NotificationType.WAITLIST_PROMOTE: _queued,
}


def parse_notification_type(value) -> NotificationType:
    try:
        return NotificationType(value)
    except ValueError:
        raise service_error('INVALID_NOTIFICATION_TYPE')


def select_recipients(
    notification_type: NotificationType,
    participants: Iterable[Participant],
) -> List[Participant]:
    """
    Apply the per-type filter to an already-targeted, ordered participant set.

    waitlist_promote only ever reaches the head of the queue.
    """
    predicate = RECIPIENT_FILTERS[notification_type]
    selected = [p for p in participants if predicate is None or predicate(p)]
    if notification_type == NotificationType.WAITLIST_PROMOTE:
        return selected[:1]
    return selected


def confirm_link(meetup_id: UUID, token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/confirm/{meetup_id}?token={token}"


def cancel_link(meetup_id: UUID, token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/cancel/{meetup_id}?token={token}"


def render(notification_type: NotificationType, meetup: Meetup, participant: Participant) -> str:
    local = to_display_tz(meetup.date)
    return TEMPLATES[notification_type].format(
        name=participant.name,
        title=meetup.title,
        date=format_date(local),
        time=format_time(local),
        location=meetup.location,
        fee=f"\n참가비: {meetup.fee_display}" if meetup.fee_display else "",
        confirm_link=confirm_link(meetup.id, participant.token),
        cancel_link=cancel_link(meetup.id, participant.token),
    )


def build_messages(
    notification_type: NotificationType,
    meetup: Meetup,
    participants: Iterable[Participant],
) -> List[Dict[str, str]]:
    return [
        {"to": sms_number(p.phone), "text": render(notification_type, meetup, p)}
        for p in select_recipients(notification_type, participants)
    ]


async def dispatch(
    store: MeetupStore,
    sender,
    meetup: Meetup,
    notification_type,
    target_ids: Optional[List[UUID]] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Render and send one notification batch.

    Targets default to every non-cancelled participant. A successful send of
    d7/d3/d1/dday also marks that reminder as sent.

    Returns:
        Number of messages dispatched

    Raises:
        NO_TARGETS when nobody qualifies, SMS_FAILED when the batch fails
    """
    notification_type = parse_notification_type(notification_type)
    now = now or datetime.now(timezone.utc)

    participants = await store.list_participants(meetup.id, ids=target_ids or None)
    if not participants:
        raise service_error('NO_TARGETS')

    messages = build_messages(notification_type, meetup, participants)
    if not messages:
        raise service_error('NO_TARGETS')

    await sender.send_bulk(messages)
    logger.info(f"Dispatched {len(messages)} '{notification_type.value}' messages for meetup {meetup.id}")

    if notification_type.value in REMINDER_TYPES:
        await record_reminder(store, meetup.id, notification_type.value, sent_by="sms", now=now)

    return len(messages)
