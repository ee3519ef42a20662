"""
Participant status transitions.

registered/waitlisted -> confirmed -> attended | noshow, with cancelled
reachable from any non-terminal state. Terminal states never transition again;
re-invoking an action on them raises ALREADY_PROCESSED.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

from app.config import settings
from app.models.domain import Meetup, Participant, ParticipantStatus
from app.services.capacity import get_meetup_or_404, promote_next
from app.services.store import MeetupStore
from app.utils.errors import service_error
from app.utils.formatting import normalize_phone

logger = logging.getLogger(__name__)

CONFIRMABLE_STATES = {ParticipantStatus.REGISTERED, ParticipantStatus.WAITLISTED}
CANCELLABLE_STATES = {ParticipantStatus.REGISTERED, ParticipantStatus.CONFIRMED, ParticipantStatus.WAITLISTED}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_participant_by_token(store: MeetupStore, token: str) -> Participant:
    participant = await store.get_participant_by_token(token)
    if participant is None:
        raise service_error('PARTICIPANT_NOT_FOUND')
    return participant


async def _reload(store: MeetupStore, participant_id: UUID) -> Participant:
    participant = await store.get_participant(participant_id)
    if participant is None:
        raise service_error('PARTICIPANT_NOT_FOUND')
    return participant


async def fill_free_slot(store: MeetupStore, meetup: Meetup) -> Optional[Participant]:
    """Promote the waitlist head if a main slot is open. Callers hold the meetup lock."""
    registered = await store.count_active(meetup.id, waitlisted=False)
    if registered >= meetup.max_participants:
        return None
    return await promote_next(store, meetup.id)


def check_cancellation_window(meetup: Meetup, participant: Participant, now: datetime) -> None:
    """Committed participants may not cancel inside the cutoff window."""
    if participant.is_waitlisted:
        return
    if meetup.date - now < timedelta(hours=settings.CANCEL_CUTOFF_HOURS):
        raise service_error('TOO_CLOSE_TO_EVENT')


async def confirm(store: MeetupStore, token: str, now: Optional[datetime] = None) -> Participant:
    """Self-service confirm. Allowed from registered and, as a statement of interest, from waitlisted."""
    now = now or _utcnow()
    participant = await get_participant_by_token(store, token)

    async with store.locked(participant.meetup_id) as tx:
        participant = await _reload(tx, participant.id)
        if participant.status not in CONFIRMABLE_STATES:
            raise service_error('ALREADY_PROCESSED')

        confirmed = await tx.update_participant(
            participant.id,
            status=ParticipantStatus.CONFIRMED,
            confirmed_at=now,
        )

    logger.info(f"Participant {confirmed.id} confirmed for meetup {confirmed.meetup_id}")
    return confirmed


async def cancel(
    store: MeetupStore,
    token: str,
    now: Optional[datetime] = None,
) -> Tuple[Participant, Optional[Participant]]:
    """
    Self-service cancellation.

    Cancelling a committed (non-waitlisted) participant frees a slot and
    promotes the waitlist head in the same transaction.

    Returns:
        (cancelled participant, promoted participant or None)
    """
    now = now or _utcnow()
    participant = await get_participant_by_token(store, token)
    meetup = await get_meetup_or_404(store, participant.meetup_id)

    async with store.locked(meetup.id) as tx:
        participant = await _reload(tx, participant.id)
        if participant.status not in CANCELLABLE_STATES:
            raise service_error('ALREADY_PROCESSED')

        check_cancellation_window(meetup, participant, now)

        was_waitlisted = participant.is_waitlisted
        cancelled = await tx.update_participant(participant.id, status=ParticipantStatus.CANCELLED)

        promoted = None
        if not was_waitlisted:
            promoted = await fill_free_slot(tx, meetup)

    logger.info(
        f"Participant {cancelled.id} cancelled for meetup {meetup.id}"
        + (f", promoted {promoted.id}" if promoted else "")
    )
    return cancelled, promoted


async def respond(
    store: MeetupStore,
    token: str,
    action: str,
    now: Optional[datetime] = None,
) -> Tuple[Participant, Optional[Participant]]:
    """Confirm-link handler: action is 'confirm' or 'cancel'."""
    if action == "confirm":
        return await confirm(store, token, now), None
    if action == "cancel":
        return await cancel(store, token, now)
    raise service_error('INVALID_ACTION')


def _holds_offer(participant: Participant) -> bool:
    # Waitlisted, freshly promoted, or confirmed while still queued
    if participant.status in (ParticipantStatus.WAITLISTED, ParticipantStatus.REGISTERED):
        return True
    return participant.status == ParticipantStatus.CONFIRMED and participant.is_waitlisted


async def respond_to_offer(
    store: MeetupStore,
    token: str,
    action: str,
    now: Optional[datetime] = None,
) -> Tuple[Participant, Optional[Participant]]:
    """
    Waitlist slot offer: 'accept' confirms directly, 'pass' gives the slot up.

    The offer recipient holds the offered slot. Accepting takes it without a
    capacity check; passing hands it to the next waitlisted participant, so
    repeated passes walk down the queue until someone accepts or it is empty.

    Returns:
        (participant, participant promoted by a pass or None)
    """
    if action not in ("accept", "pass"):
        raise service_error('INVALID_ACTION')

    now = now or _utcnow()
    participant = await get_participant_by_token(store, token)
    meetup = await get_meetup_or_404(store, participant.meetup_id)

    async with store.locked(meetup.id) as tx:
        participant = await _reload(tx, participant.id)
        if not _holds_offer(participant):
            raise service_error('ALREADY_PROCESSED')

        if action == "accept":
            accepted = await tx.update_participant(
                participant.id,
                status=ParticipantStatus.CONFIRMED,
                is_waitlisted=False,
                confirmed_at=now,
            )
            logger.info(f"Participant {accepted.id} accepted waitlist offer for meetup {meetup.id}")
            return accepted, None

        passed = await tx.update_participant(participant.id, status=ParticipantStatus.CANCELLED)
        promoted = await promote_next(tx, meetup.id)

    logger.info(
        f"Participant {passed.id} passed on waitlist offer for meetup {meetup.id}"
        + (f", promoted {promoted.id}" if promoted else "")
    )
    return passed, promoted


async def mark_attendance(
    store: MeetupStore,
    meetup_id: UUID,
    participant_id: UUID,
    action: str,
    now: Optional[datetime] = None,
) -> Participant:
    """Host check-in ('checkin') or no-show ('noshow') of a confirmed participant."""
    if action not in ("checkin", "noshow"):
        raise service_error('INVALID_ACTION')

    now = now or _utcnow()
    participant = await store.get_participant(participant_id)
    if participant is None or participant.meetup_id != meetup_id:
        raise service_error('PARTICIPANT_NOT_FOUND')
    if participant.status != ParticipantStatus.CONFIRMED:
        raise service_error('INVALID_TRANSITION')

    if action == "checkin":
        updated = await store.update_participant(
            participant.id,
            status=ParticipantStatus.ATTENDED,
            checked_in_at=now,
        )
    else:
        updated = await store.update_participant(participant.id, status=ParticipantStatus.NOSHOW)

    logger.info(f"Host marked participant {updated.id} as {updated.status.value}")
    return updated


async def self_check_in(
    store: MeetupStore,
    meetup_id: UUID,
    name: str,
    phone: str,
    now: Optional[datetime] = None,
) -> Tuple[Participant, Meetup]:
    """
    Participant check-in at the venue by name and phone number.

    Low assurance: anyone who knows a registrant's name and number can check
    them in. Name must match exactly; phone numbers are compared with
    whitespace and '-' removed.
    """
    now = now or _utcnow()
    meetup = await get_meetup_or_404(store, meetup_id)
    wanted = normalize_phone(phone)

    async with store.locked(meetup_id) as tx:
        matched = next(
            (
                p for p in await tx.list_participants(meetup_id)
                if p.name == name and normalize_phone(p.phone) == wanted
            ),
            None,
        )
        if matched is None:
            raise service_error('CHECKIN_NO_MATCH')
        if matched.status == ParticipantStatus.ATTENDED:
            raise service_error('ALREADY_CHECKED_IN')

        attended = await tx.update_participant(
            matched.id,
            status=ParticipantStatus.ATTENDED,
            checked_in_at=now,
        )

    logger.info(f"Participant {attended.id} self checked in to meetup {meetup_id}")
    return attended, meetup
