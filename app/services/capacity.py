"""
Capacity & waitlist policy.

Admission decides whether a new registration takes a main slot or a waitlist
slot. Promotion moves the head of the waitlist into a freed main slot.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from app.models.domain import Meetup, MeetupStatus, Participant, ParticipantStatus
from app.services.store import MeetupStore
from app.utils.errors import service_error

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_hex(8)


def generate_host_code() -> str:
    return secrets.token_hex(4)


async def get_meetup_or_404(store: MeetupStore, meetup_id: UUID) -> Meetup:
    meetup = await store.get_meetup(meetup_id)
    if meetup is None:
        raise service_error('MEETUP_NOT_FOUND')
    return meetup


async def admit(
    store: MeetupStore,
    meetup_id: UUID,
    name: str,
    phone: str,
    now: Optional[datetime] = None,
) -> Tuple[Participant, Optional[int]]:
    """
    Register a participant, deciding between a main slot and the waitlist.

    The count-then-insert runs under the meetup lock so two registrations
    near the capacity boundary cannot both take the last slot.

    Returns:
        (participant, waitlist position or None)

    Raises:
        MEETUP_NOT_FOUND, MEETUP_CLOSED, DUPLICATE_REGISTRATION, WAITLIST_FULL
    """
    now = now or datetime.now(timezone.utc)
    meetup = await get_meetup_or_404(store, meetup_id)
    if meetup.status != MeetupStatus.OPEN:
        raise service_error('MEETUP_CLOSED')

    async with store.locked(meetup_id) as tx:
        if await tx.find_active_participant(meetup_id, phone):
            raise service_error('DUPLICATE_REGISTRATION')

        registered_count = await tx.count_active(meetup_id, waitlisted=False)
        is_waitlisted = registered_count >= meetup.max_participants
        position = None

        if is_waitlisted:
            waitlist_count = await tx.count_active(meetup_id, waitlisted=True)
            if meetup.max_waitlist is not None and waitlist_count >= meetup.max_waitlist:
                raise service_error('WAITLIST_FULL')
            position = waitlist_count + 1

        participant = await tx.create_participant(
            meetup_id=meetup_id,
            name=name,
            phone=phone,
            token=generate_token(),
            status=ParticipantStatus.WAITLISTED if is_waitlisted else ParticipantStatus.REGISTERED,
            is_waitlisted=is_waitlisted,
            registered_at=now,
        )

    logger.info(
        f"Admitted participant {participant.id} to meetup {meetup_id} "
        f"as {participant.status.value} (registered={registered_count}, capacity={meetup.max_participants})"
    )
    return participant, position


async def promote_next(store: MeetupStore, meetup_id: UUID) -> Optional[Participant]:
    """
    Move the oldest waitlisted participant into a main slot.

    Registration time is kept; the promoted participant still has to confirm.
    Callers hold the meetup lock.
    """
    head = await store.first_waitlisted(meetup_id)
    if head is None:
        return None

    promoted = await store.update_participant(
        head.id,
        status=ParticipantStatus.REGISTERED,
        is_waitlisted=False,
    )
    logger.info(f"Promoted waitlisted participant {promoted.id} in meetup {meetup_id}")
    return promoted


async def waitlist_position(store: MeetupStore, participant: Participant) -> Optional[int]:
    """1-based FIFO position of a waitlisted participant, None otherwise."""
    if not participant.is_waitlisted or participant.status != ParticipantStatus.WAITLISTED:
        return None
    queue = [
        p for p in await store.list_participants(participant.meetup_id)
        if p.is_waitlisted and p.status == ParticipantStatus.WAITLISTED
    ]
    for index, p in enumerate(queue, start=1):
        if p.id == participant.id:
            return index
    return None
