import logging
from typing import List, Optional, Tuple
from uuid import UUID

from app.models.domain import Meetup, Participant, ParticipantStatus
from app.services.capacity import generate_host_code, get_meetup_or_404
from app.services.store import MEETUP_EDITABLE_FIELDS, MeetupStore
from app.utils.errors import service_error

logger = logging.getLogger(__name__)


async def create_meetup(
    store: MeetupStore,
    *,
    title: str,
    date,
    location: str,
    host_name: str,
    host_phone: str,
    max_participants: int = 10,
    max_waitlist: Optional[int] = None,
    description: Optional[str] = None,
    fee_display: Optional[str] = None,
    host_id: Optional[UUID] = None,
) -> Meetup:
    """Create a meetup with a fresh host access code."""
    if max_participants < 2:
        raise service_error('INVALID_CAPACITY')

    meetup = await store.create_meetup(
        title=title,
        description=description or None,
        date=date,
        location=location,
        max_participants=max_participants,
        max_waitlist=max_waitlist,
        fee_display=fee_display or None,
        host_name=host_name,
        host_phone=host_phone,
        host_code=generate_host_code(),
        host_id=host_id,
    )
    logger.info(f"Meetup {meetup.id} created (capacity={meetup.max_participants}, waitlist={meetup.max_waitlist})")
    return meetup


async def edit_meetup(store: MeetupStore, meetup: Meetup, changes: dict) -> Meetup:
    """Apply a host edit. Only the editable fields are considered."""
    updates = {k: v for k, v in changes.items() if k in MEETUP_EDITABLE_FIELDS}
    if not updates:
        raise service_error('NO_CHANGES')
    if "max_participants" in updates and (updates["max_participants"] is None or updates["max_participants"] < 2):
        raise service_error('INVALID_CAPACITY')

    updated = await store.update_meetup(meetup.id, updates)
    logger.info(f"Meetup {meetup.id} edited: {sorted(updates)}")
    return updated


async def occupancy(store: MeetupStore, meetup_id: UUID) -> Tuple[int, int]:
    """(registered count, waitlist count) over non-cancelled participants."""
    registered = await store.count_active(meetup_id, waitlisted=False)
    waitlisted = await store.count_active(meetup_id, waitlisted=True)
    return registered, waitlisted


async def request_confirmations(store: MeetupStore, meetup_id: UUID) -> Tuple[Meetup, List[Participant]]:
    """
    Open the confirmation round for a meetup.

    Flags the meetup and returns the registered, non-waitlisted participants
    who still need a confirm link.
    """
    await get_meetup_or_404(store, meetup_id)
    meetup = await store.update_meetup(meetup_id, {"confirmation_sent": True})
    pending = [
        p for p in await store.list_participants(meetup_id)
        if p.status == ParticipantStatus.REGISTERED and not p.is_waitlisted
    ]
    logger.info(f"Confirmation round opened for meetup {meetup_id}: {len(pending)} pending")
    return meetup, pending
