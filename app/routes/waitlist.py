from fastapi import APIRouter, Depends, Request
from uuid import UUID

from app.auth import HostCredential, authorize_host
from app.dependencies import get_host_credential, get_store
from app.models.domain import ParticipantStatus
from app.models.requests import WaitlistResponseRequest
from app.models.responses import (
    ParticipantInfo,
    PromotedInfo,
    RosterResponse,
    StatusChangeResponse,
)
from app.services import transitions
from app.services.capacity import get_meetup_or_404
from app.services.meetups import occupancy
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups", tags=["waitlist"])


@router.get("/{meetup_id}/waitlist", response_model=RosterResponse)
@limiter.limit("60/minute")
async def get_waitlist(
    request: Request,
    meetup_id: UUID,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    View waitlist (host only).

    Sorted by position ASC.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential)

    queue = [
        p for p in await store.list_participants(meetup_id)
        if p.is_waitlisted and p.status == ParticipantStatus.WAITLISTED
    ]
    registered, waitlisted = await occupancy(store, meetup_id)

    return RosterResponse(
        meetup_id=meetup_id,
        total_count=len(queue),
        registered_count=registered,
        waitlist_count=waitlisted,
        participants=[ParticipantInfo.from_participant(p) for p in queue]
    )


@router.post("/participants/waitlist-response", response_model=StatusChangeResponse)
@limiter.limit("10/minute")
async def respond_to_waitlist_offer(
    request: Request,
    body: WaitlistResponseRequest,
    store: MeetupStore = Depends(get_store),
):
    """
    Accept or pass on an offered slot.

    Accept confirms directly; pass hands the slot to the next in line.
    """
    participant, promoted = await transitions.respond_to_offer(store, body.token, body.action)

    return StatusChangeResponse(
        participant_id=participant.id,
        status=participant.status,
        promoted=PromotedInfo.from_participant(promoted),
        message="Your spot is confirmed!" if body.action == "accept" else "You passed on this spot"
    )
