from fastapi import APIRouter, Depends, Request
from uuid import UUID

from app.auth import HostCredential, authorize_host
from app.dependencies import get_host_credential, get_store
from app.models.requests import CreateMeetupRequest, EditMeetupRequest, HostCodeRequest
from app.models.responses import (
    ConfirmationRequestResponse,
    HostMeetup,
    ParticipantInfo,
    PendingConfirmation,
    PublicMeetup,
    RosterResponse,
)
from app.services import meetups as meetup_service
from app.services.capacity import get_meetup_or_404
from app.services.notifications import confirm_link
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups", tags=["meetups"])


@router.post("", response_model=HostMeetup, status_code=201)
@limiter.limit("10/minute")
async def create_meetup(
    request: Request,
    body: CreateMeetupRequest,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Create a meetup.

    Returns the host access code; a logged-in host also becomes the owner.
    """
    meetup = await meetup_service.create_meetup(
        store,
        **body.model_dump(),
        host_id=credential.host_id,
    )
    return HostMeetup(**meetup.model_dump())


@router.get("/{meetup_id}", response_model=PublicMeetup)
@limiter.limit("120/minute")
async def get_meetup(
    request: Request,
    meetup_id: UUID,
    store: MeetupStore = Depends(get_store),
):
    """Public meetup page data with current occupancy (no auth required)."""
    meetup = await get_meetup_or_404(store, meetup_id)
    registered, waitlisted = await meetup_service.occupancy(store, meetup_id)
    return PublicMeetup.build(meetup, registered, waitlisted)


@router.put("/{meetup_id}", response_model=HostMeetup)
@limiter.limit("20/minute")
async def edit_meetup(
    request: Request,
    meetup_id: UUID,
    body: EditMeetupRequest,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """Edit title, description, date, location, capacity, waitlist cap or fee (host only)."""
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential.with_code(body.host_code))

    updated = await meetup_service.edit_meetup(store, meetup, body.changes())
    return HostMeetup(**updated.model_dump())


@router.get("/{meetup_id}/participants", response_model=RosterResponse)
@limiter.limit("60/minute")
async def get_roster(
    request: Request,
    meetup_id: UUID,
    include_cancelled: bool = True,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Full participant roster (host only).

    Sorted by registration time ASC.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential)

    participants = await store.list_participants(meetup_id, include_cancelled=include_cancelled)
    registered, waitlisted = await meetup_service.occupancy(store, meetup_id)

    return RosterResponse(
        meetup_id=meetup_id,
        total_count=len(participants),
        registered_count=registered,
        waitlist_count=waitlisted,
        participants=[ParticipantInfo.from_participant(p) for p in participants]
    )


@router.post("/{meetup_id}/confirmation-request", response_model=ConfirmationRequestResponse)
@limiter.limit("10/minute")
async def request_confirmations(
    request: Request,
    meetup_id: UUID,
    body: HostCodeRequest,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Open the confirmation round (host only).

    Returns registered participants with the confirm links to share.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential.with_code(body.host_code))

    meetup, pending = await meetup_service.request_confirmations(store, meetup_id)

    return ConfirmationRequestResponse(
        meetup_id=meetup_id,
        confirmation_sent=meetup.confirmation_sent,
        participants=[
            PendingConfirmation(
                participant_id=p.id,
                name=p.name,
                phone=p.phone,
                confirm_link=confirm_link(meetup_id, p.token)
            )
            for p in pending
        ],
        message="Confirmation round opened. Share the confirm links with participants."
    )
