from fastapi import APIRouter, Depends, Request
from uuid import UUID

from app.dependencies import get_store
from app.models.requests import RegisterParticipantRequest, RespondRequest, TokenRequest
from app.models.responses import (
    PromotedInfo,
    PublicMeetup,
    RegisterParticipantResponse,
    StatusChangeResponse,
    TokenLookupResponse,
)
from app.services import capacity, transitions
from app.services.meetups import occupancy
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups", tags=["participation"])


@router.post("/{meetup_id}/participants", response_model=RegisterParticipantResponse, status_code=201)
@limiter.limit("10/minute")
async def register_participant(
    request: Request,
    meetup_id: UUID,
    body: RegisterParticipantRequest,
    store: MeetupStore = Depends(get_store),
):
    """
    Register for a meetup (or join the waitlist if full).

    One active registration per phone number per meetup.
    """
    participant, position = await capacity.admit(store, meetup_id, body.name, body.phone)

    if participant.is_waitlisted:
        message = f"Meetup is full. You have been added to the waitlist at position {position}."
    else:
        message = "Successfully registered"

    return RegisterParticipantResponse(
        participant_id=participant.id,
        meetup_id=meetup_id,
        name=participant.name,
        token=participant.token,
        status=participant.status,
        is_waitlisted=participant.is_waitlisted,
        waitlist_position=position,
        registered_at=participant.registered_at,
        message=message
    )


@router.get("/participants/by-token/{token}", response_model=TokenLookupResponse)
@limiter.limit("60/minute")
async def get_participant_by_token(
    request: Request,
    token: str,
    store: MeetupStore = Depends(get_store),
):
    """Participant and meetup behind a confirm/cancel/waitlist link."""
    participant = await transitions.get_participant_by_token(store, token)
    meetup = await capacity.get_meetup_or_404(store, participant.meetup_id)
    registered, waitlisted = await occupancy(store, meetup.id)

    return TokenLookupResponse(
        participant_id=participant.id,
        name=participant.name,
        status=participant.status,
        is_waitlisted=participant.is_waitlisted,
        waitlist_position=await capacity.waitlist_position(store, participant),
        meetup=PublicMeetup.build(meetup, registered, waitlisted)
    )


@router.post("/participants/respond", response_model=StatusChangeResponse)
@limiter.limit("10/minute")
async def respond(
    request: Request,
    body: RespondRequest,
    store: MeetupStore = Depends(get_store),
):
    """
    Confirm link: confirm attendance or cancel.

    Cancelling a committed participant promotes the next waitlisted one.
    """
    participant, promoted = await transitions.respond(store, body.token, body.action)

    return StatusChangeResponse(
        participant_id=participant.id,
        status=participant.status,
        promoted=PromotedInfo.from_participant(promoted),
        message="Attendance confirmed" if body.action == "confirm" else "Participation cancelled"
    )


@router.post("/participants/cancel", response_model=StatusChangeResponse)
@limiter.limit("10/minute")
async def cancel_participation(
    request: Request,
    body: TokenRequest,
    store: MeetupStore = Depends(get_store),
):
    """
    Cancel link.

    Blocked within 24 hours of the meetup unless still waitlisted.
    """
    participant, promoted = await transitions.cancel(store, body.token)

    return StatusChangeResponse(
        participant_id=participant.id,
        status=participant.status,
        promoted=PromotedInfo.from_participant(promoted),
        message="Participation cancelled"
    )
