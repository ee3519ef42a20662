from fastapi import APIRouter, Depends, Request
from uuid import UUID

from app.auth import HostCredential, authorize_host
from app.dependencies import get_host_credential, get_store
from app.models.requests import MarkAttendanceRequest, SelfCheckInRequest
from app.models.responses import AttendanceResponse, SelfCheckInResponse
from app.services import transitions
from app.services.capacity import get_meetup_or_404
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups", tags=["attendance"])


@router.post("/{meetup_id}/attendance", response_model=AttendanceResponse)
@limiter.limit("60/minute")
async def mark_attendance(
    request: Request,
    meetup_id: UUID,
    body: MarkAttendanceRequest,
    store: MeetupStore = Depends(get_store),
    credential: HostCredential = Depends(get_host_credential),
):
    """
    Check in or mark no-show for a confirmed participant (host only).

    Check-in records the check-in time; no-show does not.
    """
    meetup = await get_meetup_or_404(store, meetup_id)
    authorize_host(meetup, credential.with_code(body.host_code))

    participant = await transitions.mark_attendance(store, meetup_id, body.participant_id, body.action)

    return AttendanceResponse(
        participant_id=participant.id,
        meetup_id=meetup_id,
        status=participant.status,
        checked_in_at=participant.checked_in_at,
        message="Checked in" if body.action == "checkin" else "Marked as no-show"
    )


@router.post("/{meetup_id}/self-checkin", response_model=SelfCheckInResponse)
@limiter.limit("10/minute")
async def self_check_in(
    request: Request,
    meetup_id: UUID,
    body: SelfCheckInRequest,
    store: MeetupStore = Depends(get_store),
):
    """
    Participant check-in by name and phone number (no token).

    Low-assurance: matches on data other attendees may know.
    """
    participant, meetup = await transitions.self_check_in(store, meetup_id, body.name, body.phone)

    return SelfCheckInResponse(
        participant_name=participant.name,
        meetup_title=meetup.title,
        status=participant.status,
        checked_in_at=participant.checked_in_at,
        message="Attendance confirmed!"
    )
