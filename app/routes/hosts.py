from fastapi import APIRouter, Depends, Request

from app.auth import create_session_token
from app.dependencies import get_current_host, get_store
from app.models.requests import HostLoginRequest, HostSignupRequest
from app.models.responses import HostLoginResponse, HostMeetup, HostSignupResponse, MyMeetupsResponse
from app.services import hosts
from app.services.store import MeetupStore
from app.utils.rate_limit import limiter

router = APIRouter(prefix="/api/v1/meetups/hosts", tags=["hosts"])


@router.post("/signup", response_model=HostSignupResponse, status_code=201)
@limiter.limit("5/minute")
async def signup(
    request: Request,
    body: HostSignupRequest,
    store: MeetupStore = Depends(get_store),
):
    """Create a host account."""
    host = await hosts.signup(store, **body.model_dump())
    return HostSignupResponse(host_id=host.id, username=host.username, message="Host account created")


@router.post("/login", response_model=HostLoginResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: HostLoginRequest,
    store: MeetupStore = Depends(get_store),
):
    """Exchange username/password for a bearer session token."""
    host = await hosts.login(store, body.username, body.password)
    return HostLoginResponse(
        access_token=create_session_token(host),
        host_id=host.id,
        username=host.username
    )


@router.get("/me/meetups", response_model=MyMeetupsResponse)
@limiter.limit("60/minute")
async def my_meetups(
    request: Request,
    current_host: dict = Depends(get_current_host),
    store: MeetupStore = Depends(get_store),
):
    """Meetups owned by the logged-in host, newest date first."""
    meetups = await store.list_meetups_for_host(current_host["host_id"])
    return MyMeetupsResponse(
        host_id=current_host["host_id"],
        total_count=len(meetups),
        meetups=[HostMeetup(**m.model_dump()) for m in meetups]
    )
