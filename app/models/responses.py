from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.models.domain import Meetup, MeetupStatus, Participant, ParticipantStatus, ReminderType


class PromotedInfo(BaseModel):
    participant_id: UUID
    name: str
    phone: str

    @classmethod
    def from_participant(cls, participant: Optional[Participant]) -> Optional["PromotedInfo"]:
        if participant is None:
            return None
        return cls(participant_id=participant.id, name=participant.name, phone=participant.phone)


class PublicMeetup(BaseModel):
    """Meetup as shown on the shareable page (no access code)."""
    id: UUID
    title: str
    description: Optional[str]
    date: datetime
    location: str
    max_participants: int
    max_waitlist: Optional[int]
    fee_display: Optional[str]
    host_name: str
    status: MeetupStatus
    registered_count: int
    waitlist_count: int

    @classmethod
    def build(cls, meetup: Meetup, registered_count: int, waitlist_count: int) -> "PublicMeetup":
        return cls(
            **meetup.model_dump(include={
                "id", "title", "description", "date", "location", "max_participants",
                "max_waitlist", "fee_display", "host_name", "status",
            }),
            registered_count=registered_count,
            waitlist_count=waitlist_count,
        )


class HostMeetup(BaseModel):
    """Meetup as seen by its host, including the access code."""
    id: UUID
    title: str
    description: Optional[str]
    date: datetime
    location: str
    max_participants: int
    max_waitlist: Optional[int]
    fee_display: Optional[str]
    host_name: str
    host_phone: str
    host_code: str
    host_id: Optional[UUID]
    status: MeetupStatus
    confirmation_sent: bool
    created_at: datetime


class MyMeetupsResponse(BaseModel):
    host_id: UUID
    total_count: int
    meetups: List[HostMeetup]


class RegisterParticipantResponse(BaseModel):
    participant_id: UUID
    meetup_id: UUID
    name: str
    token: str
    status: ParticipantStatus
    is_waitlisted: bool
    waitlist_position: Optional[int] = None
    registered_at: datetime
    message: str


class ParticipantInfo(BaseModel):
    participant_id: UUID
    name: str
    phone: str
    token: str
    status: ParticipantStatus
    is_waitlisted: bool
    registered_at: datetime
    confirmed_at: Optional[datetime]
    checked_in_at: Optional[datetime]

    @classmethod
    def from_participant(cls, p: Participant) -> "ParticipantInfo":
        return cls(
            participant_id=p.id,
            name=p.name,
            phone=p.phone,
            token=p.token,
            status=p.status,
            is_waitlisted=p.is_waitlisted,
            registered_at=p.registered_at,
            confirmed_at=p.confirmed_at,
            checked_in_at=p.checked_in_at,
        )


class RosterResponse(BaseModel):
    meetup_id: UUID
    total_count: int
    registered_count: int
    waitlist_count: int
    participants: List[ParticipantInfo]


class TokenLookupResponse(BaseModel):
    participant_id: UUID
    name: str
    status: ParticipantStatus
    is_waitlisted: bool
    waitlist_position: Optional[int] = None
    meetup: PublicMeetup


class StatusChangeResponse(BaseModel):
    participant_id: UUID
    status: ParticipantStatus
    promoted: Optional[PromotedInfo] = None
    message: str


class AttendanceResponse(BaseModel):
    participant_id: UUID
    meetup_id: UUID
    status: ParticipantStatus
    checked_in_at: Optional[datetime]
    message: str


class SelfCheckInResponse(BaseModel):
    participant_name: str
    meetup_title: str
    status: ParticipantStatus
    checked_in_at: datetime
    message: str


class PendingConfirmation(BaseModel):
    participant_id: UUID
    name: str
    phone: str
    confirm_link: str


class ConfirmationRequestResponse(BaseModel):
    meetup_id: UUID
    confirmation_sent: bool
    participants: List[PendingConfirmation]
    message: str


class ReminderInfo(BaseModel):
    id: UUID
    meetup_id: UUID
    type: ReminderType
    sent_at: Optional[datetime]
    sent_by: Optional[str]
    note: Optional[str]


class ReminderScheduleEntry(BaseModel):
    type: ReminderType
    due_at: datetime
    is_due: bool
    sent_at: Optional[datetime]
    sent_by: Optional[str]
    note: Optional[str]


class ReminderScheduleResponse(BaseModel):
    meetup_id: UUID
    reminders: List[ReminderScheduleEntry]


class DispatchResponse(BaseModel):
    meetup_id: UUID
    type: str
    count: int
    message: str


class HostSignupResponse(BaseModel):
    host_id: UUID
    username: str
    message: str


class HostLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    host_id: UUID
    username: str
