from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


class ParticipantStatus(str, Enum):
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"
    ATTENDED = "attended"
    NOSHOW = "noshow"


class MeetupStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ReminderType(str, Enum):
    D7 = "d7"
    D3 = "d3"
    D1 = "d1"
    DDAY = "dday"


class NotificationType(str, Enum):
    REGISTRATION = "registration"
    D7 = "d7"
    D3 = "d3"
    D1 = "d1"
    DDAY = "dday"
    CONFIRM_REMINDER = "confirm_reminder"
    WAITLIST_PROMOTE = "waitlist_promote"
    WAITLIST_REGISTRATION = "waitlist_registration"
    CONFIRMED_COMPLETE = "confirmed_complete"
    CANCELLED_COMPLETE = "cancelled_complete"


class Meetup(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    date: datetime
    location: str
    max_participants: int
    max_waitlist: Optional[int] = None
    fee_display: Optional[str] = None
    host_name: str
    host_phone: str
    host_code: str
    host_id: Optional[UUID] = None
    status: MeetupStatus = MeetupStatus.OPEN
    confirmation_sent: bool = False
    created_at: datetime


class Participant(BaseModel):
    id: UUID
    meetup_id: UUID
    name: str
    phone: str
    token: str
    status: ParticipantStatus
    is_waitlisted: bool = False
    registered_at: datetime
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None


class Reminder(BaseModel):
    id: UUID
    meetup_id: UUID
    type: ReminderType
    sent_at: Optional[datetime] = None
    sent_by: Optional[str] = None
    note: Optional[str] = None


class Host(BaseModel):
    id: UUID
    username: str
    name: str
    email: str
    phone: str
    password_hash: str
    created_at: datetime
