from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings
from app.utils.formatting import format_fee, is_valid_phone


NULLABLE_FIELDS = ("description", "max_waitlist", "fee_display")


def _phone(value: str) -> str:
    value = value.strip()
    if not is_valid_phone(value):
        raise ValueError("Invalid phone number format (e.g. 010-1234-5678)")
    return value


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are local meetup time
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(settings.DISPLAY_TIMEZONE))
    return value


def _fee(value):
    # Plain numbers are amounts in won; anything else is shown verbatim
    if value is None or value == "":
        return None
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        return format_fee(value)
    return str(value)


class CreateMeetupRequest(BaseModel):
    host_name: str = Field(..., min_length=1, max_length=100)
    host_phone: str
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    date: datetime
    location: str = Field(..., min_length=1, max_length=300)
    max_participants: int = Field(10, ge=2, le=10000)
    max_waitlist: Optional[int] = Field(None, ge=0, le=10000)
    fee_display: Optional[str] = Field(None, max_length=100)

    @field_validator("host_phone")
    @classmethod
    def check_phone(cls, value):
        return _phone(value)

    @field_validator("date")
    @classmethod
    def check_date(cls, value):
        return _aware(value)

    @field_validator("fee_display", mode="before")
    @classmethod
    def check_fee(cls, value):
        return _fee(value)


class EditMeetupRequest(BaseModel):
    host_code: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=300)
    max_participants: Optional[int] = Field(None, ge=2, le=10000)
    max_waitlist: Optional[int] = Field(None, ge=0, le=10000)
    fee_display: Optional[str] = Field(None, max_length=100)

    @field_validator("date")
    @classmethod
    def check_date(cls, value):
        return _aware(value)

    @field_validator("fee_display", mode="before")
    @classmethod
    def check_fee(cls, value):
        return _fee(value)

    def changes(self) -> dict:
        """Fields the caller actually sent, minus the credential and nulled required columns."""
        changes = self.model_dump(exclude_unset=True, exclude={"host_code"})
        return {
            k: v for k, v in changes.items()
            if v is not None or k in NULLABLE_FIELDS
        }


class RegisterParticipantRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value):
        return _phone(value)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)


class RespondRequest(TokenRequest):
    action: str = Field(..., pattern="^(confirm|cancel)$")


class WaitlistResponseRequest(TokenRequest):
    action: str = Field(..., pattern="^(accept|pass)$")


class MarkAttendanceRequest(BaseModel):
    participant_id: UUID
    action: str = Field("checkin", pattern="^(checkin|noshow)$")
    host_code: Optional[str] = None


class SelfCheckInRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)


class HostCodeRequest(BaseModel):
    host_code: Optional[str] = None


class MarkReminderRequest(BaseModel):
    type: str = Field(..., max_length=20)
    sent_by: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = Field(None, max_length=1000)
    host_code: Optional[str] = None


class DispatchNotificationRequest(BaseModel):
    type: str = Field(..., max_length=40)
    targets: Optional[List[UUID]] = Field(None, max_length=1000)
    host_code: Optional[str] = None


class HostSignupRequest(BaseModel):
    username: str = Field(..., min_length=4, max_length=50)
    password: str = Field(..., min_length=6, max_length=200)
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value):
        return _phone(value)


class HostLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
