import re
from datetime import datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from app.config import settings

PHONE_PATTERN = re.compile(r"^01[016789]-?\d{3,4}-?\d{4}$")
WEEKDAYS = ["월", "화", "수", "목", "금", "토", "일"]


def is_valid_phone(phone: str) -> bool:
    """Korean mobile number, hyphens optional (010-1234-5678)."""
    return bool(PHONE_PATTERN.match(re.sub(r"\s", "", phone)))


def normalize_phone(phone: str) -> str:
    """Strip whitespace and '-' so differently formatted numbers compare equal."""
    return re.sub(r"\s", "", phone).replace("-", "")


def sms_number(phone: str) -> str:
    return phone.replace("-", "")


def format_fee(fee: Union[int, str, None]) -> Optional[str]:
    """15000 -> '15,000원'"""
    if fee is None or fee == "":
        return None
    try:
        num = int(fee)
    except (TypeError, ValueError):
        return None
    return f"{num:,}원"


def to_display_tz(value: datetime) -> datetime:
    return value.astimezone(ZoneInfo(settings.DISPLAY_TIMEZONE))


def format_date(value: datetime) -> str:
    """'3월 14일 (토)'"""
    return f"{value.month}월 {value.day}일 ({WEEKDAYS[value.weekday()]})"


def format_time(value: datetime) -> str:
    """'오후 07:30'"""
    meridiem = "오전" if value.hour < 12 else "오후"
    hour = value.hour % 12 or 12
    return f"{meridiem} {hour:02d}:{value.minute:02d}"
