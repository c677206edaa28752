import re
from datetime import date, time
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ..errors import ValidationError

HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
HHMM_SS_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class ColorToken(str, Enum):
    blue = "blue"
    green = "green"
    teal = "teal"
    amber = "amber"


class EventColor(str, Enum):
    blue = "blue"
    green = "green"
    teal = "teal"
    amber = "amber"
    red = "red"
    yellow = "yellow"
    orange = "orange"
    purple = "purple"
    pink = "pink"


class MessageResponse(BaseModel):
    message: str


def parse_clock(value: Any, label: str, *, allow_seconds: bool = False) -> time | None:
    """Accept ``time`` objects or ``HH:MM`` (optionally ``HH:MM:SS``) strings."""
    if value is None or isinstance(value, time):
        return value
    pattern = HHMM_SS_RE if allow_seconds else HHMM_RE
    raw = str(value).strip()
    if not pattern.match(raw):
        fmt = "HH:MM or HH:MM:SS" if allow_seconds else "HH:MM"
        raise ValueError(f"{label} must be in {fmt} format")
    parts = [int(p) for p in raw.split(":")]
    return time(*parts)


def hhmm(value: time | None) -> str | None:
    return value.strftime("%H:%M") if value is not None else None


def hhmmss(value: time | None) -> str | None:
    return value.strftime("%H:%M:%S") if value is not None else None


def normalize_weekday(value: Any) -> str:
    raw = str(value or "").strip().lower()
    for day in WEEKDAYS:
        if day.lower() == raw:
            return day
    raise ValueError("Day must be a valid day of the week")


def parse_path_date(value: str) -> date:
    if not ISO_DATE_RE.match(value):
        raise ValidationError.for_field("date", "Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError.for_field("date", "Invalid date format. Use YYYY-MM-DD")


def check_date_range(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError.for_field("end_date", "Start date must be before or equal to end date")
