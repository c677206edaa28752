"""
Day resolution for the calendar views.

For a target date this module collects what applies to it from three sources:
good timings (a date range with time slots), calendar events (single or
multi-day, timed or all-day) and the static auspicious-timing entries. Every
match is flattened into a ``ResolvedWindow`` holding one or more
``ResolvedSlot`` rows so the day, week and month views render a single shape.

Everything here is pure: no database access, no clock reads. Candidates may be
ORM objects or plain mappings; a candidate whose dates cannot be read is
skipped and logged instead of failing the whole day.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

SOURCE_GOOD_TIMING = "good_timing"
SOURCE_CALENDAR_EVENT = "calendar_event"
SOURCE_AUSPICIOUS = "auspicious"

ALL_DAY_START = "00:00"
ALL_DAY_END = "23:59"
DEFAULT_EVENT_CATEGORY = "Event"
DEFAULT_EVENT_COLOR = "blue"


@dataclass(frozen=True)
class ResolvedSlot:
    start_time: str
    end_time: str
    category_name: str | None
    category_color: str | None
    description: str | None
    is_all_day: bool = False


@dataclass(frozen=True)
class ResolvedWindow:
    source: str
    source_id: int | str | None
    window_label: str
    start_date: date
    end_date: date
    time_slots: tuple[ResolvedSlot, ...]


@dataclass(frozen=True)
class GridCell:
    date: date
    visible: tuple[ResolvedSlot, ...]
    more: int
    total: int


def _get(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        value = item.get(name, default)
    else:
        value = getattr(item, name, default)
    return default if value is None else value


def to_calendar_date(value: Any) -> date | None:
    """Normalize a date, datetime or ISO string to a calendar date, or None if unreadable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None
    # datetimes keep the date as written; the offset is not applied
    if "T" not in raw:
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_hhmm(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    raw = str(value).strip()
    if not raw:
        return None
    hours, _, rest = raw.partition(":")
    if hours.isdigit() and rest[:2].isdigit():
        return f"{int(hours):02d}:{rest[:2]}"
    return raw


def good_timing_applies(timing: Any, target: date) -> bool:
    # the weekday label is not consulted, the date range alone decides
    start = to_calendar_date(_get(timing, "start_date"))
    end = to_calendar_date(_get(timing, "end_date"))
    if start is None or end is None:
        logger.debug("calendar_candidate_skipped", source=SOURCE_GOOD_TIMING, id=_get(timing, "id"))
        return False
    return start <= target <= end


def event_applies(event: Any, target: date) -> bool:
    start = to_calendar_date(_get(event, "start_date"))
    end = to_calendar_date(_get(event, "end_date"))
    if start is None or end is None:
        logger.debug(
            "calendar_candidate_skipped",
            source=SOURCE_CALENDAR_EVENT,
            id=_get(event, "id"),
            start_date=str(_get(event, "start_date")),
            end_date=str(_get(event, "end_date")),
        )
        return False
    if start == end:
        return start == target
    return start <= target <= end


def auspicious_entry_applies(entry: Any, target: date) -> bool:
    return to_calendar_date(_get(entry, "date")) == target


def _good_timing_window(timing: Any) -> ResolvedWindow:
    slots = tuple(
        ResolvedSlot(
            start_time=format_hhmm(_get(slot, "start_time")) or ALL_DAY_START,
            end_time=format_hhmm(_get(slot, "end_time")) or ALL_DAY_END,
            category_name=_get(slot, "category_name"),
            category_color=_get(slot, "category_color"),
            description=_get(slot, "description"),
        )
        for slot in _get(timing, "time_slots", ())
    )
    return ResolvedWindow(
        source=SOURCE_GOOD_TIMING,
        source_id=_get(timing, "id"),
        window_label=str(_get(timing, "day", "")),
        start_date=to_calendar_date(_get(timing, "start_date")),
        end_date=to_calendar_date(_get(timing, "end_date")),
        time_slots=slots,
    )


def _single_slot_window(item: Any, source: str, *, category_field: str, color_field: str) -> ResolvedWindow:
    title = _get(item, "title", "")
    is_all_day = bool(_get(item, "is_all_day", False))
    day = to_calendar_date(_get(item, "date")) if source == SOURCE_AUSPICIOUS else None
    slot = ResolvedSlot(
        start_time=format_hhmm(_get(item, "start_time")) or ALL_DAY_START,
        end_time=format_hhmm(_get(item, "end_time")) or ALL_DAY_END,
        category_name=_get(item, category_field, DEFAULT_EVENT_CATEGORY),
        category_color=_get(item, color_field, DEFAULT_EVENT_COLOR),
        description=_get(item, "description") or title,
        is_all_day=is_all_day,
    )
    return ResolvedWindow(
        source=source,
        source_id=_get(item, "id"),
        window_label=title,
        start_date=day or to_calendar_date(_get(item, "start_date")),
        end_date=day or to_calendar_date(_get(item, "end_date")),
        time_slots=(slot,),
    )


def resolve_day(
    target: date,
    good_timings: Iterable[Any] = (),
    events: Iterable[Any] = (),
    auspicious_entries: Iterable[Any] = (),
) -> list[ResolvedWindow]:
    """Windows applying to ``target``: good timings first, then events, then auspicious entries."""
    windows = [_good_timing_window(t) for t in good_timings if good_timing_applies(t, target)]
    windows.extend(
        _single_slot_window(e, SOURCE_CALENDAR_EVENT, category_field="category_name", color_field="color")
        for e in events
        if event_applies(e, target)
    )
    windows.extend(
        _single_slot_window(a, SOURCE_AUSPICIOUS, category_field="category", color_field="color")
        for a in auspicious_entries
        if auspicious_entry_applies(a, target)
    )
    return windows


def sorted_slots(windows: Sequence[ResolvedWindow]) -> list[ResolvedSlot]:
    """Flatten windows into one list ordered by start time (stable for equal times)."""
    slots = [slot for window in windows for slot in window.time_slots]
    return sorted(slots, key=lambda s: s.start_time)


def build_grid_cell(target: date, windows: Sequence[ResolvedWindow], limit: int) -> GridCell:
    """Grid cells show the first ``limit`` slots; the rest are only counted."""
    slots = tuple(sorted_slots(windows))
    limit = max(limit, 0)
    return GridCell(
        date=target,
        visible=slots[:limit],
        more=max(len(slots) - limit, 0),
        total=len(slots),
    )
