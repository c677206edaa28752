from dataclasses import fields
from datetime import date, datetime, time, timedelta

from timings_service.schemas.calendar import GridCellResponse
from timings_service.services.auspicious_timings import load_auspicious_entries
from timings_service.services.calendar_resolver import (
    SOURCE_AUSPICIOUS,
    SOURCE_CALENDAR_EVENT,
    SOURCE_GOOD_TIMING,
    GridCell,
    build_grid_cell,
    event_applies,
    format_hhmm,
    good_timing_applies,
    resolve_day,
    sorted_slots,
    to_calendar_date,
)


def _timing(start: str, end: str, day: str = "Monday", slots=None) -> dict:
    return {
        "id": 1,
        "day": day,
        "start_date": start,
        "end_date": end,
        "time_slots": slots
        if slots is not None
        else [
            {
                "start_time": time(9, 0),
                "end_time": time(10, 30),
                "category_name": "Work",
                "category_color": "blue",
                "description": "Focus",
            }
        ],
    }


def _event(start, end, **extra) -> dict:
    return {"id": 7, "title": "Meeting", "start_date": start, "end_date": end, **extra}


def test_good_timing_included_inside_range_and_excluded_outside():
    timing = _timing("2025-09-01", "2025-09-07")
    for offset in range(7):
        target = date(2025, 9, 1) + timedelta(days=offset)
        windows = resolve_day(target, good_timings=[timing])
        assert [w.source for w in windows] == [SOURCE_GOOD_TIMING]
        assert windows[0].time_slots[0].start_time == "09:00"

    assert resolve_day(date(2025, 8, 31), good_timings=[timing]) == []
    assert resolve_day(date(2025, 9, 8), good_timings=[timing]) == []


def test_good_timing_weekday_label_is_not_checked():
    # a timing tagged Monday spanning a whole week applies on every day of it
    timing = _timing("2025-09-01", "2025-09-07", day="Monday")
    wednesday = date(2025, 9, 3)
    assert wednesday.strftime("%A") == "Wednesday"
    assert good_timing_applies(timing, wednesday)
    assert resolve_day(wednesday, good_timings=[timing])[0].window_label == "Monday"


def test_single_day_event_only_on_its_date():
    event = _event("2025-09-10", "2025-09-10")
    assert event_applies(event, date(2025, 9, 10))
    assert not event_applies(event, date(2025, 9, 9))
    assert not event_applies(event, date(2025, 9, 11))


def test_multi_day_event_covers_every_date_in_range():
    event = _event("2025-09-01", "2025-09-05")
    for offset in range(5):
        assert event_applies(event, date(2025, 9, 1) + timedelta(days=offset))
    assert not event_applies(event, date(2025, 8, 31))
    assert not event_applies(event, date(2025, 9, 6))


def test_event_with_datetime_strings_uses_calendar_date():
    event = _event("2025-09-10T00:00:00.000Z", "2025-09-10T00:00:00.000Z")
    assert event_applies(event, date(2025, 9, 10))
    assert not event_applies(event, date(2025, 9, 9))


def test_event_with_missing_or_bad_start_date_is_skipped():
    target = date(2025, 9, 10)
    broken = [
        _event(None, "2025-09-10"),
        _event("not-a-date", "2025-09-10"),
        _event("", "2025-09-10"),
    ]
    good = _event("2025-09-10", "2025-09-10")
    windows = resolve_day(target, events=[*broken, good])
    assert len(windows) == 1
    assert windows[0].source == SOURCE_CALENDAR_EVENT


def test_all_day_event_gets_full_day_slot_and_defaults():
    event = _event("2025-09-10", "2025-09-10", is_all_day=True)
    slot = resolve_day(date(2025, 9, 10), events=[event])[0].time_slots[0]
    assert (slot.start_time, slot.end_time) == ("00:00", "23:59")
    assert slot.is_all_day
    assert slot.category_name == "Event"
    assert slot.category_color == "blue"
    assert slot.description == "Meeting"


def test_sources_are_ordered_timings_events_then_auspicious():
    target = date(2025, 9, 10)
    windows = resolve_day(
        target,
        good_timings=[_timing("2025-09-08", "2025-09-14")],
        events=[_event("2025-09-10", "2025-09-10", start_time="08:00", end_time="08:30")],
        auspicious_entries=[{"id": "a-1", "title": "Abhijit", "date": "2025-09-10", "start_time": "11:45"}],
    )
    assert [w.source for w in windows] == [SOURCE_GOOD_TIMING, SOURCE_CALENDAR_EVENT, SOURCE_AUSPICIOUS]
    assert [s.start_time for s in sorted_slots(windows)] == ["08:00", "09:00", "11:45"]


def test_grid_cell_shows_limit_and_counts_the_rest():
    slots = [
        {"start_time": f"{hour:02d}:00", "end_time": f"{hour:02d}:30", "category_name": "Work"}
        for hour in (14, 9, 11, 7, 16)
    ]
    windows = resolve_day(date(2025, 9, 2), good_timings=[_timing("2025-09-01", "2025-09-07", slots=slots)])
    cell = build_grid_cell(date(2025, 9, 2), windows, limit=3)
    assert [s.start_time for s in cell.visible] == ["07:00", "09:00", "11:00"]
    assert cell.more == 2
    assert cell.total == 5

    empty = build_grid_cell(date(2025, 9, 2), [], limit=3)
    assert (empty.visible, empty.more, empty.total) == ((), 0, 0)


def test_grid_cell_fields_match_the_response():
    assert [f.name for f in fields(GridCell)] == list(GridCellResponse.model_fields)


def test_to_calendar_date_and_format_hhmm():
    assert to_calendar_date(datetime(2025, 9, 1, 23, 0)) == date(2025, 9, 1)
    assert to_calendar_date("2025-09-01") == date(2025, 9, 1)
    assert to_calendar_date("2025-13-01") is None
    assert to_calendar_date(12345) is None
    assert format_hhmm("9:05:00") == "09:05"
    assert format_hhmm(time(18, 7)) == "18:07"
    assert format_hhmm(None) is None


def test_auspicious_entries_are_pinned_relative_to_today():
    today = date(2025, 10, 18)
    entries = load_auspicious_entries(today)
    assert entries
    assert all("date" in e and "offset_days" not in e for e in entries)
    assert len({e["id"] for e in entries}) == len(entries)
    assert any(to_calendar_date(e["date"]) == today for e in entries)
