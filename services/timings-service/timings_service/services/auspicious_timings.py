import json
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any

DATA_FILE = Path(__file__).resolve().parents[1] / "data" / "auspicious_timings.json"


@lru_cache()
def _load_raw(path: str) -> tuple[dict[str, Any], ...]:
    with open(path, encoding="utf-8") as fh:
        return tuple(json.load(fh))


def load_auspicious_entries(today: date, path: Path | str = DATA_FILE) -> list[dict[str, Any]]:
    """Static auspicious-timing entries with ``offset_days`` pinned to concrete dates."""
    entries: list[dict[str, Any]] = []
    for index, raw in enumerate(_load_raw(str(path)), start=1):
        entry = dict(raw)
        offset = entry.pop("offset_days", None)
        if offset is not None:
            entry["date"] = (today + timedelta(days=int(offset))).isoformat()
        entry.setdefault("id", f"auspicious-{index}")
        entry.setdefault("is_all_day", False)
        entries.append(entry)
    return entries
