from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, Mapping

from ..constants import DEFAULT_ATTENDANCE_HOURS

_HOURS_RE = re.compile(r"(\d+)\s*h")
_MINUTES_RE = re.compile(r"(\d+)\s*m")


def _coerce_datetime(value: datetime | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def calculate_duration_minutes(
    start: datetime | str | None, end: datetime | str | None
) -> int:
    """Whole minutes between two instants; 0 when either is missing or reversed."""
    start_dt = _coerce_datetime(start)
    end_dt = _coerce_datetime(end)
    if not start_dt or not end_dt or start_dt >= end_dt:
        return 0
    return round((end_dt - start_dt).total_seconds() / 60)


def format_duration(minutes: int | None) -> str:
    if not minutes or minutes <= 0:
        return "0m"
    hours, remaining = divmod(int(minutes), 60)
    if hours and remaining:
        return f"{hours}h {remaining}m"
    if hours:
        return f"{hours}h"
    return f"{remaining}m"


def parse_duration(value: Any) -> int:
    """Parse '8h 30m', '2h' or '480m' into minutes. Unparseable text counts as 0."""
    text = str(value or "")
    if "h" in text:
        hours = _HOURS_RE.search(text)
        minutes = _MINUTES_RE.search(text)
        return int(hours.group(1) if hours else 0) * 60 + int(
            minutes.group(1) if minutes else 0
        )
    if "m" in text:
        minutes = _MINUTES_RE.search(text)
        return int(minutes.group(1)) if minutes else 0
    return 0


def calculate_total_duration(records: Iterable[Mapping[str, Any]]) -> str:
    """Sum attendance durations into '<h>h <m>m'.

    A record without a duration is credited with a full attendance day.
    """
    rows = list(records)
    total = 0
    for record in rows:
        duration = record.get("duration")
        if duration:
            total += parse_duration(duration)
        else:
            total += DEFAULT_ATTENDANCE_HOURS * 60
    if total == 0 and rows:
        total = len(rows) * DEFAULT_ATTENDANCE_HOURS * 60
    hours, minutes = divmod(total, 60)
    return f"{hours}h {minutes}m"


def calculate_attendance_durations(attendance: Mapping[str, Any]) -> dict:
    am_in = attendance.get("am_in_time")
    am_out = attendance.get("am_out_time")
    pm_in = attendance.get("pm_in_time")
    pm_out = attendance.get("pm_out_time")

    morning = calculate_duration_minutes(am_in, am_out)
    afternoon = calculate_duration_minutes(pm_in, pm_out)
    lunch_break = calculate_duration_minutes(am_out, pm_in)
    span = calculate_duration_minutes(am_in, pm_out)
    total = morning + afternoon
    return {
        "morning_duration": morning,
        "afternoon_duration": afternoon,
        "break_duration": lunch_break,
        "total_duration": total,
        "total_time_span": span,
        "morning_duration_formatted": format_duration(morning),
        "afternoon_duration_formatted": format_duration(afternoon),
        "break_duration_formatted": format_duration(lunch_break),
        "total_duration_formatted": format_duration(total),
        "total_time_span_formatted": format_duration(span),
    }


def duration_summary(durations: Mapping[str, Any]) -> str:
    morning = durations.get("morning_duration", 0)
    afternoon = durations.get("afternoon_duration", 0)
    if morning > 0 and afternoon > 0:
        return (
            f"Total: {durations['total_duration_formatted']} "
            f"(AM: {durations['morning_duration_formatted']}, "
            f"PM: {durations['afternoon_duration_formatted']})"
        )
    if morning > 0:
        return f"Morning: {durations['morning_duration_formatted']}"
    if afternoon > 0:
        return f"Afternoon: {durations['afternoon_duration_formatted']}"
    return "No duration recorded"
