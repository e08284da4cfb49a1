"""Time-of-day parsing and display helpers.

parse_flexible_time_input tries, in order:
1. strict 24h "HH:MM" (two-digit hour)
2. explicit meridiem "H:MM am" / "H:MMpm"
3. bare "H:MM" read against clinic hours (10-11 AM, 12 PM, 1-2 PM)

Each attempt either returns a definite "HH:MM" or None. A bare hour outside
clinic hours is rejected rather than guessed.
"""
import re
from typing import List, Optional

STRICT_24H_PATTERN = re.compile(r'^(\d{2}):(\d{2})$')
MERIDIEM_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*(am|pm)$')
BARE_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')

# Bare hour -> 24h hour
CLINIC_HOURS_HEURISTIC = {
    10: 10,
    11: 11,
    12: 12,
    1: 13,
    2: 14,
}


def _format(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def parse_strict_24h(text: str) -> Optional[str]:
    match = STRICT_24H_PATTERN.match(text)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return _format(hour, minute)


def parse_meridiem(text: str) -> Optional[str]:
    match = MERIDIEM_PATTERN.match(text)
    if not match:
        return None
    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if not 1 <= hour <= 12 or minute > 59:
        return None
    if period == "pm" and hour != 12:
        hour += 12
    elif period == "am" and hour == 12:
        hour = 0
    return _format(hour, minute)


def parse_bare_clinic_hour(text: str) -> Optional[str]:
    match = BARE_PATTERN.match(text)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if minute > 59 or hour not in CLINIC_HOURS_HEURISTIC:
        return None
    return _format(CLINIC_HOURS_HEURISTIC[hour], minute)


def parse_flexible_time_input(time_input: str) -> Optional[str]:
    """
    Parse a user-typed time into 24h "HH:MM".

    Args:
        time_input: Raw text, e.g. "10:30", "1:30 pm", "13:30", "1:30"

    Returns:
        Normalized time, or None if the input is not understood

    Example:
        >>> parse_flexible_time_input("1:30")
        '13:30'
        >>> parse_flexible_time_input("9:30") is None
        True
    """
    text = time_input.strip().lower()
    for attempt in (parse_strict_24h, parse_meridiem, parse_bare_clinic_hour):
        parsed = attempt(text)
        if parsed is not None:
            return parsed
    return None


def normalize_time_value(value) -> str:
    """Reduce a stored TIME value ("13:30:00", time(13, 30)) to "HH:MM"."""
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    hour, minute = str(value).split(":")[:2]
    return _format(int(hour), int(minute))


def format_time_12h(time_24h: str) -> str:
    """Convert 24h time to 12h format."""
    hour, minute = map(int, time_24h.split(":")[:2])
    period = "AM" if hour < 12 else "PM"
    hour_12 = hour if hour <= 12 else hour - 12
    hour_12 = 12 if hour_12 == 0 else hour_12
    return f"{hour_12}:{minute:02d} {period}"


def format_slots_12h(slots: List[str]) -> List[str]:
    return [format_time_12h(slot) for slot in slots]
