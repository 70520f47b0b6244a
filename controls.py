# controls.py – slider clamping, weekday labels and other small form rules
import re
from typing import Iterable, Optional

HUMIDITY_FLOOR = 0
HUMIDITY_CEIL  = 100

# Monday-first display order; values follow the firmware's 0=Sunday numbering
WEEKDAYS = [
    (1, "Mon"),
    (2, "Tue"),
    (3, "Wed"),
    (4, "Thu"),
    (5, "Fri"),
    (6, "Sat"),
    (0, "Sun"),
]
_WEEKDAY_LABELS = dict(WEEKDAYS)

_TIME_RE = re.compile(r"[0-9]{2}:[0-9]{2}")


def clamp_min_humidity(value: int, max_humidity: int) -> int:
    """Keep the lower threshold strictly below the upper one."""
    if value >= max_humidity:
        return max(HUMIDITY_FLOOR, max_humidity - 1)
    return value


def clamp_max_humidity(value: int, min_humidity: int) -> int:
    """Keep the upper threshold strictly above the lower one."""
    if value <= min_humidity:
        return min(HUMIDITY_CEIL, min_humidity + 1)
    return value


def reconcile_band(
    incoming_min: Optional[int],
    incoming_max: Optional[int],
    current_min: int,
    current_max: int,
) -> tuple[int, int]:
    """
    Merge a (possibly partial) min/max update into the current band.

    Each side is clamped against the *incoming* sibling when the update
    carries one, otherwise against the current value.
    """
    new_min, new_max = current_min, current_max

    if incoming_min is not None:
        max_ref = incoming_max if incoming_max is not None else current_max
        new_min = clamp_min_humidity(incoming_min, max_ref)

    if incoming_max is not None:
        min_ref = incoming_min if incoming_min is not None else current_min
        new_max = clamp_max_humidity(incoming_max, min_ref)

    return new_min, new_max


def weekday_label(day) -> str:
    return _WEEKDAY_LABELS.get(day, str(day))


def format_days(days: Iterable) -> str:
    return ", ".join(weekday_label(d) for d in days)


def normalize_days(days: Iterable[int]) -> list[int]:
    out = sorted(set(days))
    bad = [d for d in out if d not in _WEEKDAY_LABELS]
    if bad:
        raise ValueError(f"weekday out of range 0‑6: {bad}")
    return out


def is_valid_time(text: Optional[str]) -> bool:
    if not text or not _TIME_RE.fullmatch(text):
        return False
    hh, mm = (int(p) for p in text.split(":"))
    return 0 <= hh <= 23 and 0 <= mm <= 59


def schedule_form_error(time_text: Optional[str], days: Iterable[int], minutes) -> Optional[str]:
    """Return the message to show for an invalid schedule form, or None."""
    if not is_valid_time(time_text):
        return "Enter a valid time (HH:MM)."
    if not list(days):
        return "Select at least one weekday."
    if minutes is None or int(minutes) < 1:
        return "The minimum duration is 1 minute."
    return None


def normalize_soil(value: float) -> int:
    """Sensors report either a 0‑1 fraction or a percentage."""
    pct = value * 100 if value <= 1 else value
    return int(round(max(0.0, min(pct, 100.0))))


def moisture_label(pct: float) -> str:
    if pct >= 70:
        return "Wet"
    if pct >= 40:
        return "Adequate"
    return "Dry"
