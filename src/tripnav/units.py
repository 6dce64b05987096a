# units.py
# Conversions between provider display strings ("1,2 km", "1 hour 5 mins")
# and plain numbers (metres, minutes).

import re

_NUMBER_UNIT = re.compile(r"(\d+(?:[.,]\d+)?)\s*([^\d\s.,]*)")

_DISTANCE_FACTORS = {
    "km": 1000.0,
    "m": 1.0,
    "mi": 1609.344,
    "ft": 0.3048,
}


def parse_distance_m(text: str) -> float:
    """
    Metres represented by a display distance such as "850 m" or "1,2 km".

    A bare number is taken as metres. Unparseable text gives 0.
    """
    total = 0.0
    for number, unit in _NUMBER_UNIT.findall(text or ""):
        value = float(number.replace(",", "."))
        total += value * _DISTANCE_FACTORS.get(unit.lower().rstrip("s"), 1.0)
    return total


def parse_duration_min(text: str) -> float:
    """
    Minutes represented by a display duration such as "25 mins",
    "1 hour 5 mins" or "2 h 3 min". Unparseable text gives 0.
    """
    total = 0.0
    for number, unit in _NUMBER_UNIT.findall(text or ""):
        value = float(number.replace(",", "."))
        unit = unit.lower()
        if unit.startswith("d"):
            total += value * 1440
        elif unit.startswith("h"):
            total += value * 60
        elif unit.startswith("s"):
            total += value / 60
        else:
            total += value
    return total


def format_distance(meters: float) -> str:
    """Render metres, switching to kilometres at 1000 m."""
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{round(meters)} m"


def format_duration(minutes: float) -> str:
    """Render minutes, switching to hours at 60 min."""
    minutes = round(minutes)
    if minutes >= 60:
        hours, rest = divmod(minutes, 60)
        return f"{hours} h {rest} min" if rest else f"{hours} h"
    return f"{minutes} min"
