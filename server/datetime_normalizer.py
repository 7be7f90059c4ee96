# datetime_normalizer.py
from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional

from patterns import patterns

_TIME_24H = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_TIME_4DIGIT = re.compile(r"^([01]\d|2[0-3])([0-5]\d)$")
_TIME_12H = re.compile(r"^(1[0-2]|0?[1-9]):([0-5]\d)\s*([AP])\.?\s?M\.?$", re.IGNORECASE)

# tried in order; the first that parses wins
DATE_FORMATS = (
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%m/%d/%y",
    "%d/%m/%y",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
    "%d/%b/%Y",
    "%d%b%Y",
    "%d%b%y",
    "%d %b, %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%a, %d %b %Y",
    "%A, %d %B %Y",
)

# month/day without a year; the current year is appended before parsing
PARTIAL_DATE_FORMATS = (
    "%d%b",
    "%d %b",
    "%d-%b",
    "%d/%b",
    "%d%B",
    "%d %B",
    "%b %d",
    "%b%d",
    "%b-%d",
    "%b/%d",
    "%B %d",
)


def validate_time(raw: Optional[str]) -> Optional[str]:
    """
    Accept 24h "HH:MM", undelimited 24h "HHMM" and 12h "H:MM AM/PM".

    Returns the canonical 24h "HH:MM" or None. Out-of-range values are
    rejected, never repaired.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None

    m = _TIME_24H.match(value)
    if m:
        return f"{int(m.group(1)):02d}:{m.group(2)}"

    m = _TIME_4DIGIT.match(value)
    if m:
        return f"{m.group(1)}:{m.group(2)}"

    m = _TIME_12H.match(value)
    if m:
        hour = int(m.group(1)) % 12
        if m.group(3).upper() == "P":
            hour += 12
        return f"{hour:02d}:{m.group(2)}"

    return None


def _clean_date(raw: str) -> str:
    value = re.sub(r"(?<=[A-Za-z])\.", "", raw)
    value = " ".join(value.replace(",", ", ").split())
    return value.replace(" ,", ",").strip(" ,")


def _try_formats(value: str, formats: Iterable[str]) -> Optional[date]:
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(raw: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """Parse a boarding-pass date; a missing year becomes the current one."""
    if not raw or not raw.strip():
        return None
    value = _clean_date(raw)

    parsed = _try_formats(value, DATE_FORMATS)
    if parsed is not None:
        return parsed

    year = (today or date.today()).year
    return _try_formats(f"{value} {year}", (f"{fmt} %Y" for fmt in PARTIAL_DATE_FORMATS))


def validate_duration(raw: Optional[str]) -> Optional[str]:
    """Normalise "2h 5m" style durations to "2H 05M"; anything else is dropped."""
    if not raw:
        return None
    m = patterns.DURATION.match(raw)
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if minutes > 59 or (hours == 0 and minutes == 0):
        return None
    return f"{hours}H {minutes:02d}M"


# ---------------- time context ----------------


class TimeContext(str, Enum):
    DEPARTURE = "departure"
    BOARDING = "boarding"
    ARRIVAL = "arrival"
    NONE = "none"


class TimeToken(NamedTuple):
    value: str
    context: TimeContext


class TimeAssignment(NamedTuple):
    departure: Optional[str] = None
    arrival: Optional[str] = None
    boarding: Optional[str] = None


_CONTEXT_PATTERNS = (
    (TimeContext.DEPARTURE, patterns.DEPARTURE_CONTEXT),
    (TimeContext.BOARDING, patterns.BOARDING_CONTEXT),
    (TimeContext.ARRIVAL, patterns.ARRIVAL_CONTEXT),
)


def keyword_contexts(text: str) -> List[TimeContext]:
    """Context keywords of a line in reading order."""
    found = []
    for context, pattern in _CONTEXT_PATTERNS:
        for m in pattern.finditer(text):
            found.append((m.start(), context))
    return [context for _, context in sorted(found, key=lambda item: item[0])]


def nearest_context(text_before: str) -> TimeContext:
    """Last keyword before a token on the same line."""
    contexts = keyword_contexts(text_before)
    return contexts[-1] if contexts else TimeContext.NONE


def assign_times(tokens: List[TimeToken]) -> TimeAssignment:
    """Map time tokens (in order of appearance) onto departure/arrival/boarding."""
    departure = next((t.value for t in tokens if t.context is TimeContext.DEPARTURE), None)
    arrival = next((t.value for t in tokens if t.context is TimeContext.ARRIVAL), None)
    boarding = next((t.value for t in tokens if t.context is TimeContext.BOARDING), None)

    if departure is None and boarding is not None:
        departure = boarding

    free = [t.value for t in tokens if t.context is TimeContext.NONE]
    for value in free:
        if departure is None:
            departure = value
        elif arrival is None:
            if value != departure:
                arrival = value
        else:
            break

    return TimeAssignment(departure=departure, arrival=arrival, boarding=boarding)
