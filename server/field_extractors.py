# field_extractors.py
"""
Per-field heuristics over recognised text lines.

Every extractor is a pure function of its input lines (plus the
read-only RouteResolver where city knowledge is needed) and returns None
when nothing structurally plausible is found. OCR based strategies share
this module; none of them carry their own field regexes.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from airlines import known_airline_words, resolve_airline
from airports import RouteResolver, is_plausible_airport_code
from datetime_normalizer import (
    TimeAssignment,
    TimeContext,
    TimeToken,
    assign_times,
    keyword_contexts,
    nearest_context,
    parse_date,
    validate_time,
)
from models import BoardingPassRecord
from patterns import (
    FLIGHT_LABEL_PREFIXES,
    FLIGHT_NUMBER_BLACKLIST,
    AIRPORT_CODE_BLACKLIST,
    NAME_CONNECTOR_WORDS,
    NAME_LINE_SKIP_TERMS,
    NAME_PHRASE_BLACKLIST,
    UI_NOISE_WORDS,
    patterns,
)

_CHROME_LINE = re.compile(
    r"\b(?:" + "|".join(re.escape(term) for term in NAME_LINE_SKIP_TERMS) + r")", re.IGNORECASE
)
_BOARDING_PASS_MARKERS = re.compile(
    r"\b(?:FLIGHT|FLT|GATE|SEAT|BOARDING|PNR|DEPART|ARRIV|TERMINAL|PASSENGER|ZONE|GROUP|SEQ)",
    re.IGNORECASE,
)
_FRONT_ROW_NOISE = {"1A", "2A", "3A", "1B", "2B", "3B"}


class RouteMatch(NamedTuple):
    departure_code: Optional[str] = None
    departure_city: Optional[str] = None
    arrival_code: Optional[str] = None
    arrival_city: Optional[str] = None


def _clean_lines(lines: Iterable[str]) -> List[str]:
    return [" ".join(line.split()) for line in lines if line and line.strip()]


# ---------------- flight number ----------------


def normalize_flight_number(raw: str) -> str:
    value = re.sub(r"(?i)\bFLIGHT\b", "", raw)
    return re.sub(r"[\s\-]", "", value).upper()


def is_valid_flight_number(candidate: Optional[str]) -> bool:
    if not candidate:
        return False
    value = candidate.upper()
    if not 3 <= len(value) <= 7:
        return False
    if not any(c.isalpha() for c in value) or not any(c.isdigit() for c in value):
        return False
    if not patterns.FLIGHT_SHAPE.match(value):
        return False
    if any(word in value for word in FLIGHT_NUMBER_BLACKLIST):
        return False
    prefix = re.match(r"[A-Z]+", value)
    if prefix and prefix.group(0) in FLIGHT_LABEL_PREFIXES:
        return False
    if prefix and len(prefix.group(0)) == 3 and prefix.group(0) in AIRPORT_CODE_BLACKLIST:
        return False
    return True


def _has_known_carrier(flight_number: str) -> bool:
    for size in (3, 2):
        if len(flight_number) > size and resolve_airline(flight_number[:size]):
            return True
    return False


def extract_flight_number(lines: Iterable[str]) -> Optional[str]:
    """
    A labelled number wins outright. Among bare matches a known carrier
    prefix beats order of appearance.
    """
    lines = _clean_lines(lines)
    for line in lines:
        for m in patterns.FLIGHT_LABELED.finditer(line):
            candidate = normalize_flight_number(m.group(1) + m.group(2))
            if is_valid_flight_number(candidate):
                return candidate

    bare: List[str] = []
    for pattern in (patterns.FLIGHT_ALPHA, patterns.FLIGHT_ALNUM):
        for line in lines:
            for m in pattern.finditer(line):
                candidate = normalize_flight_number(m.group(1) + m.group(2))
                if is_valid_flight_number(candidate):
                    bare.append(candidate)
    return next((c for c in bare if _has_known_carrier(c)), bare[0] if bare else None)


# ---------------- route ----------------


def _overlaps(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < s_end and s_start < end for s_start, s_end in spans)


def _directional_route(lines: List[str], resolver: RouteResolver) -> Optional[RouteMatch]:
    texts = lines + [" ".join(lines)]
    for text in texts:
        pair = resolver.find_directional_phrase(text)
        if pair:
            origin, destination = pair
            return RouteMatch(origin.iata_code, origin.city, destination.iata_code, destination.city)
    for text in texts:
        for m in patterns.ROUTE.finditer(text):
            origin, destination = m.group(1), m.group(2)
            if origin != destination and is_plausible_airport_code(origin) and is_plausible_airport_code(destination):
                return RouteMatch(
                    origin, resolver.city_for_code(origin), destination, resolver.city_for_code(destination)
                )
    return None


def extract_route(lines: Iterable[str], resolver: RouteResolver) -> Optional[RouteMatch]:
    """
    1. explicit "<CITY> To <CITY>" phrase (or CODE -> CODE)
    2. known city names, first two by appearance
    3. bare trigrams merged with cities by appearance
    4. codes the table does not know keep city None
    """
    lines = _clean_lines(lines)
    if not lines:
        return None

    explicit = _directional_route(lines, resolver)
    if explicit:
        return explicit

    joined = "\n".join(lines)
    city_hits = resolver.find_cities(joined)

    # code -> [first position, code, city]
    by_code: Dict[str, List] = {}
    for start, _, entry in city_hits:
        if entry.iata_code not in by_code:
            by_code[entry.iata_code] = [start, entry.iata_code, entry.city]

    if len(by_code) < 2:
        name_words = _name_words(extract_passenger_name(lines, resolver))
        city_spans = [(start, end) for start, end, _ in city_hits]
        for m in patterns.AIRPORT.finditer(joined):
            token = m.group(0)
            if token in by_code:
                # a city's own code printed before the city name
                by_code[token][0] = min(by_code[token][0], m.start())
                continue
            if token in name_words or _overlaps(m.start(), m.end(), city_spans):
                continue
            if not is_plausible_airport_code(token):
                continue
            by_code[token] = [m.start(), token, resolver.city_for_code(token)]

    candidates = sorted(by_code.values(), key=lambda c: c[0])
    if not candidates:
        return None

    _, dep_code, dep_city = candidates[0]
    if len(candidates) == 1:
        return RouteMatch(dep_code, dep_city, None, None)
    _, arr_code, arr_city = candidates[1]
    return RouteMatch(dep_code, dep_city, arr_code, arr_city)


# ---------------- date / time ----------------


def _date_spans(line: str) -> List[Tuple[int, int]]:
    spans = []
    for pattern in (patterns.DATE_ISO, patterns.DATE_NUMERIC, patterns.DATE_DAY_MONTH, patterns.DATE_MONTH_DAY):
        spans.extend((m.start(), m.end()) for m in pattern.finditer(line))
    return spans


def extract_date(lines: Iterable[str], today: Optional[date] = None) -> Optional[date]:
    for line in _clean_lines(lines):
        for pattern in (patterns.DATE_ISO, patterns.DATE_NUMERIC, patterns.DATE_DAY_MONTH, patterns.DATE_MONTH_DAY):
            for m in pattern.finditer(line):
                parsed = parse_date(m.group(0), today=today)
                if parsed is not None:
                    return parsed
    return None


def _line_time_tokens(line: str) -> List[Tuple[int, str]]:
    dates = _date_spans(line)
    found: List[Tuple[int, int, str]] = []
    for m in patterns.TIME_COLON.finditer(line):
        found.append((m.start(1), m.end(1), m.group(1)))
    for m in patterns.TIME_HRS.finditer(line):
        found.append((m.start(1), m.end(1), m.group(1)))
    if keyword_contexts(line):
        taken = [(s, e) for s, e, _ in found]
        for m in patterns.TIME_BARE.finditer(line):
            if not _overlaps(m.start(1), m.end(1), taken):
                found.append((m.start(1), m.end(1), m.group(1)))

    tokens = []
    for start, end, raw in sorted(found):
        if _overlaps(start, end, dates):
            continue
        value = validate_time(raw)
        if value:
            tokens.append((start, value))
    return tokens


def collect_time_tokens(lines: Iterable[str]) -> List[TimeToken]:
    tokens: List[TimeToken] = []
    previous_labels: List[TimeContext] = []
    for line in _clean_lines(lines):
        line_tokens = _line_time_tokens(line)
        label_index = 0
        for start, value in line_tokens:
            context = nearest_context(line[:start])
            if context is TimeContext.NONE and label_index < len(previous_labels):
                # labels printed on the line above, one per value
                context = previous_labels[label_index]
                label_index += 1
            tokens.append(TimeToken(value, context))
        previous_labels = keyword_contexts(line) if not line_tokens else []
    return tokens


def extract_times(lines: Iterable[str]) -> TimeAssignment:
    return assign_times(collect_time_tokens(lines))


# ---------------- gate / terminal / seat ----------------


def _is_header_rest(rest: str) -> bool:
    """Remainder of a label line that only holds other labels (or nothing)."""
    stripped = rest.strip(" :#.-")
    return not stripped or (stripped.isupper() and not any(c.isdigit() for c in stripped))


def _labelled_token(lines: List[str], label: re.Pattern, accept: Callable[[str], bool]) -> Optional[str]:
    for i, line in enumerate(lines):
        for m in label.finditer(line):
            rest = line[m.end():]
            value = patterns.LABEL_VALUE.match(rest)
            if value and accept(value.group(1).upper()):
                return value.group(1).upper()
            if _is_header_rest(rest) and i + 1 < len(lines):
                below = patterns.LABEL_VALUE.match(lines[i + 1])
                if below and accept(below.group(1).upper()):
                    return below.group(1).upper()
    return None


def _is_gate_like(token: str) -> bool:
    if token in {"GATE", "TERM", "SEAT", "ZONE", "TBA", "TBD"}:
        return False
    if token.isalpha():
        return len(token) == 1
    return True


def extract_gate(lines: Iterable[str]) -> Optional[str]:
    return _labelled_token(_clean_lines(lines), patterns.GATE_LABEL, _is_gate_like)


def extract_terminal(lines: Iterable[str]) -> Optional[str]:
    return _labelled_token(_clean_lines(lines), patterns.TERMINAL_LABEL, _is_gate_like)


def _starts_flight_number(line: str, start: int) -> bool:
    return bool(patterns.FLIGHT_ALNUM.match(line, start))


def extract_seat(lines: Iterable[str]) -> Optional[str]:
    lines = _clean_lines(lines)
    for i, line in enumerate(lines):
        for label in patterns.SEAT_LABEL.finditer(line):
            rest = line[label.end():].upper()
            m = patterns.SEAT.search(rest)
            if m:
                return m.group(1)
            if _is_header_rest(rest) and i + 1 < len(lines):
                m = patterns.SEAT.search(lines[i + 1].upper())
                if m:
                    return m.group(1)

    for line in lines:
        for m in patterns.SEAT.finditer(line):
            seat = m.group(1)
            if seat in _FRONT_ROW_NOISE or _starts_flight_number(line, m.start()):
                continue
            return seat
    return None


# ---------------- confirmation / ticket ----------------


def _is_confirmation_candidate(
    token: str, resolver: Optional[RouteResolver], name_words: frozenset = frozenset()
) -> bool:
    if not 5 <= len(token) <= 8:
        return False
    if token in name_words:
        return False
    if token.isdigit() or not any(c.isalpha() for c in token):
        return False
    if is_valid_flight_number(token) or patterns.SEAT_SHAPE.match(token):
        return False
    if patterns.DATE_DAY_MONTH.fullmatch(token) or patterns.DATE_MONTH_DAY.fullmatch(token):
        return False
    if token.endswith("HRS"):
        return False
    if any(word in token for word in UI_NOISE_WORDS):
        return False
    if token in known_airline_words():
        return False
    if resolver is not None and resolver.is_known_city(token):
        return False
    return True


def extract_confirmation_code(
    lines: Iterable[str],
    resolver: Optional[RouteResolver] = None,
    passenger_name: Optional[str] = None,
) -> Optional[str]:
    """Labelled code first, then any code-shaped token that is not part of the passenger name."""
    lines = _clean_lines(lines)
    name_words = _name_words(passenger_name or extract_passenger_name(lines, resolver))

    for i, line in enumerate(lines):
        for label in patterns.CONFIRMATION_LABEL.finditer(line):
            nearby = [line[label.end():].upper()]
            if i + 1 < len(lines):
                nearby.append(lines[i + 1].upper())
            for text in nearby:
                for m in patterns.CONFIRMATION.finditer(text):
                    if _is_confirmation_candidate(m.group(1), resolver, name_words):
                        return m.group(1)

    for line in lines:
        for m in patterns.CONFIRMATION.finditer(line):
            if _is_confirmation_candidate(m.group(1), resolver, name_words):
                return m.group(1)
    return None


def extract_ticket_number(lines: Iterable[str]) -> Optional[str]:
    lines = _clean_lines(lines)
    labelled = [line for line in lines if patterns.TICKET_LABEL.search(line)]
    for line in labelled + lines:
        m = patterns.TICKET.search(line)
        if m:
            return m.group(1) + m.group(2)
    return None


# ---------------- passenger ----------------


def _is_plausible_name(candidate: str, resolver: Optional[RouteResolver]) -> bool:
    upper = candidate.upper()
    if not candidate or len(candidate) > 50 or any(c.isdigit() for c in candidate):
        return False
    if any(phrase in upper for phrase in NAME_PHRASE_BLACKLIST):
        return False
    words = re.split(r"[\s/]+", upper)
    if any(word in NAME_CONNECTOR_WORDS for word in words):
        return False
    if any(word.startswith(noise) for word in words for noise in UI_NOISE_WORDS):
        return False
    airline_words = known_airline_words()
    if any(word in airline_words for word in words):
        return False
    if resolver is not None:
        if all(resolver.is_known_code(w) for w in words if w):
            return False
        if resolver.is_known_city(candidate) or any(resolver.is_known_city(w) for w in words):
            return False
        if any(resolver.is_known_city(f"{a} {b}") for a, b in zip(words, words[1:])):
            return False
    return True


def _name_words(name: Optional[str]) -> frozenset:
    return frozenset(w for w in re.split(r"[\s/]+", name.upper()) if w) if name else frozenset()


def _strip_titles(name: str) -> str:
    return patterns.NAME_TITLES.sub("", name.strip()).strip()


def extract_passenger_name(
    lines: Iterable[str], resolver: Optional[RouteResolver] = None
) -> Optional[str]:
    lines = _clean_lines(lines)

    for line in lines:
        for m in patterns.NAME_SLASH.finditer(line):
            last, first = m.group(1), _strip_titles(m.group(2))
            if len(last) <= 3 and len(first) <= 3:
                # HYD/IXC, AM/PM and friends
                continue
            name = f"{last}/{first}"
            if _is_plausible_name(name, resolver):
                return name

    for line in lines:
        m = patterns.NAME_LABEL.match(line)
        if m:
            name = _strip_titles(m.group(1))
            if name and _is_plausible_name(name, resolver):
                return name

    for line in lines:
        if _CHROME_LINE.search(line):
            continue
        for pattern in (patterns.NAME_CAPS, patterns.NAME_TITLE):
            for m in pattern.finditer(line):
                name = _strip_titles(m.group(0))
                if len(name.split()) >= 2 and _is_plausible_name(name, resolver):
                    return name
    return None


# ---------------- composition ----------------


def has_boarding_pass_markers(lines: Iterable[str]) -> bool:
    """False for OCR output that is plainly not a boarding pass."""
    lines = _clean_lines(lines)
    if not lines:
        return False
    if any(_BOARDING_PASS_MARKERS.search(line) for line in lines):
        return True
    return extract_flight_number(lines) is not None


def extract_record(
    lines: Iterable[str], resolver: RouteResolver, today: Optional[date] = None
) -> BoardingPassRecord:
    lines = _clean_lines(lines)
    route = extract_route(lines, resolver) or RouteMatch()
    times = extract_times(lines)
    passenger_name = extract_passenger_name(lines, resolver)
    return BoardingPassRecord(
        flight_number=extract_flight_number(lines),
        passenger_name=passenger_name,
        departure_code=route.departure_code,
        departure_city=route.departure_city,
        arrival_code=route.arrival_code,
        arrival_city=route.arrival_city,
        departure_date=extract_date(lines, today=today),
        departure_time=times.departure,
        arrival_time=times.arrival,
        boarding_time=times.boarding,
        gate=extract_gate(lines),
        terminal=extract_terminal(lines),
        seat=extract_seat(lines),
        confirmation_code=extract_confirmation_code(lines, resolver, passenger_name),
        ticket_number=extract_ticket_number(lines),
    )
