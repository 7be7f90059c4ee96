# validator.py
from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from airlines import is_valid_airline_name
from airports import RouteResolver
from config import VALIDATION_RULES, ValidationRules
from datetime_normalizer import parse_date, validate_duration, validate_time
from field_extractors import is_valid_flight_number, normalize_flight_number
from logging_utils import get_logger
from models import BoardingPassRecord, QualityReport, RecordQuality
from patterns import patterns

logger = get_logger("boardingpass.validator")

_NULL_TOKENS = {"null", "none", "nil", "n/a", "na", "unknown", "-", "--", "tba", "tbd"}


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def classify(record: Optional[BoardingPassRecord]) -> RecordQuality:
    """
    MINIMAL  - flight number plus at least one route endpoint
    COMPLETE - flight number plus both endpoints
    EMPTY    - anything else
    """
    if record is None or not _present(record.flight_number):
        return RecordQuality.EMPTY

    has_departure = _present(record.departure_code) or _present(record.departure_city)
    has_arrival = _present(record.arrival_code) or _present(record.arrival_city)

    if has_departure and has_arrival:
        return RecordQuality.COMPLETE
    if has_departure or has_arrival:
        return RecordQuality.MINIMAL
    return RecordQuality.EMPTY


def is_acceptable(record: Optional[BoardingPassRecord]) -> bool:
    return classify(record) is not RecordQuality.EMPTY


def score_confidence(record: Optional[BoardingPassRecord]) -> float:
    """0.3 base plus 0.1 per populated field, capped at 1.0."""
    if record is None:
        return 0.0
    filled = record.filled_field_count()
    if filled == 0:
        return 0.0
    return round(min(1.0, 0.3 + 0.1 * filled), 2)


def assess_quality(record: Optional[BoardingPassRecord]) -> QualityReport:
    if record is None:
        return QualityReport(score=0.0, level="poor", issues=["No data extracted"])

    score = 0
    max_score = 12
    issues: List[str] = []

    if _present(record.flight_number):
        score += 3
    else:
        issues.append("Missing flight number")

    if _present(record.departure_code) or _present(record.departure_city):
        score += 2
    else:
        issues.append("Missing departure airport")
    if _present(record.arrival_code) or _present(record.arrival_city):
        score += 2
    else:
        issues.append("Missing arrival airport")

    if _present(record.passenger_name):
        score += 2
    else:
        issues.append("Missing passenger name")

    extras = [
        record.departure_time,
        record.departure_date,
        record.seat,
        record.gate,
        record.confirmation_code,
    ]
    score += min(3, sum(1 for value in extras if _present(value)))

    ratio = score / max_score
    if ratio >= 0.9:
        level = "excellent"
    elif ratio >= 0.7:
        level = "good"
    elif ratio >= 0.5:
        level = "acceptable"
    else:
        level = "poor"
    return QualityReport(score=round(ratio, 3), level=level, issues=issues)


# ---------------- sanitising model output ----------------


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    if not text or text.lower() in _NULL_TOKENS:
        return None
    return text


def _date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    text = _text(value)
    return parse_date(text) if text else None


class RecordValidator:
    """Acceptance gate plus the field validators applied to model output."""

    def __init__(self, resolver: RouteResolver, rules: ValidationRules = VALIDATION_RULES):
        self.resolver = resolver
        self.rules = rules
        self._flight = re.compile(rules.flight_number_pattern)
        self._airport = re.compile(rules.airport_code_pattern)
        self._seat = re.compile(rules.seat_pattern)
        self._gate = re.compile(rules.gate_pattern)

    classify = staticmethod(classify)
    is_acceptable = staticmethod(is_acceptable)
    score_confidence = staticmethod(score_confidence)
    assess_quality = staticmethod(assess_quality)

    # individual field validators; each returns the cleaned value or None

    def flight_number(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        candidate = normalize_flight_number(text)
        if self._flight.match(candidate) and is_valid_flight_number(candidate):
            return candidate
        return None

    def airport_code(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        code = text.upper()
        return code if self._airport.match(code) else None

    def city(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text or len(text) > self.rules.city_max_length:
            return None
        if any(c.isdigit() for c in text) or not any(c.isalpha() for c in text):
            return None
        return text

    def passenger_name(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        text = patterns.NAME_TITLES.sub("", text).strip()
        if not text or len(text) > self.rules.passenger_name_max_length:
            return None
        if any(c.isdigit() for c in text) or not any(c.isalpha() for c in text):
            return None
        return text

    def seat(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        seat = re.sub(r"(?i)^SEAT\s*", "", text).replace(" ", "").upper()
        return seat if self._seat.match(seat) else None

    def gate(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        gate = re.sub(r"(?i)^GATE\s*", "", text).replace(" ", "").upper()
        return gate if self._gate.match(gate) else None

    def terminal(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        terminal = re.sub(r"(?i)^TERMINAL\s*", "", text).strip()
        if not terminal or len(terminal) > self.rules.terminal_max_length:
            return None
        return terminal

    def confirmation_code(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        code = text.replace(" ", "").upper()
        if not code.isalnum():
            return None
        if not self.rules.confirmation_code_min_length <= len(code) <= self.rules.confirmation_code_max_length:
            return None
        return code

    def ticket_number(self, value: Any) -> Optional[str]:
        text = _text(value)
        if not text:
            return None
        digits = re.sub(r"[\s\-]", "", text)
        return digits if digits.isdigit() and 10 <= len(digits) <= 14 else None

    def airline(self, value: Any) -> Optional[str]:
        text = _text(value)
        return text if is_valid_airline_name(text) else None

    def sanitize(self, fields: Mapping[str, Any]) -> BoardingPassRecord:
        """Build a record from raw model fields, silently dropping invalid values."""
        departure_code = self.airport_code(fields.get("departure_code"))
        departure_city = self.city(fields.get("departure_city"))
        arrival_code = self.airport_code(fields.get("arrival_code"))
        arrival_city = self.city(fields.get("arrival_city"))

        if departure_code is None and departure_city:
            departure_code = self.resolver.code_for_city(departure_city)
        if departure_city is None and departure_code:
            departure_city = self.resolver.city_for_code(departure_code)
        if arrival_code is None and arrival_city:
            arrival_code = self.resolver.code_for_city(arrival_city)
        if arrival_city is None and arrival_code:
            arrival_city = self.resolver.city_for_code(arrival_code)

        cleaned: Dict[str, Any] = {
            "flight_number": self.flight_number(fields.get("flight_number")),
            "airline": self.airline(fields.get("airline")),
            "passenger_name": self.passenger_name(fields.get("passenger_name")),
            "departure_code": departure_code,
            "departure_city": departure_city,
            "arrival_code": arrival_code,
            "arrival_city": arrival_city,
            "departure_date": _date(fields.get("departure_date")),
            "arrival_date": _date(fields.get("arrival_date")),
            "departure_time": validate_time(_text(fields.get("departure_time"))),
            "arrival_time": validate_time(_text(fields.get("arrival_time"))),
            "boarding_time": validate_time(_text(fields.get("boarding_time"))),
            "gate": self.gate(fields.get("gate")),
            "terminal": self.terminal(fields.get("terminal")),
            "seat": self.seat(fields.get("seat")),
            "confirmation_code": self.confirmation_code(fields.get("confirmation_code")),
            "ticket_number": self.ticket_number(fields.get("ticket_number")),
            "flight_duration": validate_duration(_text(fields.get("flight_duration"))),
        }

        dropped = [
            name for name, raw in fields.items()
            if _text(raw) is not None and name in cleaned and cleaned[name] is None
        ]
        if dropped:
            logger.event("fields_dropped", fields=dropped)

        return BoardingPassRecord(**cleaned)
