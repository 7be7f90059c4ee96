# response_parsers.py
"""
Parsers that turn raw model replies into BoardingPassRecord.

The remote vision model must answer with a strict JSON document; the
on-device model answers in free "Label: value" lines. Both variants sit
behind ``parse_model_output`` and are selected by the collaborator kind.
"""
from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from datetime_normalizer import parse_date
from logging_utils import get_logger
from models import BoardingPassRecord
from validator import RecordValidator

logger = get_logger("boardingpass.parsers")

FieldValue = Optional[Union[str, int, float]]


class ModelKind(str, Enum):
    REMOTE_VISION = "remote_vision"
    ON_DEVICE = "on_device"


class RawModelOutput(BaseModel):
    kind: ModelKind
    text: str


class MalformedResponseError(ValueError):
    """Reply could not be read against the expected format."""


class ModelDeclinedError(RuntimeError):
    """Reply was well-formed but the model reported success = false."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        detail = "; ".join(errors) if errors else "no reason given"
        super().__init__(f"model reported failure: {detail}")


class ParsedModelOutput(NamedTuple):
    record: BoardingPassRecord
    reported_confidence: Optional[float] = None


# ---------------- strict JSON ----------------


class RemoteBoardingPassPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: StrictBool
    confidence: float = Field(..., ge=0, le=1)
    errors: List[str]

    flight_number: FieldValue = Field(default=None, alias="flightNumber")
    airline: FieldValue = None
    passenger_name: FieldValue = Field(default=None, alias="passengerName")
    departure_airport: FieldValue = Field(default=None, alias="departureAirport")
    departure_city: FieldValue = Field(default=None, alias="departureCity")
    arrival_airport: FieldValue = Field(default=None, alias="arrivalAirport")
    arrival_city: FieldValue = Field(default=None, alias="arrivalCity")
    departure_time: FieldValue = Field(default=None, alias="departureTime")
    arrival_time: FieldValue = Field(default=None, alias="arrivalTime")
    flight_date: FieldValue = Field(default=None, alias="flightDate")
    flight_date_raw: FieldValue = Field(default=None, alias="flightDateRaw")
    departure_date: FieldValue = Field(default=None, alias="departureDate")
    departure_date_raw: FieldValue = Field(default=None, alias="departureDateRaw")
    arrival_date: FieldValue = Field(default=None, alias="arrivalDate")
    arrival_date_raw: FieldValue = Field(default=None, alias="arrivalDateRaw")
    seat: FieldValue = None
    gate: FieldValue = None
    terminal: FieldValue = None
    ticket_number: FieldValue = Field(default=None, alias="ticketNumber")
    confirmation_code: FieldValue = Field(default=None, alias="confirmationCode")
    boarding_time: FieldValue = Field(default=None, alias="boardingTime")
    flight_duration: FieldValue = Field(default=None, alias="flightDuration")
    extracted_text: Optional[str] = Field(default=None, alias="extractedText")

    def to_fields(self) -> Dict[str, Any]:
        departure_date = _first_date(
            self.departure_date, self.departure_date_raw, self.flight_date, self.flight_date_raw
        )
        arrival_date = _first_date(self.arrival_date, self.arrival_date_raw) or departure_date
        return {
            "flight_number": self.flight_number,
            "airline": self.airline,
            "passenger_name": self.passenger_name,
            "departure_code": self.departure_airport,
            "departure_city": self.departure_city,
            "arrival_code": self.arrival_airport,
            "arrival_city": self.arrival_city,
            "departure_date": departure_date,
            "arrival_date": arrival_date,
            "departure_time": self.departure_time,
            "arrival_time": self.arrival_time,
            "boarding_time": self.boarding_time,
            "gate": self.gate,
            "terminal": self.terminal,
            "seat": self.seat,
            "confirmation_code": self.confirmation_code,
            "ticket_number": self.ticket_number,
            "flight_duration": self.flight_duration,
        }


def _first_date(*candidates: FieldValue):
    for candidate in candidates:
        if candidate is None:
            continue
        parsed = parse_date(str(candidate))
        if parsed is not None:
            return parsed
    return None


_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    m = _FENCED.search(cleaned)
    if m:
        return m.group(1).strip()
    return cleaned


class StrictSchemaParser:
    kind = ModelKind.REMOTE_VISION

    def __init__(self, validator: RecordValidator):
        self.validator = validator

    def parse(self, text: str) -> ParsedModelOutput:
        cleaned = strip_code_fences(text or "")
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"reply is not valid JSON: {e.msg}") from e
        if not isinstance(data, dict):
            raise MalformedResponseError("reply is not a JSON object")

        try:
            payload = RemoteBoardingPassPayload.model_validate(data)
        except ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise MalformedResponseError(f"reply violates schema: {', '.join(missing)}") from e

        if not payload.success:
            raise ModelDeclinedError(payload.errors)

        record = self.validator.sanitize(payload.to_fields())
        return ParsedModelOutput(record, payload.confidence)


# ---------------- loose key/value ----------------

# more specific labels first
_LABELS: Tuple[Tuple[str, str], ...] = (
    ("flight duration", "flight_duration"),
    ("duration", "flight_duration"),
    ("flight date", "departure_date"),
    ("flight number", "flight_number"),
    ("flight no", "flight_number"),
    ("airline", "airline"),
    ("carrier", "airline"),
    ("passenger", "passenger_name"),
    ("name", "passenger_name"),
    ("departure code", "departure_code"),
    ("departure airport", "departure_code"),
    ("departure city", "departure_city"),
    ("departure date", "departure_date"),
    ("departure time", "departure_time"),
    ("arrival code", "arrival_code"),
    ("arrival airport", "arrival_code"),
    ("arrival city", "arrival_city"),
    ("arrival date", "arrival_date"),
    ("arrival time", "arrival_time"),
    ("boarding time", "boarding_time"),
    ("seat", "seat"),
    ("gate", "gate"),
    ("terminal", "terminal"),
    ("confirmation", "confirmation_code"),
    ("pnr", "confirmation_code"),
    ("booking", "confirmation_code"),
    ("ticket", "ticket_number"),
    ("date", "departure_date"),
    ("flight", "flight_number"),
)

_MARKDOWN = re.compile(r"\*\*|\*|_|`")
_LIST_MARKER = re.compile(r"^\s*(?:[-•]|\d+[.)])\s+")
_EMPTY_VALUES = {"", "null", "none", "nil", "n/a", "na", "unknown", "not found", "not visible"}
_CODE_IN_VALUE = re.compile(r"\b[A-Z]{3}\b")


def _label_field(label: str) -> Optional[str]:
    label = " ".join(label.lower().split())
    for keyword, field in _LABELS:
        if keyword in label:
            return field
    return None


class LooseKeyValueParser:
    kind = ModelKind.ON_DEVICE

    def __init__(self, validator: RecordValidator):
        self.validator = validator

    def read_fields(self, text: str) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for raw_line in (text or "").splitlines():
            line = _LIST_MARKER.sub("", _MARKDOWN.sub("", raw_line)).strip()
            if ":" not in line:
                continue
            label, value = line.split(":", 1)
            field = _label_field(label)
            value = value.strip().strip('"').strip()
            if field is None or value.lower() in _EMPTY_VALUES:
                continue
            if field.endswith("_code") and field != "confirmation_code":
                m = _CODE_IN_VALUE.search(value.upper())
                if m is None:
                    continue
                value = m.group(0)
            fields.setdefault(field, value)
        return fields

    def parse(self, text: str) -> ParsedModelOutput:
        fields = self.read_fields(text)
        if not fields:
            raise MalformedResponseError("no labelled fields in model reply")
        return ParsedModelOutput(self.validator.sanitize(fields), None)


def read_model_output(output: RawModelOutput, validator: RecordValidator) -> ParsedModelOutput:
    """
    Parse a reply with the parser its model kind calls for. Raises
    MalformedResponseError or ModelDeclinedError; the strategies map those
    onto error kinds.
    """
    if output.kind is ModelKind.REMOTE_VISION:
        return StrictSchemaParser(validator).parse(output.text)
    return LooseKeyValueParser(validator).parse(output.text)


def parse_model_output(output: RawModelOutput, validator: RecordValidator) -> Optional[BoardingPassRecord]:
    """Like read_model_output, but failures are logged and become None."""
    try:
        return read_model_output(output, validator).record
    except (MalformedResponseError, ModelDeclinedError) as e:
        logger.event("model_output_rejected", kind=output.kind.value, reason=str(e))
        return None
