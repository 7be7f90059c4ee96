# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import pytest

from airports import build_default_resolver
from models import BoardingPassRecord
from validator import RecordValidator


@pytest.fixture(scope="session")
def resolver():
    """Default city/IATA resolver"""
    return build_default_resolver()


@pytest.fixture
def validator(resolver):
    """Record validator over the default resolver"""
    return RecordValidator(resolver)


@pytest.fixture
def indigo_lines():
    """OCR lines of an IndiGo mobile boarding pass"""
    return [
        "FLIGHT 6E 6252",
        "HYDERABAD To CHANDIGARH",
        "SEAT 24D",
        "GATE 14",
        "1945 Hrs",
        "PNR ZAJIMS",
    ]


@pytest.fixture
def minimal_record():
    """Flight number plus one route endpoint"""
    return BoardingPassRecord(flight_number="UA546", departure_code="EWR")


@pytest.fixture
def empty_record():
    """Flight number only; not acceptable on its own"""
    return BoardingPassRecord(flight_number="UA546")


@pytest.fixture
def remote_reply():
    """Well-formed reply from the remote vision model"""
    return """```json
{
  "success": true,
  "confidence": 0.92,
  "errors": [],
  "flightNumber": "6E 6252",
  "airline": null,
  "passengerName": "SHARMA/RAHUL MR",
  "departureAirport": "HYD",
  "departureCity": null,
  "arrivalAirport": null,
  "arrivalCity": "Chandigarh",
  "departureTime": "7:45 PM",
  "arrivalTime": "21:15",
  "departureDate": "2025-11-12",
  "departureDateRaw": "12 Nov",
  "arrivalDate": null,
  "seat": "24D",
  "gate": "14",
  "confirmationCode": "ZAJIMS",
  "flightDuration": "1H 30M"
}
```"""
