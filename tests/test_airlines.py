# ============================================================================
# FILE: tests/test_airlines.py
# ============================================================================
"""
Unit tests for the carrier lookup
"""

from airlines import (
    airline_from_flight_number,
    enrich_airline,
    is_valid_airline_name,
    known_airline_words,
    resolve_airline,
)
from models import BoardingPassRecord


def test_resolve_iata_and_icao():
    """Both designator forms resolve to the same carrier"""
    assert resolve_airline("6E")["name"] == "IndiGo"
    assert resolve_airline("igo")["iata"] == "6E"
    assert resolve_airline("ZZ") is None
    assert resolve_airline("") is None


def test_airline_from_flight_number():
    """Carrier prefix of IATA and ICAO style flight numbers"""
    assert airline_from_flight_number("UA546") == "United Airlines"
    assert airline_from_flight_number("IGO6252") == "IndiGo"
    assert airline_from_flight_number("6E 6252") == "IndiGo"
    assert airline_from_flight_number("ZZ123") is None
    assert airline_from_flight_number(None) is None


def test_placeholder_names_are_rejected():
    """Model placeholders never count as airline names"""
    assert is_valid_airline_name("Qatar Airways")
    assert not is_valid_airline_name("N/A")
    assert not is_valid_airline_name("null")
    assert not is_valid_airline_name("6E")
    assert not is_valid_airline_name(None)


def test_enrich_airline():
    """Missing or placeholder airlines are derived from the flight number"""
    derived = enrich_airline(BoardingPassRecord(flight_number="AI101", airline="N/A"))
    assert derived.airline == "Air India"

    kept = enrich_airline(BoardingPassRecord(flight_number="AI101", airline=" Air India Express "))
    assert kept.airline == "Air India Express"


def test_known_airline_words():
    """Carrier name words feed the noise filters"""
    words = known_airline_words()
    assert "INDIGO" in words
    assert "AIRWAYS" in words
    assert "AIR" in words
