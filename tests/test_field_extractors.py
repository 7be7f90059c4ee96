# ============================================================================
# FILE: tests/test_field_extractors.py
# ============================================================================
"""
Unit tests for the per-field pattern extractors
"""

from datetime import date

from field_extractors import (
    extract_confirmation_code,
    extract_date,
    extract_flight_number,
    extract_gate,
    extract_passenger_name,
    extract_record,
    extract_route,
    extract_seat,
    extract_terminal,
    extract_ticket_number,
    extract_times,
    has_boarding_pass_markers,
    is_valid_flight_number,
)
from models import RecordQuality
from validator import classify


def test_indigo_scenario(indigo_lines, resolver):
    """Mobile IndiGo pass read end to end"""
    record = extract_record(indigo_lines, resolver)

    assert record.flight_number == "6E6252"
    assert record.departure_code == "HYD"
    assert record.departure_city == "Hyderabad"
    assert record.arrival_code == "IXC"
    assert record.arrival_city == "Chandigarh"
    assert record.seat == "24D"
    assert record.gate == "14"
    assert record.departure_time == "19:45"
    assert record.confirmation_code == "ZAJIMS"
    assert classify(record) is RecordQuality.COMPLETE


def test_flight_and_single_code_is_minimal(resolver):
    """A flight number and one bare code are enough to accept"""
    record = extract_record(["UA546", "EWR"], resolver)

    assert record.flight_number == "UA546"
    assert record.departure_code == "EWR"
    assert record.departure_city == "Newark"
    assert record.arrival_code is None
    assert classify(record) is RecordQuality.MINIMAL


def test_extraction_is_idempotent(indigo_lines, resolver):
    """Same lines, same fields, whatever the call order"""
    first = extract_record(indigo_lines, resolver)
    seat = extract_seat(indigo_lines)
    second = extract_record(indigo_lines, resolver)

    assert first.core_fields() == second.core_fields()
    assert seat == first.seat


def test_flight_number_label_beats_bare_match():
    """The labelled flight number wins over an earlier bare one"""
    lines = ["AB 1234 TOWER", "FLIGHT NO: 6E 6252"]
    assert extract_flight_number(lines) == "6E6252"


def test_flight_number_blacklist():
    """UI words never become flight numbers"""
    assert extract_flight_number(["GATE 22", "SEAT 12"]) is None


def test_route_phrase_beats_code_order(resolver):
    """An explicit '<CITY> To <CITY>' phrase decides direction"""
    route = extract_route(["DEL BOM", "MUMBAI To DELHI"], resolver)

    assert route.departure_code == "BOM"
    assert route.departure_city == "Mumbai"
    assert route.arrival_code == "DEL"
    assert route.arrival_city == "Delhi"


def test_route_arrow(resolver):
    """CODE -> CODE is directional"""
    route = extract_route(["BLR → HYD"], resolver)
    assert (route.departure_code, route.arrival_code) == ("BLR", "HYD")
    assert route.departure_city == "Bengaluru"


def test_route_bare_codes_by_position(resolver):
    """Bare codes fall back to order of appearance"""
    route = extract_route(["HYD IXC"], resolver)
    assert (route.departure_code, route.arrival_code) == ("HYD", "IXC")


def test_route_unknown_code_keeps_city_empty(resolver):
    """Codes the table does not know are kept without a city"""
    route = extract_route(["QQX"], resolver)
    assert route.departure_code == "QQX"
    assert route.departure_city is None


def test_seat_does_not_steal_carrier_code():
    """'6E' in a flight number is not seat 6E"""
    assert extract_seat(["6E 6252", "24D"]) == "24D"
    assert extract_seat(["SEAT", "12C"]) == "12C"
    assert extract_seat(["1A"]) is None


def test_gate_and_terminal():
    """Values beside or below their labels"""
    assert extract_gate(["Gate: 22"]) == "22"
    assert extract_gate(["GATE", "B12"]) == "B12"
    assert extract_gate(["GATE TBA"]) is None
    assert extract_terminal(["TERMINAL 3"]) == "3"


def test_confirmation_code_filters_lookalikes(resolver):
    """Flight numbers and interface words are not booking references"""
    assert extract_confirmation_code(["PNR ZAJIMS"], resolver) == "ZAJIMS"
    assert extract_confirmation_code(["6E6252", "ZAJIMS"], resolver) == "ZAJIMS"
    assert extract_confirmation_code(["BOARDING PASS", "ECONOMY"], resolver) is None


def test_ticket_number():
    """13-digit e-ticket numbers"""
    assert extract_ticket_number(["ETKT 098-2123456789"]) == "0982123456789"
    assert extract_ticket_number(["SEQ 012"]) is None


def test_times_from_labels():
    """Labels on the same line or on the line above"""
    same_line = extract_times(["DEPARTURE 07:15", "ARRIVAL 09:40"])
    assert (same_line.departure, same_line.arrival) == ("07:15", "09:40")

    above = extract_times(["DEPARTS ARRIVES", "07:15 09:40"])
    assert (above.departure, above.arrival) == ("07:15", "09:40")


def test_bare_four_digits_need_context():
    """A lone 4-digit number is only a time on a keyword line"""
    assert extract_times(["Sequence 0042"]).departure is None
    assert extract_times(["1945 Hrs"]).departure == "19:45"
    assert extract_times(["DEP 0715"]).departure == "07:15"


def test_date_without_year():
    """Day and month only take the current year"""
    assert extract_date(["12 Nov"], today=date(2026, 3, 1)) == date(2026, 11, 12)


def test_passenger_name_forms(resolver):
    """Slash form, labelled form; titles removed"""
    assert extract_passenger_name(["SHARMA/RAHUL MR"], resolver) == "SHARMA/RAHUL"
    assert extract_passenger_name(["Passenger: John Smith"], resolver) == "John Smith"
    assert extract_passenger_name(["HYDERABAD CHANDIGARH"], resolver) is None


def test_boarding_pass_markers():
    """Plain chatter is not a boarding pass"""
    assert has_boarding_pass_markers(["GATE 14"])
    assert not has_boarding_pass_markers(["Hello world"])
    assert not has_boarding_pass_markers([])


def test_route_code_before_city_name(resolver):
    """A city's own code printed ahead of the city name keeps its position"""
    route = extract_route(["DEL BOM", "New Delhi"], resolver)

    assert (route.departure_code, route.arrival_code) == ("DEL", "BOM")


def test_sequence_number_is_not_a_flight_number(resolver):
    """'SEQ NO 0045' loses to the carrier-prefixed flight number"""
    assert not is_valid_flight_number("NO0045")

    record = extract_record(["SEQ NO 0045", "UA 546", "EWR"], resolver)
    assert record.flight_number == "UA546"


def test_confirmation_code_skips_passenger_name(resolver):
    """Words of the passenger's name are not booking references"""
    record = extract_record(["PASSENGER: RAHUL SHARMA", "UA546", "EWR"], resolver)

    assert record.passenger_name == "RAHUL SHARMA"
    assert record.confirmation_code is None
    assert extract_confirmation_code(["SHARMA/RAHUL", "ZAJIMS"], resolver) == "ZAJIMS"


def test_priority_banner_is_not_a_name(resolver):
    """Cabin and boarding banners are not passenger names"""
    record = extract_record(["SKY PRIORITY", "UA546", "EWR"], resolver)

    assert record.passenger_name is None
