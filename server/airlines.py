# airlines.py
# ---------------------------------------------------------------------
# Carrier lookup for boarding passes. Keys are IATA designators; the
# rest of the code only needs "icao" and "name", so extending the table
# never requires code changes.

import functools
import re
from typing import Dict, Optional

from models import BoardingPassRecord

AIRLINE_CODES: dict[str, dict[str, str]] = {
    # ==== INDIA ====
    "6E": {"icao": "IGO", "name": "IndiGo"},
    "AI": {"icao": "AIC", "name": "Air India"},
    "IX": {"icao": "AXB", "name": "Air India Express"},
    "SG": {"icao": "SEJ", "name": "SpiceJet"},
    "UK": {"icao": "VTI", "name": "Vistara"},
    "QP": {"icao": "AKJ", "name": "Akasa Air"},
    "I5": {"icao": "IAD", "name": "AIX Connect"},
    "9I": {"icao": "LLR", "name": "Alliance Air"},

    # ==== U.S. MAJOR CARRIERS ====
    "AA": {"icao": "AAL", "name": "American Airlines"},
    "UA": {"icao": "UAL", "name": "United Airlines"},
    "DL": {"icao": "DAL", "name": "Delta Air Lines"},
    "WN": {"icao": "SWA", "name": "Southwest Airlines"},
    "B6": {"icao": "JBU", "name": "JetBlue Airways"},
    "AS": {"icao": "ASA", "name": "Alaska Airlines"},
    "NK": {"icao": "NKS", "name": "Spirit Airlines"},
    "F9": {"icao": "FFT", "name": "Frontier Airlines"},
    "HA": {"icao": "HAL", "name": "Hawaiian Airlines"},
    "AC": {"icao": "ACA", "name": "Air Canada"},

    # ==== EUROPE ====
    "BA": {"icao": "BAW", "name": "British Airways"},
    "LH": {"icao": "DLH", "name": "Lufthansa"},
    "AF": {"icao": "AFR", "name": "Air France"},
    "KL": {"icao": "KLM", "name": "KLM Royal Dutch Airlines"},
    "LX": {"icao": "SWR", "name": "Swiss International Air Lines"},
    "TK": {"icao": "THY", "name": "Turkish Airlines"},
    "VS": {"icao": "VIR", "name": "Virgin Atlantic"},
    "FR": {"icao": "RYR", "name": "Ryanair"},
    "U2": {"icao": "EZY", "name": "easyJet"},

    # ==== MIDDLE EAST ====
    "EK": {"icao": "UAE", "name": "Emirates"},
    "QR": {"icao": "QTR", "name": "Qatar Airways"},
    "EY": {"icao": "ETD", "name": "Etihad Airways"},
    "WY": {"icao": "OMA", "name": "Oman Air"},
    "GF": {"icao": "GFA", "name": "Gulf Air"},
    "SV": {"icao": "SVA", "name": "Saudia"},
    "FZ": {"icao": "FDB", "name": "flydubai"},

    # ==== ASIA PACIFIC ====
    "SQ": {"icao": "SIA", "name": "Singapore Airlines"},
    "CX": {"icao": "CPA", "name": "Cathay Pacific"},
    "JL": {"icao": "JAL", "name": "Japan Airlines"},
    "NH": {"icao": "ANA", "name": "All Nippon Airways"},
    "KE": {"icao": "KAL", "name": "Korean Air"},
    "TG": {"icao": "THA", "name": "Thai Airways"},
    "MH": {"icao": "MAS", "name": "Malaysia Airlines"},
    "QF": {"icao": "QFA", "name": "Qantas"},
    "NZ": {"icao": "ANZ", "name": "Air New Zealand"},
    "UL": {"icao": "ALK", "name": "SriLankan Airlines"},
}

# values models put in the airline slot when they have nothing better
_PLACEHOLDER_AIRLINES = {
    "NULL", "NIL", "NONE", "XSAT", "UNKNOWN", "N/A", "NA", "TBA", "TBD",
    "AIRLINE", "FLIGHT", "CODE",
}

_CODE_FORMAT = re.compile(r"[A-Z0-9]{2,3}")


@functools.lru_cache(maxsize=512)
def resolve_airline(code: str) -> Optional[Dict[str, str]]:
    """
    Known IATA -> record with 'iata'; known ICAO -> record mapped back to
    its IATA key; anything else -> None.
    """
    code = (code or "").strip().upper()
    if not _CODE_FORMAT.fullmatch(code):
        return None

    if code in AIRLINE_CODES:
        rec = AIRLINE_CODES[code].copy()
        rec.setdefault("iata", code)
        return rec

    for iata, data in AIRLINE_CODES.items():
        if data.get("icao", "").upper() == code:
            rec = data.copy()
            rec.setdefault("iata", iata)
            return rec

    return None


def airline_from_flight_number(flight_number: Optional[str]) -> Optional[str]:
    if not flight_number:
        return None
    cleaned = re.sub(r"[^A-Z0-9]", "", flight_number.upper())
    # ICAO prefixes are three letters ("IGO6252"); IATA two characters
    if len(cleaned) > 3 and cleaned[:3].isalpha():
        rec = resolve_airline(cleaned[:3])
        if rec:
            return rec["name"]
    if len(cleaned) > 2:
        rec = resolve_airline(cleaned[:2])
        if rec:
            return rec["name"]
    return None


def is_valid_airline_name(name: Optional[str]) -> bool:
    if not name:
        return False
    cleaned = name.strip()
    if cleaned.upper() in _PLACEHOLDER_AIRLINES:
        return False
    if len(cleaned) < 3:
        return False
    return any(ch.isalpha() for ch in cleaned)


@functools.lru_cache(maxsize=1)
def known_airline_words() -> frozenset:
    """Upper-cased words that appear in carrier names (used as noise filters)."""
    words = set()
    for data in AIRLINE_CODES.values():
        for word in re.split(r"[\s-]+", data["name"].upper()):
            if len(word) >= 3:
                words.add(word)
    return frozenset(words)


def enrich_airline(record: BoardingPassRecord) -> BoardingPassRecord:
    """Keep a plausible extracted airline, otherwise derive it from the flight number."""
    if is_valid_airline_name(record.airline):
        record.airline = record.airline.strip()
        return record
    record.airline = airline_from_flight_number(record.flight_number)
    return record
