# airports.py
# ---------------------------------------------------------------------
# City <-> IATA resolution used by the route extractor and the record
# sanitiser. The first entry for a code is its canonical city; later
# entries are aliases (old names, airport names, common spellings).

import re
from typing import Dict, Iterable, List, Optional, Tuple

from models import CityCodeEntry
from patterns import AIRPORT_CODE_BLACKLIST

_CITY_TABLE: List[Tuple[str, str]] = [
    # ==== INDIA ====
    ("Hyderabad", "HYD"),
    ("Secunderabad", "HYD"),
    ("Chandigarh", "IXC"),
    ("Delhi", "DEL"),
    ("New Delhi", "DEL"),
    ("Mumbai", "BOM"),
    ("Bombay", "BOM"),
    ("Bengaluru", "BLR"),
    ("Bangalore", "BLR"),
    ("Chennai", "MAA"),
    ("Madras", "MAA"),
    ("Kolkata", "CCU"),
    ("Calcutta", "CCU"),
    ("Ahmedabad", "AMD"),
    ("Pune", "PNQ"),
    ("Guwahati", "GAU"),
    ("Kochi", "COK"),
    ("Cochin", "COK"),
    ("Thiruvananthapuram", "TRV"),
    ("Trivandrum", "TRV"),
    ("Bhubaneswar", "BBI"),
    ("Indore", "IDR"),
    ("Srinagar", "SXR"),
    ("Jammu", "IXJ"),
    ("Amritsar", "ATQ"),
    ("Goa", "GOI"),
    ("Panaji", "GOI"),
    ("Jaipur", "JAI"),
    ("Lucknow", "LKO"),
    ("Patna", "PAT"),
    ("Varanasi", "VNS"),
    ("Nagpur", "NAG"),
    ("Coimbatore", "CJB"),
    ("Visakhapatnam", "VTZ"),
    ("Mangaluru", "IXE"),
    ("Mangalore", "IXE"),
    ("Leh", "IXL"),
    ("Bagdogra", "IXB"),
    ("Ranchi", "IXR"),
    ("Raipur", "RPR"),
    ("Udaipur", "UDR"),
    ("Dehradun", "DED"),
    ("Madurai", "IXM"),
    ("Tiruchirappalli", "TRZ"),
    ("Vadodara", "BDQ"),
    ("Surat", "STV"),
    ("Port Blair", "IXZ"),
    # ==== NORTH AMERICA ====
    ("New York", "JFK"),
    ("NYC", "JFK"),
    ("Newark", "EWR"),
    ("LaGuardia", "LGA"),
    ("Los Angeles", "LAX"),
    ("San Francisco", "SFO"),
    ("Chicago", "ORD"),
    ("O'Hare", "ORD"),
    ("Ohare", "ORD"),
    ("Atlanta", "ATL"),
    ("Dallas", "DFW"),
    ("Fort Worth", "DFW"),
    ("Houston", "IAH"),
    ("Denver", "DEN"),
    ("Seattle", "SEA"),
    ("Boston", "BOS"),
    ("Miami", "MIA"),
    ("Orlando", "MCO"),
    ("Tampa", "TPA"),
    ("Las Vegas", "LAS"),
    ("Phoenix", "PHX"),
    ("Washington", "IAD"),
    ("Dulles", "IAD"),
    ("Philadelphia", "PHL"),
    ("Charlotte", "CLT"),
    ("Detroit", "DTW"),
    ("Minneapolis", "MSP"),
    ("Salt Lake City", "SLC"),
    ("San Diego", "SAN"),
    ("Portland", "PDX"),
    ("Honolulu", "HNL"),
    ("Anchorage", "ANC"),
    ("Nashville", "BNA"),
    ("Austin", "AUS"),
    ("New Orleans", "MSY"),
    ("Toronto", "YYZ"),
    ("Vancouver", "YVR"),
    ("Montreal", "YUL"),
    ("Calgary", "YYC"),
    ("Mexico City", "MEX"),
    ("Cancun", "CUN"),
    # ==== EUROPE ====
    ("London", "LHR"),
    ("Heathrow", "LHR"),
    ("Gatwick", "LGW"),
    ("Manchester", "MAN"),
    ("Edinburgh", "EDI"),
    ("Dublin", "DUB"),
    ("Paris", "CDG"),
    ("Frankfurt", "FRA"),
    ("Munich", "MUC"),
    ("Berlin", "BER"),
    ("Amsterdam", "AMS"),
    ("Brussels", "BRU"),
    ("Zurich", "ZRH"),
    ("Geneva", "GVA"),
    ("Vienna", "VIE"),
    ("Rome", "FCO"),
    ("Milan", "MXP"),
    ("Madrid", "MAD"),
    ("Barcelona", "BCN"),
    ("Lisbon", "LIS"),
    ("Copenhagen", "CPH"),
    ("Stockholm", "ARN"),
    ("Oslo", "OSL"),
    ("Helsinki", "HEL"),
    ("Istanbul", "IST"),
    ("Athens", "ATH"),
    # ==== MIDDLE EAST / AFRICA ====
    ("Dubai", "DXB"),
    ("Abu Dhabi", "AUH"),
    ("Doha", "DOH"),
    ("Muscat", "MCT"),
    ("Bahrain", "BAH"),
    ("Riyadh", "RUH"),
    ("Jeddah", "JED"),
    ("Kuwait", "KWI"),
    ("Cairo", "CAI"),
    ("Johannesburg", "JNB"),
    ("Nairobi", "NBO"),
    ("Addis Ababa", "ADD"),
    # ==== ASIA PACIFIC ====
    ("Singapore", "SIN"),
    ("Tokyo", "NRT"),
    ("Narita", "NRT"),
    ("Haneda", "HND"),
    ("Osaka", "KIX"),
    ("Seoul", "ICN"),
    ("Incheon", "ICN"),
    ("Beijing", "PEK"),
    ("Shanghai", "PVG"),
    ("Hong Kong", "HKG"),
    ("Taipei", "TPE"),
    ("Bangkok", "BKK"),
    ("Kuala Lumpur", "KUL"),
    ("Jakarta", "CGK"),
    ("Manila", "MNL"),
    ("Colombo", "CMB"),
    ("Kathmandu", "KTM"),
    ("Dhaka", "DAC"),
    ("Sydney", "SYD"),
    ("Melbourne", "MEL"),
    ("Brisbane", "BNE"),
    ("Perth", "PER"),
    ("Auckland", "AKL"),
]

DEFAULT_CITY_CODES: Tuple[CityCodeEntry, ...] = tuple(
    CityCodeEntry(city=city, iata_code=code) for city, code in _CITY_TABLE
)

_CODE_SHAPE = re.compile(r"^[A-Z]{3}$")


def is_plausible_airport_code(token: Optional[str]) -> bool:
    """Three uppercase letters and not a known false-positive trigram."""
    if not token:
        return False
    return bool(_CODE_SHAPE.match(token)) and token not in AIRPORT_CODE_BLACKLIST


class RouteResolver:
    """Immutable city <-> IATA lookup.

    Many cities may alias one code; every city maps to exactly one code.
    Built once and shared read-only between pipeline runs.
    """

    def __init__(self, entries: Iterable[CityCodeEntry] = DEFAULT_CITY_CODES):
        city_to_code: Dict[str, str] = {}
        code_to_city: Dict[str, str] = {}
        for entry in entries:
            key = entry.city.upper()
            if key in city_to_code and city_to_code[key] != entry.iata_code:
                raise ValueError(f"City {entry.city!r} mapped to two codes")
            city_to_code[key] = entry.iata_code
            code_to_city.setdefault(entry.iata_code, entry.city)

        self._city_to_code = city_to_code
        self._code_to_city = code_to_city

        # longest names first so "NEW DELHI" wins over "DELHI"
        names = sorted(city_to_code, key=len, reverse=True)
        alternation = "|".join(re.escape(n) for n in names)
        self._city_pattern = re.compile(rf"(?<![\w'])(?:{alternation})(?![\w'])", re.IGNORECASE)
        place = rf"{alternation}|[A-Z]{{3}}"
        self._phrase_pattern = re.compile(
            rf"(?<![\w'])({place})(?![\w'])\s+TO\s+(?<![\w'])({place})(?![\w'])", re.IGNORECASE
        )

    def __len__(self) -> int:
        return len(self._city_to_code)

    def code_for_city(self, city: Optional[str]) -> Optional[str]:
        if not city:
            return None
        return self._city_to_code.get(" ".join(city.split()).upper())

    def city_for_code(self, code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        return self._code_to_city.get(code.strip().upper())

    def is_known_city(self, name: Optional[str]) -> bool:
        return self.code_for_city(name) is not None

    def is_known_code(self, code: Optional[str]) -> bool:
        return self.city_for_code(code) is not None

    def resolve(self, token: Optional[str]) -> Optional[CityCodeEntry]:
        """Resolve a city name or a known code to its canonical entry."""
        if not token:
            return None
        code = self.code_for_city(token)
        if code is None and self.is_known_code(token):
            code = token.strip().upper()
        if code is None:
            return None
        return CityCodeEntry(city=self._code_to_city[code], iata_code=code)

    def find_cities(self, text: str) -> List[Tuple[int, int, CityCodeEntry]]:
        """All city mentions as (start, end, entry) in order of appearance."""
        found: List[Tuple[int, int, CityCodeEntry]] = []
        for match in self._city_pattern.finditer(text):
            entry = self.resolve(match.group(0))
            if entry is not None:
                found.append((match.start(), match.end(), entry))
        return found

    def find_directional_phrase(self, text: str) -> Optional[Tuple[CityCodeEntry, CityCodeEntry]]:
        """First "<CITY> To <CITY>" phrase whose two sides both resolve."""
        for match in self._phrase_pattern.finditer(text):
            origin = self.resolve(match.group(1))
            destination = self.resolve(match.group(2))
            if origin and destination and origin.iata_code != destination.iata_code:
                return origin, destination
        return None


def build_default_resolver() -> RouteResolver:
    return RouteResolver(DEFAULT_CITY_CODES)
