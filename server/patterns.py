# patterns.py
import re

_MONTHS = r"(?:JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|SEPT|OCT|NOV|DEC)[A-Z]*"


class Patterns:
    # flight numbers, most specific first
    FLIGHT_LABELED = re.compile(
        r"\bFLIGHT(?:\s*(?:NO\.?|NUMBER|#))?\s*[:\-]?\s*([A-Z0-9]{2,3})\s?(\d{1,4}[A-Z]?)\b",
        re.IGNORECASE,
    )
    FLIGHT_ALPHA = re.compile(r"\b([A-Z]{2,3})\s?(\d{3,4})\b")
    FLIGHT_ALNUM = re.compile(r"\b(\d[A-Z]|[A-Z]\d)\s?(\d{2,4})\b")
    FLIGHT_SHAPE = re.compile(r"^(?:[A-Z]{2,3}|\d[A-Z]|[A-Z]\d)\d{1,4}[A-Z]?$")

    # route
    AIRPORT = re.compile(r"(?<![/\w])[A-Z]{3}(?![/\w])")
    ROUTE = re.compile(r"\b([A-Z]{3})\s*(?:-|–|—|→|->|>)\s*([A-Z]{3})\b")
    ROUTE_TO = r"\s+TO\s+"

    # date / time
    TIME_COLON = re.compile(r"(?<![\d:])(\d{1,2}:\d{2}(?:\s*[AaPp]\.?\s?[Mm]\.?)?)(?![\d:])")
    TIME_HRS = re.compile(r"(?<![\d:/.-])(\d{4})\s*(?:HRS?|HOURS|H)\b", re.IGNORECASE)
    TIME_BARE = re.compile(r"(?<![\d:/.-])(\d{4})(?![\d:/.-])")
    DATE_ISO = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
    DATE_NUMERIC = re.compile(r"\b\d{1,2}[/.-]\d{1,2}[/.-](?:\d{4}|\d{2})\b")
    DATE_DAY_MONTH = re.compile(
        rf"\b\d{{1,2}}(?:\s|-|/)?{_MONTHS}(?:(?:\s|-|/|,\s?)?(?:20\d{{2}}))?(?!\d)", re.IGNORECASE
    )
    DATE_MONTH_DAY = re.compile(
        rf"\b{_MONTHS}\.?(?:\s|-|/)?\d{{1,2}}(?:,?\s(?:20\d{{2}}))?(?!\d)", re.IGNORECASE
    )
    DEPARTURE_CONTEXT = re.compile(r"\b(?:DEP(?:ART(?:S|URE|ING)?)?|STD|ETD)\b", re.IGNORECASE)
    BOARDING_CONTEXT = re.compile(r"\b(?:BOARD(?:ING)?|BDG|BRD)\b", re.IGNORECASE)
    ARRIVAL_CONTEXT = re.compile(
        r"\b(?:ARR(?:IVE|IVES|IVAL|IVING)?|STA|ETA|LAND(?:S|ING)?)\b", re.IGNORECASE
    )

    # other fields
    GATE_LABEL = re.compile(r"\bGATE\b", re.IGNORECASE)
    TERMINAL_LABEL = re.compile(r"\b(?:TERMINAL|TERM)\b", re.IGNORECASE)
    LABEL_VALUE = re.compile(r"^\s*(?:(?:NO|NUMBER)\b\.?|#)?\s*[:.#\-]?\s*([A-Z0-9]{1,4})\b", re.IGNORECASE)
    SEAT_LABEL = re.compile(r"\bSEAT\b", re.IGNORECASE)
    SEAT = re.compile(r"\b(\d{1,3}[A-F])\b")
    SEAT_SHAPE = re.compile(r"^\d{1,3}[A-Z]$")
    CONFIRMATION = re.compile(r"(?<![/\w])([A-Z0-9]{5,8})(?![/\w])")
    CONFIRMATION_LABEL = re.compile(
        r"\b(?:PNR|CONFIRMATION|CONF|BOOKING|LOCATOR|RECORD|REF(?:ERENCE)?)\b", re.IGNORECASE
    )
    TICKET = re.compile(r"\b(\d{3})[- ]?(\d{10})\b")
    TICKET_LABEL = re.compile(r"\b(?:TICKET|TKT|ETKT|E-TICKET)\b", re.IGNORECASE)
    NAME_SLASH = re.compile(r"\b([A-Z][A-Z'-]+)\s?/\s?([A-Z][A-Z'-]+(?:\s[A-Z][A-Z'-]+)?)\b")
    NAME_LABEL = re.compile(r"^\s*(?:PASSENGER(?:\s+NAME)?|NAME(?:\s+OF\s+PASSENGER)?)\s*[:\-]\s*(.+)$", re.IGNORECASE)
    NAME_CAPS = re.compile(r"\b[A-Z][A-Z'-]+(?:\s+[A-Z][A-Z'-]+){1,2}\b")
    NAME_TITLE = re.compile(r"\b[A-Z][a-z'-]+(?:\s+[A-Z][a-z'-]+){1,2}\b")
    NAME_TITLES = re.compile(r"\s+(?:MR|MRS|MS|MISS|MSTR|DR)\.?$", re.IGNORECASE)

    DURATION = re.compile(r"^\s*(\d{1,2})\s*H(?:RS?|OURS?)?\s*(\d{1,2})\s*M(?:INS?|INUTES?)?\s*$", re.IGNORECASE)


patterns = Patterns()


FLIGHT_NUMBER_BLACKLIST = ("RED", "APP", "STORE", "CODE", "GATE", "SEAT", "ZONE", "TIME")

# label abbreviations that precede numbers ("SEQ NO 0045", "REF 1234")
FLIGHT_LABEL_PREFIXES = frozenset({"NO", "NR", "NUM", "NBR", "REF", "SEQ"})

# trigrams that show up on passes but are not airports
AIRPORT_CODE_BLACKLIST = frozenset(
    {
        "THE", "AND", "FOR", "YOU", "ARE", "NOT", "YES", "BUT", "CAN", "ALL",
        "GET", "SET", "TAP", "QRP", "COD", "PNR", "APP", "ADD", "SEQ", "UAU",
        "MIN", "SAT", "EAT", "GAT", "ATE", "GTE", "GAE", "HRS", "PAX", "ETA",
        "ETD", "STD", "STA", "DEP", "ARR", "VIA", "BAG", "ROW", "NON", "ONE",
        "TWO", "OFF", "OUT", "NOW", "NEW", "DAY", "MON", "TUE", "WED", "THU",
        "FRI", "SUN", "JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG",
        "SEP", "OCT", "NOV", "DEC", "TSA", "PRE", "CHK", "BRD", "GRP", "SEC",
        "REF", "TKT", "DOB", "AIR", "WAY", "PAS", "FLT", "SSR", "ECO", "BUS",
        "VIP", "MRS", "DOC", "NIL", "TBA", "USD", "INR", "EUR",
        "GBP", "TAX", "END", "TOP", "MAP", "QRC",
    }
)

# interface chrome seen in wallet screenshots and airline apps
UI_NOISE_WORDS = (
    "APPLE", "STORE", "WALLET", "CHECK", "FLIGHT", "BOARDING", "TERMINAL",
    "SCREEN", "STATUS", "TICKET", "NUMBER", "FLYER", "CLASS", "BOOKING",
    "RECORD", "LOCATOR", "CONFIRM", "ECONOMY", "PASSENG", "DEPART", "ARRIV",
    "SEQUENCE", "PRIORITY", "GROUP", "ZONE", "CABIN", "BAGGAGE", "DOWNLOAD",
    "MONDAY", "TUESDAY", "WEDNES", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY",
)

NAME_LINE_SKIP_TERMS = (
    "TAP", "QR", "CODE", "VIEW", "FULL", "SCREEN", "SHOW", "BOARDING", "GATE",
    "APPLE", "WALLET", "SEAT", "FLIGHT", "TERMINAL", "PNR", "CONFIRMATION",
    "BOOKING", "ZONE", "GROUP", "DEPART", "ARRIV", "SEQ", "CLASS", "TICKET",
    "STAR ALLIANCE", "MEMBER", "SEAT MAP", "GATE INFO", "BOARDING PASS",
)

NAME_PHRASE_BLACKLIST = (
    "APP STORE", "APPLE", "BOARDING", "FLIGHT", "GATE", "TERMINAL", "CHECK",
    "WALLET", "DOWNLOAD", "STATUS", "ECONOMY", "BUSINESS", "FIRST CLASS",
    "PREMIUM", "TAP QR", "QR CODE", "FULL SCREEN", "SHOW THE", "ADD TO",
    "AIRLINES", "AIRWAYS", "AIR LINES", "PASS", "WELCOME", "THANK", "ENJOY", "PLEASE",
)

NAME_CONNECTOR_WORDS = frozenset({"TO", "FROM", "VIA", "AND", "THE", "OF", "ON", "AT", "IN", "BY"})
