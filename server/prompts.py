# prompts.py

REMOTE_SYSTEM_INSTRUCTION = (
    "You are a boarding pass reader. You return exactly one JSON object and nothing else. "
    "Never invent values: a field you cannot read is null."
)

REMOTE_VISION_INSTRUCTIONS = """
Read the boarding pass in this image and return ONLY this JSON object:

{
  "success": true,
  "confidence": 0.0,
  "errors": [],
  "flightNumber": "6E6252",
  "airline": "IndiGo",
  "passengerName": "LASTNAME/FIRSTNAME",
  "departureAirport": "HYD",
  "departureCity": "Hyderabad",
  "arrivalAirport": "IXC",
  "arrivalCity": "Chandigarh",
  "departureTime": "19:45",
  "arrivalTime": "21:15",
  "departureDate": "2025-11-12",
  "departureDateRaw": "12 Nov",
  "arrivalDate": null,
  "arrivalDateRaw": null,
  "boardingTime": "19:00",
  "flightDuration": "1H 30M",
  "seat": "24D",
  "gate": "14",
  "terminal": null,
  "confirmationCode": "ZAJIMS",
  "ticketNumber": null,
  "extractedText": "all text you can read, one line per printed line"
}

RULES
1. "success", "confidence" and "errors" are always present. Set success=false
   (and explain in errors) when the image is not a boarding pass or is unreadable.
2. flightNumber: carrier code + number without spaces ("6E 6252" -> "6E6252").
3. departureAirport / arrivalAirport: 3-letter IATA codes only when printed or
   certain; otherwise null and fill the city fields instead.
4. Times in 24-hour HH:MM ("7:45 PM" -> "19:45", "1945 Hrs" -> "19:45").
   Do not guess a time that is not printed.
5. departureDate in YYYY-MM-DD when the year is printed; always copy the date
   exactly as printed into departureDateRaw.
6. arrivalDate only when printed or when the arrival is clearly on a later day;
   flightDuration as "XH YYM" only when printed or derivable from printed times.
7. passengerName as printed, titles (MR, MRS, MS) removed.
8. confirmationCode is the PNR / booking reference (usually 5-8 letters or digits),
   never the flight number, seat or gate.

CONFIDENCE
Start at 0.3 and add 0.1 for each field you could read, capped at 1.0.
Lower it when the image is blurred or partially hidden.
""".strip()

ON_DEVICE_PROMPT_TEMPLATE = """
The text below was read from a boarding pass by OCR. Extract the travel details.
Answer with one "Label: value" per line using exactly these labels, and write
null when a value is not present. Do not add explanations.

Flight Number:
Airline:
Passenger Name:
Departure Code:
Departure City:
Arrival Code:
Arrival City:
Departure Date:
Departure Time:
Arrival Time:
Boarding Time:
Seat:
Gate:
Terminal:
Confirmation Code:

Times must be 24-hour HH:MM. Airport codes are 3 capital letters.

OCR TEXT:
{text}
""".strip()


def build_on_device_prompt(lines) -> str:
    return ON_DEVICE_PROMPT_TEMPLATE.format(text="\n".join(lines))
