# config.py
import os
from dotenv import load_dotenv
load_dotenv()

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field

import logging
from logging_utils import configure_logging
from models import Strategy

configure_logging()
logger = logging.getLogger("boardingpass.config")

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
if not GOOGLE_API_KEY:
    logger.warning("GOOGLE_API_KEY missing - remote vision strategy will fail")
else:
    genai.configure(api_key=GOOGLE_API_KEY)

REMOTE_MODEL = os.getenv("BOARDING_PASS_REMOTE_MODEL", "gemini-2.0-flash")
# tried in order when the preferred model errors or returns no text
REMOTE_FALLBACK_MODELS: List[str] = [
    name.strip()
    for name in os.getenv("BOARDING_PASS_REMOTE_FALLBACK_MODELS", "gemini-2.0-flash-lite,gemini-1.5-flash").split(",")
    if name.strip()
]
REMOTE_MAX_TOKENS = int(os.getenv("REMOTE_MAX_TOKENS", "2000"))
REMOTE_TEMPERATURE = float(os.getenv("REMOTE_TEMPERATURE", "0.1"))
REMOTE_MAX_IMAGE_DIMENSION = int(os.getenv("REMOTE_MAX_IMAGE_DIMENSION", "1024"))
TIMEOUT = int(os.getenv("TIMEOUT", "30"))

OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434").rstrip("/")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2")

OCR_CONFIDENCE_THRESHOLD = float(os.getenv("OCR_CONFIDENCE_THRESHOLD", "0.3"))
OCR_RETRY_DELAY = float(os.getenv("OCR_RETRY_DELAY", "0.5"))

NETWORK_PROBE_HOST = os.getenv("NETWORK_PROBE_HOST", "8.8.8.8")
NETWORK_PROBE_PORT = int(os.getenv("NETWORK_PROBE_PORT", "53"))
NETWORK_PROBE_TIMEOUT = float(os.getenv("NETWORK_PROBE_TIMEOUT", "2.0"))

USAGE_STATS_PATH: Optional[str] = os.getenv("USAGE_STATS_PATH") or None

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8001"))

MAX_WORKERS = min(32, (os.cpu_count() or 4) * 2)
thread_pool = ThreadPoolExecutor(max_workers=MAX_WORKERS)


class ValidationRules(BaseModel):
    """Field-level acceptance rules applied to every model-produced value."""

    flight_number_pattern: str = r"^[A-Z0-9]{2,3}\d{1,4}[A-Z]?$"
    airport_code_pattern: str = r"^[A-Z]{3}$"
    seat_pattern: str = r"^\d{1,3}[A-Z]$"
    gate_pattern: str = r"^(?:[A-Z]?\d{1,3}[A-Z]?|[A-Z])$"
    confirmation_code_min_length: int = 4
    confirmation_code_max_length: int = 8
    terminal_max_length: int = 20
    passenger_name_max_length: int = 50
    city_max_length: int = 60


def _parse_fallback_order(raw: Optional[str]) -> List[Strategy]:
    if not raw:
        return list(Strategy)
    order: List[Strategy] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            strategy = Strategy(item)
        except ValueError:
            logger.warning(f"Ignoring unknown strategy in fallback order: {item}")
            continue
        if strategy not in order:
            order.append(strategy)
    return order or list(Strategy)


class ParsingConfig(BaseModel):
    fallback_order: List[Strategy] = Field(default_factory=lambda: list(Strategy))
    enable_fallbacks: bool = True
    ocr_confidence_threshold: float = Field(default=0.3, ge=0, le=1)
    ocr_retry_delay: float = Field(default=0.5, ge=0)

    @property
    def active_strategies(self) -> List[Strategy]:
        if self.enable_fallbacks:
            return list(self.fallback_order)
        return self.fallback_order[:1]


VALIDATION_RULES = ValidationRules()

PARSING_CONFIG = ParsingConfig(
    fallback_order=_parse_fallback_order(os.getenv("BOARDING_PASS_FALLBACK_ORDER")),
    enable_fallbacks=os.getenv("BOARDING_PASS_ENABLE_FALLBACKS", "true").lower()
    not in ("0", "false", "no"),
    ocr_confidence_threshold=OCR_CONFIDENCE_THRESHOLD,
    ocr_retry_delay=OCR_RETRY_DELAY,
)

logger.info(
    f"Config: remote_model={REMOTE_MODEL}, ollama={OLLAMA_HOST}/{OLLAMA_MODEL}, "
    f"timeout={TIMEOUT}s, workers={MAX_WORKERS}, "
    f"order={[s.value for s in PARSING_CONFIG.active_strategies]}"
)
