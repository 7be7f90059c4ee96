# models.py
from datetime import date, datetime, timezone
from enum import Enum
import re
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Strategy(str, Enum):
    REMOTE_VISION_MODEL = "remote_vision_model"
    ON_DEVICE_MODEL = "on_device_model"
    OCR_PATTERN_MATCH = "ocr_pattern_match"

    @property
    def display_name(self) -> str:
        return _STRATEGY_TRAITS[self]["display_name"]

    @property
    def supports_vision(self) -> bool:
        return _STRATEGY_TRAITS[self]["supports_vision"]

    @property
    def requires_network(self) -> bool:
        return _STRATEGY_TRAITS[self]["requires_network"]

    @property
    def cost_weight(self) -> float:
        """Relative spend per attempt; telemetry only."""
        return _STRATEGY_TRAITS[self]["cost_weight"]


_STRATEGY_TRAITS: Dict[Strategy, Dict[str, Any]] = {
    Strategy.REMOTE_VISION_MODEL: {
        "display_name": "Remote vision model",
        "supports_vision": True,
        "requires_network": True,
        "cost_weight": 1.0,
    },
    Strategy.ON_DEVICE_MODEL: {
        "display_name": "On-device language model",
        "supports_vision": False,
        "requires_network": False,
        "cost_weight": 0.1,
    },
    Strategy.OCR_PATTERN_MATCH: {
        "display_name": "OCR pattern match",
        "supports_vision": False,
        "requires_network": False,
        "cost_weight": 0.0,
    },
}


class OcrAccuracy(str, Enum):
    HIGH = "high"
    FAST = "fast"


class RecordQuality(str, Enum):
    EMPTY = "empty"
    MINIMAL = "minimal"
    COMPLETE = "complete"


class ExtractionErrorKind(str, Enum):
    STRATEGY_UNAVAILABLE = "strategy_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    STRATEGY_FAILED = "strategy_failed"
    ALL_STRATEGIES_EXHAUSTED = "all_strategies_exhausted"


class PipelineState(str, Enum):
    IDLE = "idle"
    TRYING = "trying"
    ACCEPTED = "accepted"
    CONTINUE = "continue"
    EXHAUSTED = "exhausted"


class OcrObservation(NamedTuple):
    text: str
    confidence: float


class CityCodeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    iata_code: str = Field(..., min_length=3, max_length=3)

    @field_validator("iata_code")
    @classmethod
    def _upper_code(cls, v: str) -> str:
        return v.upper()


_DATA_FIELDS = (
    "flight_number",
    "airline",
    "passenger_name",
    "departure_code",
    "departure_city",
    "arrival_code",
    "arrival_city",
    "departure_date",
    "arrival_date",
    "departure_time",
    "arrival_time",
    "gate",
    "terminal",
    "seat",
    "confirmation_code",
    "ticket_number",
    "boarding_time",
    "flight_duration",
)


class BoardingPassRecord(BaseModel):
    flight_number: Optional[str] = Field(default=None, description="Carrier code + number, e.g. 6E6252")
    airline: Optional[str] = None
    passenger_name: Optional[str] = None
    departure_code: Optional[str] = Field(default=None, description="IATA code")
    departure_city: Optional[str] = None
    arrival_code: Optional[str] = Field(default=None, description="IATA code")
    arrival_city: Optional[str] = None
    departure_date: Optional[date] = None
    arrival_date: Optional[date] = None
    departure_time: Optional[str] = Field(default=None, description="HH:MM, 24h")
    arrival_time: Optional[str] = Field(default=None, description="HH:MM, 24h")
    gate: Optional[str] = None
    terminal: Optional[str] = None
    seat: Optional[str] = None
    confirmation_code: Optional[str] = None
    ticket_number: Optional[str] = None
    boarding_time: Optional[str] = Field(default=None, description="HH:MM, 24h")
    flight_duration: Optional[str] = Field(default=None, description="XH YYM")
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("flight_number")
    @classmethod
    def _clean_flight_number(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return v
        return re.sub(r"[^\w\d]", "", v.upper())

    @field_validator("departure_code", "arrival_code")
    @classmethod
    def _validate_airport(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v and len(v) == 3 else v

    def core_fields(self) -> Dict[str, Any]:
        """Populated data fields, without the discovery timestamp."""
        out: Dict[str, Any] = {}
        for name in _DATA_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            out[name] = value
        return out

    def filled_field_count(self) -> int:
        return len(self.core_fields())

    def fill_missing_from(self, other: "BoardingPassRecord") -> "BoardingPassRecord":
        merged = self.model_copy()
        for name, value in other.core_fields().items():
            current = getattr(merged, name)
            if current is None or (isinstance(current, str) and not current.strip()):
                setattr(merged, name, value)
        return merged


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    model: Optional[str] = None


class ExtractionResult(BaseModel):
    strategy: Strategy
    record: Optional[BoardingPassRecord] = None
    confidence: float = Field(default=0.0, ge=0, le=1)
    elapsed: float = Field(default=0.0, ge=0, description="seconds")
    error: Optional[str] = None
    error_kind: Optional[ExtractionErrorKind] = None
    token_usage: Optional[TokenUsage] = None
    attempts: int = 1

    @property
    def succeeded(self) -> bool:
        return self.record is not None and self.error is None


class QualityReport(BaseModel):
    score: float = Field(ge=0, le=1)
    level: str
    issues: List[str] = Field(default_factory=list)


class ExtractionError(BaseModel):
    error: bool = True
    kind: ExtractionErrorKind = ExtractionErrorKind.ALL_STRATEGIES_EXHAUSTED
    user_message: str
    technical_reason: str
    suggestions: List[str] = Field(default_factory=list)


class StrategyUnavailableError(RuntimeError):
    """A strategy cannot run right now (no network, no API key, engine missing)."""


class PipelineRun(BaseModel):
    record: Optional[BoardingPassRecord] = None
    accepted: Optional[ExtractionResult] = None
    results: List[ExtractionResult] = Field(default_factory=list)
    states: List[PipelineState] = Field(default_factory=lambda: [PipelineState.IDLE])
    quality: RecordQuality = RecordQuality.EMPTY
    failure: Optional[ExtractionError] = None
    elapsed: float = 0.0

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    @property
    def attempted(self) -> List[Strategy]:
        return [r.strategy for r in self.results]


class UsageStatistics(BaseModel):
    total_parsing_attempts: int = 0
    attempts_by_method: Dict[str, int] = Field(default_factory=dict)
    successful_parsings_by_method: Dict[str, int] = Field(default_factory=dict)
    total_processing_time_by_method: Dict[str, float] = Field(default_factory=dict)
    total_tokens_used: int = 0
    estimated_total_cost: float = 0.0
    last_updated: Optional[datetime] = None

    @property
    def average_processing_time_by_method(self) -> Dict[str, float]:
        return {
            method: total / self.attempts_by_method[method]
            for method, total in self.total_processing_time_by_method.items()
            if self.attempts_by_method.get(method)
        }

    def record_usage(self, result: ExtractionResult) -> None:
        method = result.strategy.value
        self.total_parsing_attempts += 1
        self.attempts_by_method[method] = self.attempts_by_method.get(method, 0) + 1
        if result.succeeded:
            self.successful_parsings_by_method[method] = (
                self.successful_parsings_by_method.get(method, 0) + 1
            )
        self.total_processing_time_by_method[method] = (
            self.total_processing_time_by_method.get(method, 0.0) + result.elapsed
        )
        if result.token_usage:
            self.total_tokens_used += result.token_usage.total_tokens
            self.estimated_total_cost += result.token_usage.estimated_cost
        self.last_updated = datetime.now(timezone.utc)

    def success_rate(self, strategy: Strategy) -> float:
        attempts = self.attempts_by_method.get(strategy.value, 0)
        if attempts == 0:
            return 0.0
        return self.successful_parsings_by_method.get(strategy.value, 0) / attempts
