from __future__ import annotations

import asyncio
from typing import Any, Optional

import aiohttp

from airlines import enrich_airline
from config import OCR_CONFIDENCE_THRESHOLD
from field_extractors import extract_record, has_boarding_pass_markers
from logging_utils import get_logger
from models import BoardingPassRecord, OcrAccuracy, Strategy, StrategyUnavailableError
from ocr_engine import OcrEngine, filter_observations
from ollama_client import LanguageModelClient, OllamaError
from prompts import build_on_device_prompt
from response_parsers import MalformedResponseError, ModelKind, RawModelOutput, read_model_output
from validator import RecordValidator, is_acceptable, score_confidence

from .base import ExtractionStrategy, StrategyOutcome

logger = get_logger("boardingpass.strategies.on_device")

# pattern-only records are trusted a little less than model-read ones
FALLBACK_CONFIDENCE_FACTOR = 0.9


class OnDeviceModelStrategy(ExtractionStrategy):
    """OCR text through the local language model, with pattern extraction as backstop."""

    strategy = Strategy.ON_DEVICE_MODEL

    def __init__(
        self,
        ocr: OcrEngine,
        client: Optional[LanguageModelClient],
        validator: RecordValidator,
        confidence_threshold: float = OCR_CONFIDENCE_THRESHOLD,
    ):
        self.ocr = ocr
        self.client = client
        self.validator = validator
        self.confidence_threshold = confidence_threshold

    async def _ask_model(self, lines) -> Optional[BoardingPassRecord]:
        if self.client is None:
            return None
        if not has_boarding_pass_markers(lines):
            logger.event("on_device_model_skipped", reason="no boarding pass markers")
            return None
        try:
            reply = await self.client.respond(build_on_device_prompt(lines))
            return read_model_output(RawModelOutput(kind=ModelKind.ON_DEVICE, text=reply), self.validator).record
        except (
            StrategyUnavailableError,
            OllamaError,
            MalformedResponseError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
        ) as e:
            logger.event("on_device_fallback", reason=f"{type(e).__name__}: {e}")
            return None

    async def _extract(self, image: Any) -> StrategyOutcome:
        observations = await self.ocr.recognize(image, OcrAccuracy.HIGH)
        lines = filter_observations(observations, self.confidence_threshold)
        if not lines:
            return StrategyOutcome(record=None)

        pattern_record = extract_record(lines, self.validator.resolver)
        model_record = await self._ask_model(lines)

        if model_record is None:
            record = pattern_record
            confidence = score_confidence(record) * FALLBACK_CONFIDENCE_FACTOR
        elif is_acceptable(model_record):
            record = model_record
            confidence = score_confidence(record)
        else:
            record = model_record.fill_missing_from(pattern_record)
            confidence = score_confidence(record)

        if record.filled_field_count() == 0:
            return StrategyOutcome(record=None)
        return StrategyOutcome(record=enrich_airline(record), confidence=confidence)
