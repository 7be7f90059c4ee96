from __future__ import annotations

import asyncio
from typing import Any, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from airlines import enrich_airline
from airports import RouteResolver
from config import OCR_CONFIDENCE_THRESHOLD, OCR_RETRY_DELAY
from field_extractors import extract_record
from logging_utils import get_logger
from models import BoardingPassRecord, OcrAccuracy, Strategy
from ocr_engine import OcrEngine, OcrEngineError, filter_observations
from validator import classify, is_acceptable, score_confidence

from .base import ExtractionStrategy, StrategyOutcome

logger = get_logger("boardingpass.strategies.ocr")

ACCURACY_SCHEDULE = (OcrAccuracy.HIGH, OcrAccuracy.FAST, OcrAccuracy.FAST)


def _needs_retry(record: Optional[BoardingPassRecord]) -> bool:
    return not is_acceptable(record)


async def _pause(seconds: float) -> None:
    await asyncio.sleep(seconds)


class OcrPatternStrategy(ExtractionStrategy):
    """
    Raw OCR plus the field pattern extractors.

    Runs the accuracy schedule until one pass yields a minimal record, pausing
    ``retry_delay`` seconds between passes. When no pass is acceptable the most
    complete record seen is returned.
    """

    strategy = Strategy.OCR_PATTERN_MATCH

    def __init__(
        self,
        ocr: OcrEngine,
        resolver: RouteResolver,
        schedule: Sequence[OcrAccuracy] = ACCURACY_SCHEDULE,
        retry_delay: float = OCR_RETRY_DELAY,
        confidence_threshold: float = OCR_CONFIDENCE_THRESHOLD,
    ):
        if not schedule:
            raise ValueError("schedule must contain at least one accuracy level")
        self.ocr = ocr
        self.resolver = resolver
        self.schedule = tuple(schedule)
        self.retry_delay = retry_delay
        self.confidence_threshold = confidence_threshold

    async def _read(self, image: Any, accuracy: OcrAccuracy) -> Optional[BoardingPassRecord]:
        observations = await self.ocr.recognize(image, accuracy)
        lines = filter_observations(observations, self.confidence_threshold)
        if not lines:
            return None
        record = extract_record(lines, self.resolver)
        return record if record.filled_field_count() else None

    async def _extract(self, image: Any) -> StrategyOutcome:
        best: Optional[BoardingPassRecord] = None
        last_error: Optional[OcrEngineError] = None
        attempts = 0

        retryer = AsyncRetrying(
            stop=stop_after_attempt(len(self.schedule)),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(OcrEngineError) | retry_if_result(_needs_retry),
            retry_error_callback=lambda retry_state: None,
            sleep=_pause,
        )

        async for attempt in retryer:
            attempts = attempt.retry_state.attempt_number
            accuracy = self.schedule[attempts - 1]
            record: Optional[BoardingPassRecord] = None
            with attempt:
                try:
                    record = await self._read(image, accuracy)
                except OcrEngineError as e:
                    last_error = e
                    logger.event("ocr_attempt", attempt=attempts, accuracy=accuracy.value, error=str(e))
                    raise
                logger.event(
                    "ocr_attempt",
                    attempt=attempts,
                    accuracy=accuracy.value,
                    quality=classify(record).value,
                    fields=record.filled_field_count() if record else 0,
                )
                if record is not None and (
                    best is None
                    or is_acceptable(record)
                    or record.filled_field_count() > best.filled_field_count()
                ):
                    best = record
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(record)

        if best is None:
            if last_error is not None:
                raise last_error
            return StrategyOutcome(record=None, attempts=attempts)

        return StrategyOutcome(
            record=enrich_airline(best),
            confidence=score_confidence(best),
            attempts=attempts,
        )
