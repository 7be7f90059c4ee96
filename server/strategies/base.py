from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from logging_utils import get_logger
from models import (
    BoardingPassRecord,
    ExtractionErrorKind,
    ExtractionResult,
    Strategy,
    StrategyUnavailableError,
    TokenUsage,
)
from response_parsers import MalformedResponseError, ModelDeclinedError

logger = get_logger("boardingpass.strategies")


class StrategyOutcome:
    """What a strategy's ``_extract`` hands back to ``run``."""

    __slots__ = ("record", "confidence", "token_usage", "attempts")

    def __init__(
        self,
        record: Optional[BoardingPassRecord],
        confidence: float = 0.0,
        token_usage: Optional[TokenUsage] = None,
        attempts: int = 1,
    ):
        self.record = record
        self.confidence = max(0.0, min(1.0, confidence))
        self.token_usage = token_usage
        self.attempts = attempts


class ExtractionStrategy(ABC):
    strategy: Strategy

    @abstractmethod
    async def _extract(self, image: Any) -> StrategyOutcome:
        ...

    def _failed(self, started: float, kind: ExtractionErrorKind, message: str) -> ExtractionResult:
        return ExtractionResult(
            strategy=self.strategy,
            record=None,
            confidence=0.0,
            elapsed=time.perf_counter() - started,
            error=message,
            error_kind=kind,
        )

    async def run(self, image: Any) -> ExtractionResult:
        """One attempt; failures come back as data, cancellation propagates."""
        started = time.perf_counter()
        try:
            outcome = await self._extract(image)
        except asyncio.CancelledError:
            raise
        except StrategyUnavailableError as e:
            return self._failed(started, ExtractionErrorKind.STRATEGY_UNAVAILABLE, str(e))
        except MalformedResponseError as e:
            return self._failed(started, ExtractionErrorKind.MALFORMED_RESPONSE, str(e))
        except ModelDeclinedError as e:
            return self._failed(started, ExtractionErrorKind.STRATEGY_FAILED, str(e))
        except Exception as e:
            logger.error(f"{self.strategy.display_name} failed: {type(e).__name__}: {e}", exc_info=True)
            return self._failed(
                started, ExtractionErrorKind.STRATEGY_FAILED, f"{type(e).__name__}: {e}"
            )

        elapsed = time.perf_counter() - started
        if outcome.record is None:
            return ExtractionResult(
                strategy=self.strategy,
                elapsed=elapsed,
                error="no record extracted",
                error_kind=ExtractionErrorKind.STRATEGY_FAILED,
                token_usage=outcome.token_usage,
                attempts=outcome.attempts,
            )
        return ExtractionResult(
            strategy=self.strategy,
            record=outcome.record,
            confidence=outcome.confidence,
            elapsed=elapsed,
            token_usage=outcome.token_usage,
            attempts=outcome.attempts,
        )
