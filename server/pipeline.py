# pipeline.py
import logging
from typing import Any, Dict, List, Optional, Sequence

from airports import build_default_resolver
from config import PARSING_CONFIG, ParsingConfig
from gemini_client import GeminiVisionClient
from logging_utils import current_request_id, get_logger, new_request_id
from models import (
    BoardingPassRecord,
    ExtractionError,
    ExtractionErrorKind,
    ExtractionResult,
    PipelineRun,
    PipelineState,
    RecordQuality,
    Strategy,
)
from network import NetworkProbe, SocketNetworkProbe
from ocr_engine import TesseractOcrEngine
from ollama_client import OllamaClient
from strategies import (
    ExtractionStrategy,
    OcrPatternStrategy,
    OnDeviceModelStrategy,
    RemoteVisionStrategy,
)
from usage_stats import UsageSink, UsageStatisticsRecorder
from validator import RecordValidator

logger = get_logger("boardingpass.pipeline")

NETWORK_UNAVAILABLE = "network unavailable"

EXHAUSTED_USER_MESSAGE = "We couldn't read this boarding pass."
EXHAUSTED_SUGGESTIONS = [
    "Make sure the whole boarding pass is visible and in focus",
    "Crop out surrounding UI such as status bars and buttons",
    "Try a screenshot instead of a photo of a screen",
]


class FallbackOrchestrator:
    """
    Runs the extraction strategies one after another in priority order and
    stops at the first record the validator accepts.

    Failures never escape ``run``: every attempt, including skipped ones,
    becomes an ExtractionResult, and exhaustion is reported on the returned
    PipelineRun.
    """

    def __init__(
        self,
        strategies: Sequence[ExtractionStrategy],
        validator: RecordValidator,
        stats: Optional[UsageSink] = None,
        network: Optional[NetworkProbe] = None,
        config: ParsingConfig = PARSING_CONFIG,
    ) -> None:
        by_kind: Dict[Strategy, ExtractionStrategy] = {s.strategy: s for s in strategies}
        self.chain: List[ExtractionStrategy] = [
            by_kind[kind] for kind in config.active_strategies if kind in by_kind
        ]
        self.validator = validator
        self.stats = stats
        self.network = network
        self.config = config

    async def _network_available(self) -> bool:
        if self.network is None:
            return True
        try:
            return await self.network.is_available()
        except Exception as e:
            logger.error(f"Network probe failed, treating network as unavailable: {e}")
            return False

    def _record_usage(self, result: ExtractionResult) -> None:
        if self.stats is None:
            return
        try:
            self.stats.record(result)
        except Exception as e:
            logger.event(
                "usage_sink_failed",
                level=logging.ERROR,
                strategy=result.strategy.value,
                error=f"{type(e).__name__}: {e}",
            )

    def _skipped(self, strategy: Strategy) -> ExtractionResult:
        logger.event("strategy_skipped", strategy=strategy.value, reason=NETWORK_UNAVAILABLE)
        return ExtractionResult(
            strategy=strategy,
            error=NETWORK_UNAVAILABLE,
            error_kind=ExtractionErrorKind.STRATEGY_UNAVAILABLE,
            attempts=0,
        )

    def _exhausted(self, run: PipelineRun) -> ExtractionError:
        reasons = "; ".join(
            f"{r.strategy.value}: {r.error or 'record not acceptable'}" for r in run.results
        )
        logger.event(
            "all_strategies_exhausted",
            level=logging.WARNING,
            attempted=[s.value for s in run.attempted],
            reasons=reasons,
        )
        return ExtractionError(
            kind=ExtractionErrorKind.ALL_STRATEGIES_EXHAUSTED,
            user_message=EXHAUSTED_USER_MESSAGE,
            technical_reason=reasons or "no strategies configured",
            suggestions=list(EXHAUSTED_SUGGESTIONS),
        )

    async def run(self, image: Any, network_available: Optional[bool] = None) -> PipelineRun:
        if current_request_id() is None:
            new_request_id()

        logger.start_timer("pipeline")
        run = PipelineRun()
        logger.event("pipeline_started", strategies=[s.strategy.value for s in self.chain])

        for strategy in self.chain:
            kind = strategy.strategy
            run.states.append(PipelineState.TRYING)

            if kind.requires_network:
                if network_available is None:
                    network_available = await self._network_available()
                if not network_available:
                    result = self._skipped(kind)
                    run.results.append(result)
                    self._record_usage(result)
                    run.states.append(PipelineState.CONTINUE)
                    continue

            result = await strategy.run(image)
            run.results.append(result)
            logger.log_attempt(kind.value, result.succeeded, result.elapsed, result.error)
            self._record_usage(result)

            quality = self.validator.classify(result.record) if result.error is None else RecordQuality.EMPTY
            if quality is not RecordQuality.EMPTY:
                run.states.append(PipelineState.ACCEPTED)
                run.record = result.record
                run.accepted = result
                run.quality = quality
                logger.event(
                    "strategy_accepted",
                    strategy=kind.value,
                    quality=quality.value,
                    confidence=result.confidence,
                    fields=result.record.filled_field_count(),
                )
                break
            run.states.append(PipelineState.CONTINUE)
        else:
            run.states.append(PipelineState.EXHAUSTED)
            run.failure = self._exhausted(run)

        run.elapsed = logger.end_timer("pipeline")
        return run

    async def extract(self, image: Any) -> Optional[BoardingPassRecord]:
        return (await self.run(image)).record


def build_pipeline(config: ParsingConfig = PARSING_CONFIG) -> FallbackOrchestrator:
    resolver = build_default_resolver()
    validator = RecordValidator(resolver)
    ocr = TesseractOcrEngine()
    strategies = [
        RemoteVisionStrategy(GeminiVisionClient(), validator),
        OnDeviceModelStrategy(
            ocr,
            OllamaClient(),
            validator,
            confidence_threshold=config.ocr_confidence_threshold,
        ),
        OcrPatternStrategy(
            ocr,
            resolver,
            retry_delay=config.ocr_retry_delay,
            confidence_threshold=config.ocr_confidence_threshold,
        ),
    ]
    return FallbackOrchestrator(
        strategies,
        validator,
        stats=UsageStatisticsRecorder(),
        network=SocketNetworkProbe(),
        config=config,
    )
