from __future__ import annotations

from typing import Any

from airlines import enrich_airline
from gemini_client import VisionModelClient
from models import Strategy
from prompts import REMOTE_VISION_INSTRUCTIONS
from response_parsers import ModelKind, RawModelOutput, read_model_output
from validator import RecordValidator

from .base import ExtractionStrategy, StrategyOutcome


class RemoteVisionStrategy(ExtractionStrategy):
    """Whole image to the remote multimodal model; strict JSON reply."""

    strategy = Strategy.REMOTE_VISION_MODEL

    def __init__(
        self,
        client: VisionModelClient,
        validator: RecordValidator,
        instructions: str = REMOTE_VISION_INSTRUCTIONS,
    ):
        self.client = client
        self.validator = validator
        self.instructions = instructions

    async def _extract(self, image: Any) -> StrategyOutcome:
        reply = await self.client.infer(image, self.instructions)
        parsed = read_model_output(RawModelOutput(kind=ModelKind.REMOTE_VISION, text=reply.text), self.validator)
        record = enrich_airline(parsed.record)
        return StrategyOutcome(
            record=record,
            confidence=parsed.reported_confidence or 0.0,
            token_usage=reply.usage,
        )
