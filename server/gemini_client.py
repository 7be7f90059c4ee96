# gemini_client.py
from __future__ import annotations

import asyncio
import io
import logging
from datetime import datetime
from typing import Any, List, NamedTuple, Optional, Protocol, Sequence

import google.generativeai as genai
from PIL import Image
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from config import (
    GOOGLE_API_KEY,
    REMOTE_FALLBACK_MODELS,
    REMOTE_MAX_IMAGE_DIMENSION,
    REMOTE_MAX_TOKENS,
    REMOTE_MODEL,
    REMOTE_TEMPERATURE,
    TIMEOUT,
)
from image_processing import BoardingPassImageProcessor
from logging_utils import get_logger
from models import StrategyUnavailableError, TokenUsage
from prompts import REMOTE_SYSTEM_INSTRUCTION
from response_parsers import MalformedResponseError

logger = get_logger("boardingpass.gemini")

# Gemini Flash list prices, USD per 1M tokens
INPUT_PRICE_PER_M = 0.10
OUTPUT_PRICE_PER_M = 0.40


class ModelReply(NamedTuple):
    text: str
    usage: Optional[TokenUsage] = None
    model: Optional[str] = None


class VisionModelClient(Protocol):
    async def infer(self, image: Any, instructions: str) -> ModelReply:
        ...


def estimate_cost(prompt_tokens: int, output_tokens: int) -> float:
    return prompt_tokens * INPUT_PRICE_PER_M / 1_000_000 + output_tokens * OUTPUT_PRICE_PER_M / 1_000_000


def usage_from_response(response: Any, model: Optional[str] = None) -> Optional[TokenUsage]:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return None
    prompt_tokens = getattr(usage, "prompt_token_count", 0) or 0
    output_tokens = getattr(usage, "candidates_token_count", 0) or 0
    total_tokens = getattr(usage, "total_token_count", 0) or prompt_tokens + output_tokens
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        estimated_cost=estimate_cost(prompt_tokens, output_tokens),
        model=model,
    )


class GeminiVisionClient:
    """
    Remote multimodal model; one image plus instructions in, JSON text out.

    The preferred model is asked first. When it errors (after its own
    retries) or returns no text, each fallback model is tried in order and
    the first one that answers wins.
    """

    def __init__(
        self,
        model_name: str = REMOTE_MODEL,
        api_key: Optional[str] = GOOGLE_API_KEY,
        max_tokens: int = REMOTE_MAX_TOKENS,
        temperature: float = REMOTE_TEMPERATURE,
        max_dimension: int = REMOTE_MAX_IMAGE_DIMENSION,
        timeout: float = TIMEOUT,
        processor: Optional[BoardingPassImageProcessor] = None,
        fallback_models: Sequence[str] = REMOTE_FALLBACK_MODELS,
    ) -> None:
        self.model_name = model_name
        self.models: List[str] = [model_name] + [m for m in fallback_models if m != model_name]
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_dimension = max_dimension
        self.timeout = timeout
        self.processor = processor or BoardingPassImageProcessor()
        self.total_tokens_used: int = 0
        self.total_cost: float = 0.0
        self.api_calls_count: int = 0
        self.last_used_model: Optional[str] = None

    def _create_content(self, image: Any, instructions: str) -> list:
        jpeg = self.processor.encode_for_upload(image, max_dimension=self.max_dimension)
        return [instructions, Image.open(io.BytesIO(jpeg))]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    async def _generate(self, content: list, model_name: str) -> Any:
        model = genai.GenerativeModel(model_name, system_instruction=REMOTE_SYSTEM_INSTRUCTION)
        logger.logger.info(
            f"[REQUEST_TRACKER] Sending request to Gemini (model={model_name}) "
            f"at {datetime.now().isoformat()}"
        )
        return await asyncio.wait_for(
            model.generate_content_async(
                content,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                    response_mime_type="application/json",
                ),
            ),
            timeout=self.timeout,
        )

    def _record_usage(self, usage: Optional[TokenUsage], model_name: str) -> None:
        self.api_calls_count += 1
        if usage is None:
            return
        self.total_tokens_used += usage.total_tokens
        self.total_cost += usage.estimated_cost
        logger.event(
            "remote_usage",
            model=model_name,
            tokens_in=usage.prompt_tokens,
            tokens_out=usage.output_tokens,
            tokens_total=usage.total_tokens,
            cost_usd=round(usage.estimated_cost, 6),
        )

    async def _ask(self, content: list, model_name: str) -> ModelReply:
        response = await self._generate(content, model_name)
        usage = usage_from_response(response, model_name)
        self._record_usage(usage, model_name)
        try:
            text = response.text
        except ValueError as e:
            # blocked or empty candidate
            raise MalformedResponseError(f"Gemini returned no text ({model_name}): {e}") from e
        return ModelReply(text=text, usage=usage, model=model_name)

    async def infer(self, image: Any, instructions: str) -> ModelReply:
        if not self.api_key:
            raise StrategyUnavailableError("GOOGLE_API_KEY is not configured")

        content = self._create_content(image, instructions)
        last_error: Optional[Exception] = None
        for position, model_name in enumerate(self.models):
            try:
                reply = await self._ask(content, model_name)
            except Exception as e:
                last_error = e
                logger.event(
                    "remote_model_failed",
                    level=logging.WARNING,
                    model=model_name,
                    position=position,
                    error=f"{type(e).__name__}: {e}",
                )
                continue
            self.last_used_model = model_name
            logger.event("remote_model_answered", model=model_name, fallback=position > 0)
            return reply

        logger.event("remote_models_exhausted", level=logging.ERROR, models=self.models)
        raise last_error
