# ollama_client.py
"""
On-device language model client.

Talks to a local Ollama server over its HTTP generate API. The model only
sees OCR text, never the image.
"""
import asyncio
from typing import Protocol

import aiohttp

from config import OLLAMA_HOST, OLLAMA_MODEL, TIMEOUT
from logging_utils import get_logger
from models import StrategyUnavailableError

logger = get_logger("boardingpass.ollama")


class OllamaError(RuntimeError):
    """The Ollama server answered with a non-200 status."""


class LanguageModelClient(Protocol):
    async def respond(self, prompt: str) -> str:
        ...


class OllamaClient:
    def __init__(
        self,
        host: str = OLLAMA_HOST,
        model: str = OLLAMA_MODEL,
        timeout: float = TIMEOUT,
        max_tokens: int = 512,
        temperature: float = 0.1,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def respond(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(f"{self.host}/api/generate", json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise OllamaError(f"Ollama error ({response.status}): {error_text}")
                    data = await response.json()
        except aiohttp.ClientConnectorError as e:
            raise StrategyUnavailableError(
                f"Cannot connect to Ollama at {self.host}. Is it running?"
            ) from e
        except asyncio.TimeoutError:
            logger.error(f"Ollama request timed out after {self.timeout}s (model={self.model})")
            raise

        text = (data.get("response") or "").strip()
        logger.event(
            "on_device_reply",
            model=self.model,
            prompt_tokens=data.get("prompt_eval_count", 0),
            generated_tokens=data.get("eval_count", 0),
            chars=len(text),
        )
        return text
