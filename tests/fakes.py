"""
In-memory collaborators for exercising strategies and the orchestrator
without Tesseract, Gemini or Ollama.
"""

from typing import Any, List, Optional, Sequence, Union

from gemini_client import ModelReply
from models import BoardingPassRecord, OcrAccuracy, OcrObservation, Strategy, TokenUsage
from strategies import ExtractionStrategy, StrategyOutcome


class FakeOcrEngine:
    """Serves one page of lines per call; the last page repeats."""

    def __init__(self, pages: Sequence[Union[List[str], Exception]], confidence: float = 0.9):
        self.pages = list(pages)
        self.confidence = confidence
        self.calls: List[OcrAccuracy] = []

    async def recognize(self, image: Any, accuracy: OcrAccuracy) -> List[OcrObservation]:
        self.calls.append(accuracy)
        page = self.pages[min(len(self.calls), len(self.pages)) - 1]
        if isinstance(page, Exception):
            raise page
        return [OcrObservation(text=line, confidence=self.confidence) for line in page]


class FakeVisionClient:
    def __init__(self, text: str = "", error: Optional[BaseException] = None, usage: Optional[TokenUsage] = None):
        self.text = text
        self.error = error
        self.usage = usage
        self.calls = 0

    async def infer(self, image: Any, instructions: str) -> ModelReply:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ModelReply(text=self.text, usage=self.usage)


class FakeLanguageModel:
    def __init__(self, reply: str = "", error: Optional[BaseException] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def respond(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class StubStrategy(ExtractionStrategy):
    def __init__(
        self,
        strategy: Strategy,
        record: Optional[BoardingPassRecord] = None,
        error: Optional[BaseException] = None,
        confidence: float = 0.8,
    ):
        self.strategy = strategy
        self.record = record
        self.error = error
        self.confidence = confidence
        self.calls = 0

    async def _extract(self, image: Any) -> StrategyOutcome:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return StrategyOutcome(record=self.record, confidence=self.confidence)


class RecordingSink:
    def __init__(self):
        self.results = []

    def record(self, result) -> None:
        self.results.append(result)


class FailingSink:
    def record(self, result) -> None:
        raise OSError("disk full")


class CountingProbe:
    def __init__(self, available: bool):
        self.available = available
        self.calls = 0

    async def is_available(self) -> bool:
        self.calls += 1
        return self.available
