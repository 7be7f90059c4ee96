# ============================================================================
# FILE: tests/test_strategies.py
# ============================================================================
"""
Unit tests for the three extraction strategies
"""

import asyncio

import pytest

from config import ParsingConfig
from fakes import FakeLanguageModel, FakeOcrEngine, FakeVisionClient
from models import ExtractionErrorKind, OcrAccuracy, Strategy, StrategyUnavailableError, TokenUsage
from ocr_engine import OcrEngineError
from ollama_client import OllamaError
from strategies import OcrPatternStrategy, OnDeviceModelStrategy, RemoteVisionStrategy, ocr_pattern


# ---------------- remote vision ----------------


@pytest.mark.asyncio
async def test_remote_vision_success(validator, remote_reply):
    """Reported confidence, token usage and airline are carried through"""
    usage = TokenUsage(prompt_tokens=1200, output_tokens=300, total_tokens=1500, estimated_cost=0.00024)
    client = FakeVisionClient(text=remote_reply, usage=usage)

    result = await RemoteVisionStrategy(client, validator).run(image=object())

    assert result.succeeded
    assert result.strategy is Strategy.REMOTE_VISION_MODEL
    assert result.confidence == pytest.approx(0.92)
    assert result.token_usage.total_tokens == 1500
    assert result.record.airline == "IndiGo"
    assert result.elapsed >= 0


@pytest.mark.asyncio
async def test_remote_vision_malformed_reply(validator):
    """Invalid JSON is recorded as malformed_response"""
    result = await RemoteVisionStrategy(FakeVisionClient(text="{not json"), validator).run(object())

    assert result.record is None
    assert result.error_kind is ExtractionErrorKind.MALFORMED_RESPONSE
    assert not result.succeeded


@pytest.mark.asyncio
async def test_remote_vision_declined(validator):
    """success=false is a failed attempt"""
    reply = '{"success": false, "confidence": 0, "errors": ["blurry"]}'
    result = await RemoteVisionStrategy(FakeVisionClient(text=reply), validator).run(object())

    assert result.error_kind is ExtractionErrorKind.STRATEGY_FAILED
    assert "blurry" in result.error


@pytest.mark.asyncio
async def test_remote_vision_unavailable(validator):
    """Missing credentials map to strategy_unavailable"""
    client = FakeVisionClient(error=StrategyUnavailableError("GOOGLE_API_KEY is not configured"))
    result = await RemoteVisionStrategy(client, validator).run(object())

    assert result.error_kind is ExtractionErrorKind.STRATEGY_UNAVAILABLE
    assert result.error == "GOOGLE_API_KEY is not configured"


@pytest.mark.asyncio
async def test_remote_vision_unexpected_error(validator):
    """Any other exception becomes strategy_failed"""
    client = FakeVisionClient(error=ConnectionResetError("peer went away"))
    result = await RemoteVisionStrategy(client, validator).run(object())

    assert result.error_kind is ExtractionErrorKind.STRATEGY_FAILED
    assert "peer went away" in result.error


@pytest.mark.asyncio
async def test_strategy_lets_cancellation_through(validator):
    """Cancellation is never converted into a result"""
    client = FakeVisionClient(error=asyncio.CancelledError())
    with pytest.raises(asyncio.CancelledError):
        await RemoteVisionStrategy(client, validator).run(object())


# ---------------- on-device model ----------------


@pytest.mark.asyncio
async def test_on_device_uses_model_reply(validator, indigo_lines):
    """The model reads the OCR text when it is available"""
    ocr = FakeOcrEngine([indigo_lines])
    model = FakeLanguageModel(
        reply="Flight Number: 6E6252\nDeparture City: Hyderabad\nArrival City: Chandigarh"
    )

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert ocr.calls == [OcrAccuracy.HIGH]
    assert len(model.prompts) == 1
    assert "HYDERABAD To CHANDIGARH" in model.prompts[0]
    assert result.succeeded
    assert result.record.arrival_code == "IXC"
    assert result.record.airline == "IndiGo"
    assert 0 < result.confidence <= 1


@pytest.mark.asyncio
async def test_on_device_falls_back_to_patterns(validator, indigo_lines):
    """An unreachable model leaves the pattern record"""
    ocr = FakeOcrEngine([indigo_lines])
    model = FakeLanguageModel(error=StrategyUnavailableError("Cannot connect to Ollama"))

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert result.succeeded
    assert result.record.flight_number == "6E6252"
    assert result.record.confirmation_code == "ZAJIMS"


@pytest.mark.asyncio
async def test_on_device_fills_gaps_from_patterns(validator, indigo_lines):
    """A non-minimal model record is completed from the pattern record"""
    ocr = FakeOcrEngine([indigo_lines])
    model = FakeLanguageModel(reply="Flight Number: 6E6252\nSeat: 24D")

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert result.record.seat == "24D"
    assert result.record.departure_code == "HYD"
    assert result.record.arrival_code == "IXC"


@pytest.mark.asyncio
async def test_on_device_skips_model_without_markers(validator):
    """Text that is plainly not a boarding pass never reaches the model"""
    ocr = FakeOcrEngine([["hello there", "see you soon"]])
    model = FakeLanguageModel(reply="Flight Number: 6E6252")

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert model.prompts == []
    assert result.record is None
    assert result.error_kind is ExtractionErrorKind.STRATEGY_FAILED


@pytest.mark.asyncio
async def test_on_device_drops_low_confidence_lines(validator, indigo_lines):
    """Observations under the threshold are ignored"""
    ocr = FakeOcrEngine([indigo_lines], confidence=0.1)
    model = FakeLanguageModel(reply="Flight Number: 6E6252")

    result = await OnDeviceModelStrategy(ocr, model, validator, confidence_threshold=0.3).run(object())

    assert model.prompts == []
    assert result.record is None


# ---------------- OCR + patterns ----------------


@pytest.mark.asyncio
async def test_ocr_pattern_short_circuits_on_minimal(resolver):
    """The first acceptable pass ends the schedule"""
    ocr = FakeOcrEngine([["garbage"], ["UA546", "EWR"]])

    result = await OcrPatternStrategy(ocr, resolver, retry_delay=0).run(object())

    assert ocr.calls == [OcrAccuracy.HIGH, OcrAccuracy.FAST]
    assert result.attempts == 2
    assert result.record.flight_number == "UA546"
    assert result.record.departure_code == "EWR"
    assert result.record.airline == "United Airlines"


@pytest.mark.asyncio
async def test_ocr_pattern_returns_best_after_schedule(resolver):
    """Without an acceptable pass the fullest record is kept"""
    ocr = FakeOcrEngine([["garbage"], ["UA546"], ["nothing here"]])

    result = await OcrPatternStrategy(ocr, resolver, retry_delay=0).run(object())

    assert ocr.calls == [OcrAccuracy.HIGH, OcrAccuracy.FAST, OcrAccuracy.FAST]
    assert result.attempts == 3
    assert result.record.flight_number == "UA546"


@pytest.mark.asyncio
async def test_ocr_pattern_retries_engine_errors(resolver):
    """Engine errors are retried like empty passes"""
    ocr = FakeOcrEngine([OcrEngineError("tesseract crashed"), ["UA546", "EWR"]])

    result = await OcrPatternStrategy(ocr, resolver, retry_delay=0).run(object())

    assert len(ocr.calls) == 2
    assert result.succeeded


@pytest.mark.asyncio
async def test_ocr_pattern_reports_persistent_engine_error(resolver):
    """When every pass fails the last engine error is reported"""
    ocr = FakeOcrEngine([OcrEngineError("tesseract is not installed")])

    result = await OcrPatternStrategy(ocr, resolver, retry_delay=0).run(object())

    assert len(ocr.calls) == 3
    assert result.record is None
    assert result.error_kind is ExtractionErrorKind.STRATEGY_FAILED
    assert "tesseract is not installed" in result.error


def test_ocr_pattern_requires_schedule(resolver):
    """An empty accuracy schedule is a configuration error"""
    with pytest.raises(ValueError):
        OcrPatternStrategy(FakeOcrEngine([[]]), resolver, schedule=())


@pytest.mark.asyncio
async def test_ocr_pattern_pauses_between_passes(resolver, monkeypatch):
    """The fixed pause separates passes and is skipped after an early success"""
    pauses = []

    async def record_pause(seconds):
        pauses.append(seconds)

    monkeypatch.setattr(ocr_pattern, "_pause", record_pause)
    assert ParsingConfig().ocr_retry_delay == 0.5

    ocr = FakeOcrEngine([["garbage"]])
    await OcrPatternStrategy(ocr, resolver, retry_delay=0.5).run(object())
    assert pauses == [0.5, 0.5]

    pauses.clear()
    ocr = FakeOcrEngine([["UA546", "EWR"]])
    result = await OcrPatternStrategy(ocr, resolver, retry_delay=0.5).run(object())
    assert result.succeeded
    assert pauses == []


@pytest.mark.asyncio
async def test_on_device_ollama_error_falls_back_to_patterns(validator, indigo_lines):
    """A non-200 answer from Ollama leaves the pattern record"""
    ocr = FakeOcrEngine([indigo_lines])
    model = FakeLanguageModel(error=OllamaError("Ollama error (500): model not loaded"))

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert result.succeeded
    assert result.record.flight_number == "6E6252"


@pytest.mark.asyncio
async def test_on_device_programming_error_is_not_masked(validator, indigo_lines):
    """Bugs inside the model client fail the attempt instead of falling back"""
    ocr = FakeOcrEngine([indigo_lines])
    model = FakeLanguageModel(error=NotImplementedError("respond is not wired up"))

    result = await OnDeviceModelStrategy(ocr, model, validator).run(object())

    assert result.record is None
    assert result.error_kind is ExtractionErrorKind.STRATEGY_FAILED
    assert "NotImplementedError" in result.error
