# ocr_engine.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Protocol, Sequence, Tuple

import numpy as np
import pytesseract

from config import OCR_CONFIDENCE_THRESHOLD, thread_pool
from image_processing import BoardingPassImageProcessor
from logging_utils import get_logger
from models import OcrAccuracy, OcrObservation

logger = get_logger("boardingpass.ocr")

# sparse text for the careful pass, one uniform block for the quick ones
TESSERACT_CONFIGS = {
    OcrAccuracy.HIGH: "--oem 3 --psm 11",
    OcrAccuracy.FAST: "--oem 3 --psm 6",
}


class OcrEngineError(RuntimeError):
    """The OCR engine could not process the image."""


class OcrEngine(Protocol):
    async def recognize(self, image: Any, accuracy: OcrAccuracy) -> List[OcrObservation]:
        ...


def filter_observations(
    observations: Sequence[OcrObservation], threshold: float = OCR_CONFIDENCE_THRESHOLD
) -> List[str]:
    """Lines whose recognition confidence clears the threshold."""
    lines = []
    for obs in observations:
        text = obs.text.strip()
        if text and obs.confidence >= threshold:
            lines.append(text)
    return lines


def group_words_into_lines(data: Dict[str, List[Any]]) -> List[OcrObservation]:
    """Collapse pytesseract ``image_to_data`` word rows into text lines."""
    grouped: Dict[Tuple[int, int, int], List[Tuple[str, float]]] = {}
    order: List[Tuple[int, int, int]] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue
        if not word or conf < 0:
            continue
        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        if key not in grouped:
            grouped[key] = []
            order.append(key)
        grouped[key].append((word, conf / 100.0))

    observations = []
    for key in order:
        words = grouped[key]
        text = " ".join(w for w, _ in words)
        confidence = sum(c for _, c in words) / len(words)
        observations.append(OcrObservation(text=text, confidence=round(confidence, 3)))
    return observations


class TesseractOcrEngine:
    def __init__(self, processor: BoardingPassImageProcessor | None = None, lang: str = "eng"):
        self.processor = processor or BoardingPassImageProcessor()
        self.lang = lang

    def _recognize_sync(self, image: np.ndarray, accuracy: OcrAccuracy) -> List[OcrObservation]:
        prepared = self.processor.prepare_for_ocr(image, accuracy)
        try:
            data = pytesseract.image_to_data(
                prepared,
                lang=self.lang,
                config=TESSERACT_CONFIGS[accuracy],
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise OcrEngineError(f"Tesseract failed: {e}") from e
        return group_words_into_lines(data)

    async def recognize(self, image: np.ndarray, accuracy: OcrAccuracy) -> List[OcrObservation]:
        loop = asyncio.get_running_loop()
        observations = await loop.run_in_executor(thread_pool, self._recognize_sync, image, accuracy)
        logger.event(
            "ocr_recognized",
            accuracy=accuracy.value,
            lines=len(observations),
            avg_confidence=round(
                sum(o.confidence for o in observations) / len(observations), 3
            ) if observations else 0.0,
        )
        return observations
