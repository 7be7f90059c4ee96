"""
strategies package

Public API:
    - ExtractionStrategy
    - RemoteVisionStrategy
    - OnDeviceModelStrategy
    - OcrPatternStrategy
"""

from .base import ExtractionStrategy, StrategyOutcome
from .on_device import OnDeviceModelStrategy
from .ocr_pattern import ACCURACY_SCHEDULE, OcrPatternStrategy
from .remote_vision import RemoteVisionStrategy

__all__ = [
    "ACCURACY_SCHEDULE",
    "ExtractionStrategy",
    "OcrPatternStrategy",
    "OnDeviceModelStrategy",
    "RemoteVisionStrategy",
    "StrategyOutcome",
]
