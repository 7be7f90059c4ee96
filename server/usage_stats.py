# usage_stats.py
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from config import USAGE_STATS_PATH
from logging_utils import get_logger
from models import ExtractionResult, Strategy, UsageStatistics

logger = get_logger("boardingpass.usage")


class UsageSink(Protocol):
    def record(self, result: ExtractionResult) -> None:
        ...


class UsageStatisticsRecorder:
    """Accumulates per-strategy attempt counts, timings and token spend.

    When a path is given the totals are loaded from it at startup and written
    back after every recorded attempt.
    """

    def __init__(self, path: Optional[str] = USAGE_STATS_PATH):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._stats = self._load()

    def _load(self) -> UsageStatistics:
        if self.path is None or not self.path.exists():
            return UsageStatistics()
        try:
            return UsageStatistics.model_validate_json(self.path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning(f"Could not load usage statistics from {self.path}: {e}")
            return UsageStatistics()

    def _persist(self) -> None:
        """Sibling temp file plus rename; the target is replaced whole or not at all."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as tmp:
                tmp.write(self._stats.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def record(self, result: ExtractionResult) -> None:
        with self._lock:
            self._stats.record_usage(result)
            self._persist()

    def snapshot(self) -> UsageStatistics:
        with self._lock:
            return self._stats.model_copy(deep=True)

    def success_rate(self, strategy: Strategy) -> float:
        with self._lock:
            return self._stats.success_rate(strategy)

    def reset(self) -> None:
        with self._lock:
            self._stats = UsageStatistics()
            self._persist()
