from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from intake.core.errors import AnalysisFailed
from intake.schemas.student import AnalysisVerdict, SelectedImage
from intake.services.backend_client import StudentBackend

logger = logging.getLogger(__name__)

# wire key -> verdict field
FIELD_MAP = {
    "head_centered": "head_centered",
    "eyes_open": "eyes_open",
    "no_glasses": "no_glasses",
    "white_background": "white_background",
    "good_lighting": "good_lighting",
}

class AnalysisStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    DONE = "done"
    FAILED = "failed"

def verdict_from_payload(data: dict[str, Any]) -> AnalysisVerdict:
    """Map an analyzer response onto a verdict.

    Anything that is not a real boolean fails its check.
    """
    values: dict[str, bool] = {}
    for key, field in FIELD_MAP.items():
        raw = data.get(key)
        if isinstance(raw, bool):
            values[field] = raw
    return AnalysisVerdict(**values)

async def analyze(backend: StudentBackend, image: SelectedImage) -> AnalysisVerdict:
    data = await backend.analyze_image(image)
    if not isinstance(data, dict):
        raise AnalysisFailed("Analyzer response is not an object")
    return verdict_from_payload(data)

class AnalysisTracker:
    """
    Holds the verdict for the displayed photo and keys every analyzer call to
    the selection that started it.

    `begin()` returns a generation token; `complete()` and `fail()` ignore
    tokens that are no longer current.
    """

    def __init__(self, baseline: AnalysisVerdict | None = None):
        self.baseline = baseline
        self.verdict = baseline
        self.status = AnalysisStatus.IDLE
        self.error: str | None = None
        self.generation = 0

    @property
    def analyzing(self) -> bool:
        return self.status == AnalysisStatus.ANALYZING

    def is_current(self, token: int) -> bool:
        return token == self.generation

    def begin(self) -> int:
        self.generation += 1
        self.status = AnalysisStatus.ANALYZING
        self.verdict = None
        self.error = None
        return self.generation

    def complete(self, token: int, verdict: AnalysisVerdict) -> bool:
        if not self.is_current(token):
            logger.info("Discarding analysis result for superseded selection %s", token)
            return False
        self.verdict = verdict
        self.status = AnalysisStatus.DONE
        return True

    def fail(self, token: int, error: str) -> bool:
        if not self.is_current(token):
            return False
        self.verdict = None
        self.status = AnalysisStatus.FAILED
        self.error = error
        return True

    def restore(self) -> None:
        """Drop the fresh selection's state and fall back to the server-known verdict."""
        self.generation += 1
        self.verdict = self.baseline
        self.status = AnalysisStatus.IDLE
        self.error = None

    def reset(self, baseline: AnalysisVerdict | None) -> None:
        self.baseline = baseline
        self.restore()
