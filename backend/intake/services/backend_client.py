"""
Client for the remote student backend.

The workflow only talks to the backend through the `StudentBackend` port so it
can be driven by fakes in tests. `HttpStudentBackend` is the real adapter.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx

from intake.core.config import settings
from intake.core.errors import AnalysisFailed, FetchFailed, SubmissionFailed
from intake.schemas.student import AnalysisVerdict, CandidateRecord, SelectedImage

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
UNSPECIFIED = "Unspecified"

class StudentBackend(ABC):
    @abstractmethod
    async def fetch_student(self, exam_code: str) -> CandidateRecord:
        """Load the student's record. Raises FetchFailed."""

    @abstractmethod
    async def analyze_image(self, image: SelectedImage) -> Any:
        """Send the image to the analyzer and return the decoded body. Raises AnalysisFailed."""

    @abstractmethod
    async def update_student(self, exam_code: str, birth_year: str, image: SelectedImage) -> None:
        """Store birth year and photo. Raises SubmissionFailed."""

def birth_year_from(value: Any) -> str | None:
    # birthDate comes back either as an ISO date or a bare year
    if value is None:
        return None
    text = str(value).strip()
    if len(text) >= 4 and text[:4].isdigit():
        return text[:4]
    return None

def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)

def record_from_payload(exam_code: str, data: dict[str, Any]) -> CandidateRecord:
    photo_url = _text(data.get("imageUrl"))
    return CandidateRecord(
        name=_text(data.get("name")) or UNKNOWN_NAME,
        exam_code=exam_code,
        department=_text(data.get("section")) or UNSPECIFIED,
        study_type=_text(data.get("studyType")) or UNSPECIFIED,
        symbol=_text(data.get("symbol")),
        birth_year=birth_year_from(data.get("birthDate")),
        photo_url=photo_url,
        analysis=AnalysisVerdict.all_passing() if photo_url else None,
    )

class HttpStudentBackend(StudentBackend):
    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token
        self.base_url = (base_url or settings.backend_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.access_token}"},
            transport=self._transport,
        )

    @staticmethod
    def _image_file(image: SelectedImage):
        return {"image": (image.filename, image.content, image.content_type)}

    async def fetch_student(self, exam_code: str) -> CandidateRecord:
        try:
            async with self._client() as client:
                r = await client.get("/student/search", params={"query": exam_code})
        except httpx.HTTPError as e:
            logger.error("Fetching student %s failed: %s", exam_code, e)
            raise FetchFailed(f"Could not reach backend: {e}") from e

        if r.is_error:
            logger.error("Fetching student %s returned %s", exam_code, r.status_code)
            raise FetchFailed(f"Backend returned {r.status_code}", r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise FetchFailed("Backend returned invalid JSON", r.status_code) from e
        if not isinstance(data, dict):
            raise FetchFailed("Backend returned an unexpected student payload", r.status_code)

        logger.debug("Fetched student %s: %s", exam_code, data)
        return record_from_payload(exam_code, data)

    async def analyze_image(self, image: SelectedImage) -> Any:
        try:
            async with self._client() as client:
                r = await client.post("/student/analyze-image", files=self._image_file(image))
        except httpx.HTTPError as e:
            logger.warning("Image analysis request failed: %s", e)
            raise AnalysisFailed(f"Could not reach analyzer: {e}") from e

        if r.is_error:
            logger.warning("Image analysis returned %s", r.status_code)
            raise AnalysisFailed(f"Analyzer returned {r.status_code}")

        try:
            data = r.json()
        except ValueError as e:
            raise AnalysisFailed("Analyzer returned invalid JSON") from e
        logger.info("Image analysis result for %s: %s", image.filename, data)
        return data

    async def update_student(self, exam_code: str, birth_year: str, image: SelectedImage) -> None:
        try:
            async with self._client() as client:
                r = await client.patch(
                    f"/student/update/{quote(exam_code, safe='')}",
                    data={"birthDate": birth_year},
                    files=self._image_file(image),
                )
        except httpx.HTTPError as e:
            logger.error("Submission for %s failed: %s", exam_code, e)
            raise SubmissionFailed(f"Could not reach backend: {e}") from e

        if r.is_error:
            logger.error("Submission for %s returned %s: %s", exam_code, r.status_code, r.text)
            raise SubmissionFailed(f"Error {r.status_code}: {r.text}", r.status_code)

        # only the status decides success; the body is for diagnostics
        logger.debug("Submission response for %s: %s", exam_code, r.text)
