from __future__ import annotations

import logging

from intake.schemas.student import CandidateRecord
from intake.services.backend_client import StudentBackend

logger = logging.getLogger(__name__)

async def reconcile(backend: StudentBackend, exam_code: str) -> CandidateRecord:
    """Reload the record after a successful submission.

    The uploaded payload is never used to patch the record locally; whatever the
    server returns replaces it. Raises FetchFailed.
    """
    record = await backend.fetch_student(exam_code)
    if not record.is_complete:
        logger.warning(
            "Record %s is still incomplete after submission (birth_year=%r, photo_url=%r)",
            exam_code,
            record.birth_year,
            record.photo_url,
        )
    return record
