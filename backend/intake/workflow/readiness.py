from __future__ import annotations

from dataclasses import dataclass, field

from intake.schemas.student import AnalysisVerdict, CandidateRecord

MISSING_BIRTH_YEAR = "missing_birth_year"
MISSING_PHOTO = "missing_photo"
ANALYSIS_NOT_PASSING = "analysis_not_passing"

@dataclass(frozen=True)
class Readiness:
    ready: bool
    reasons: list[str] = field(default_factory=list)

def evaluate(
    record: CandidateRecord | None,
    entered_birth_year: str | None,
    has_selected_image: bool,
    verdict: AnalysisVerdict | None,
) -> Readiness:
    """Decide whether a submission may start, listing every unmet condition.

    `verdict` is the one attached to the displayed photo: the server-known
    verdict for a stored photo or the fresh one for a new selection.
    """
    if verdict is None and not has_selected_image and record and record.photo_url:
        # a stored photo was accepted when it was submitted
        verdict = AnalysisVerdict.all_passing()

    reasons = []
    if not ((record and record.birth_year) or entered_birth_year):
        reasons.append(MISSING_BIRTH_YEAR)
    if not ((record and record.photo_url) or has_selected_image):
        reasons.append(MISSING_PHOTO)
    if verdict is None or not verdict.passed:
        reasons.append(ANALYSIS_NOT_PASSING)
    return Readiness(ready=not reasons, reasons=reasons)
