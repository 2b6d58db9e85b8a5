from pydantic import BaseModel

from intake.schemas.student import AnalysisVerdict, CandidateRecord

class SessionCreate(BaseModel):
    exam_code: str

class BirthYearIn(BaseModel):
    birth_year: str

class SelectionOut(BaseModel):
    filename: str
    content_type: str
    size: int

class AnalysisOut(BaseModel):
    status: str  # idle | analyzing | done | failed
    verdict: AnalysisVerdict | None = None
    passed: bool = False
    failed_checks: list[str] = []
    error: str | None = None

class ReadinessOut(BaseModel):
    ready: bool
    reasons: list[str]

class RateLimitOut(BaseModel):
    attempts: int
    limit: int
    limited: bool
    remaining_seconds: int

class SubmissionOut(BaseModel):
    state: str
    error: str | None = None

class WorkflowView(BaseModel):
    phase: str  # loading | editing | read_only | unavailable
    exam_code: str
    record: CandidateRecord | None = None
    entered_birth_year: str | None = None
    selection: SelectionOut | None = None
    analysis: AnalysisOut
    readiness: ReadinessOut
    rate_limit: RateLimitOut
    submission: SubmissionOut
    error: str | None = None
    notice: str | None = None

class SessionOut(BaseModel):
    session_id: str
    view: WorkflowView
