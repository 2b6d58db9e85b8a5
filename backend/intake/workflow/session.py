"""
Per-student submission workflow.

One instance backs one student's page visit. It owns the limiter countdown and
the in-flight analyzer task, and `close()` cancels both. Everything runs on a
single event loop; the `analyzing` and `submitting` flags are what keep two
analyzer calls or two submissions from overlapping.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum

from intake.core.config import settings
from intake.core.errors import (
    AlreadySubmitted,
    AnalysisFailed,
    FetchFailed,
    InvalidBirthYear,
    SubmissionBlocked,
    SubmissionFailed,
)
from intake.schemas.session import (
    AnalysisOut,
    RateLimitOut,
    ReadinessOut,
    SelectionOut,
    SubmissionOut,
    WorkflowView,
)
from intake.schemas.student import AnalysisVerdict, CandidateRecord, SelectedImage
from intake.services.analysis import AnalysisTracker, analyze
from intake.services.backend_client import StudentBackend
from intake.workflow.readiness import Readiness, evaluate as evaluate_readiness
from intake.workflow.rate_limiter import UploadRateLimiter
from intake.workflow.reconciler import reconcile
from intake.workflow.submission import Effect, Machine, SubmissionEvent, SubmissionState, step

logger = logging.getLogger(__name__)

ANALYSIS_PENDING = "analysis_pending"
SUBMITTED_NOTICE = "submitted"

class Phase(str, Enum):
    LOADING = "loading"
    EDITING = "editing"
    READ_ONLY = "read_only"
    UNAVAILABLE = "unavailable"

def known_verdict(record: CandidateRecord) -> AnalysisVerdict | None:
    if record.analysis is not None:
        return record.analysis
    return AnalysisVerdict.all_passing() if record.photo_url else None

class SubmissionWorkflow:
    def __init__(
        self,
        backend: StudentBackend,
        exam_code: str,
        limiter: UploadRateLimiter | None = None,
        birth_year_min: int | None = None,
        birth_year_max: int | None = None,
    ):
        self.backend = backend
        self.exam_code = exam_code
        self.limiter = limiter or UploadRateLimiter()
        self.birth_year_min = birth_year_min if birth_year_min is not None else settings.birth_year_min
        self.birth_year_max = birth_year_max if birth_year_max is not None else settings.birth_year_max

        self.phase = Phase.LOADING
        self.record: CandidateRecord | None = None
        self.error: str | None = None
        self.entered_birth_year: str | None = None
        self.selected_image: SelectedImage | None = None
        self.analysis = AnalysisTracker()
        self.machine = Machine()
        self.notice: str | None = None
        self._analysis_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # loading

    async def load(self) -> CandidateRecord:
        self.phase = Phase.LOADING
        try:
            record = await self.backend.fetch_student(self.exam_code)
        except FetchFailed as e:
            self.phase = Phase.UNAVAILABLE
            self.error = str(e)
            raise
        self._present(record)
        logger.info("Loaded student %s (phase=%s)", self.exam_code, self.phase.value)
        return record

    def _present(self, record: CandidateRecord) -> None:
        self.record = record
        self.error = None
        self.analysis.reset(known_verdict(record))
        self.phase = Phase.READ_ONLY if record.is_complete else Phase.EDITING

    def _require_editable(self) -> None:
        if self.phase == Phase.READ_ONLY:
            raise AlreadySubmitted(self.exam_code)
        if self.phase != Phase.EDITING:
            raise FetchFailed(self.error or "Student record is not loaded")
        if self.machine.state in (SubmissionState.SUBMITTING, SubmissionState.SUCCEEDED):
            raise SubmissionBlocked([f"submission_{self.machine.state.value}"])

    # ------------------------------------------------------------------
    # form input

    def set_birth_year(self, value: str) -> str:
        self._require_editable()
        if self.record and self.record.birth_year:
            raise InvalidBirthYear("Birth year is already on record")

        text = str(value).strip()
        if len(text) != 4 or not text.isdigit():
            raise InvalidBirthYear(f"Birth year must be a four digit year, got {value!r}")
        if not self.birth_year_min <= int(text) <= self.birth_year_max:
            raise InvalidBirthYear(
                f"Birth year must be between {self.birth_year_min} and {self.birth_year_max}"
            )
        self.entered_birth_year = text
        return text

    def select_image(self, image: SelectedImage) -> int:
        """Take a new photo and start analysing it. Returns the selection's token.

        Raises RateLimited without touching the current selection.
        """
        self._require_editable()
        self.limiter.attempt()

        self._cancel_analysis()
        self.selected_image = image
        token = self.analysis.begin()
        self._analysis_task = asyncio.create_task(self._run_analysis(token, image))
        logger.info("Analysing %s for %s (selection %s)", image.filename, self.exam_code, token)
        return token

    async def _run_analysis(self, token: int, image: SelectedImage) -> None:
        try:
            verdict = await analyze(self.backend, image)
        except AnalysisFailed as e:
            logger.warning("Analysis of %s failed: %s", image.filename, e)
            self.analysis.fail(token, str(e))
            return
        except Exception as e:
            logger.exception("Analysis of %s raised unexpectedly", image.filename)
            self.analysis.fail(token, f"Analysis failed: {e}")
            return
        if self.analysis.complete(token, verdict) and not verdict.passed:
            logger.info("Photo %s failed checks: %s", image.filename, verdict.failed_checks())

    async def wait_for_analysis(self, token: int | None = None) -> AnalysisVerdict | None:
        """Wait for the pending analyzer call.

        Raises AnalysisFailed when the selection identified by `token` (the
        current one by default) failed. A superseded selection returns None.
        """
        task = self._analysis_task
        if task is not None:
            await asyncio.wait({task})
        if token is not None and not self.analysis.is_current(token):
            return None
        if self.analysis.error:
            raise AnalysisFailed(self.analysis.error)
        return self.analysis.verdict

    async def analyze_selection(self, image: SelectedImage) -> AnalysisVerdict | None:
        token = self.select_image(image)
        return await self.wait_for_analysis(token)

    def remove_image(self) -> None:
        self._require_editable()
        self._clear_selection()

    def _clear_selection(self) -> None:
        self._cancel_analysis()
        self.selected_image = None
        self.analysis.restore()

    def _cancel_analysis(self) -> None:
        if self._analysis_task is not None and not self._analysis_task.done():
            self._analysis_task.cancel()
        self._analysis_task = None

    # ------------------------------------------------------------------
    # readiness & submission

    def readiness(self) -> Readiness:
        return evaluate_readiness(
            self.record,
            self.entered_birth_year,
            self.selected_image is not None,
            self.analysis.verdict,
        )

    def _checked_readiness(self) -> Readiness:
        result = self.readiness()
        if self.analysis.analyzing:
            return Readiness(ready=False, reasons=result.reasons + [ANALYSIS_PENDING])
        return result

    def request_submit(self) -> Readiness:
        self._require_editable()
        result = self._checked_readiness()
        transition = step(self.machine, SubmissionEvent.REQUEST_CONFIRM, readiness=result)
        if not transition.accepted:
            raise SubmissionBlocked(transition.refused)
        self.machine = transition.machine
        return result

    def cancel(self) -> None:
        transition = step(self.machine, SubmissionEvent.CANCEL)
        if not transition.accepted:
            raise SubmissionBlocked(transition.refused)
        self.machine = transition.machine

    def dismiss(self) -> None:
        transition = step(self.machine, SubmissionEvent.DISMISS)
        if not transition.accepted:
            raise SubmissionBlocked(transition.refused)
        self.machine = transition.machine

    async def confirm(self) -> CandidateRecord:
        """Send the submission. Returns the reloaded record on success."""
        self._require_editable()
        transition = step(
            self.machine,
            SubmissionEvent.CONFIRM,
            readiness=self._checked_readiness(),
            has_image=self.selected_image is not None,
        )
        self.machine = transition.machine
        if not transition.accepted:
            raise SubmissionBlocked(transition.refused, transition.machine.error)

        await self._run_effects(transition.effects)
        return self.record

    async def _run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            if effect == Effect.SEND_UPDATE:
                await self._send_update()
            elif effect == Effect.RECONCILE:
                await self._reconcile()

    async def _send_update(self) -> None:
        birth_year = self.entered_birth_year or self.record.birth_year
        image = self.selected_image
        logger.info("Submitting %s for %s", image.filename, self.exam_code)
        try:
            await self.backend.update_student(self.exam_code, birth_year, image)
        except SubmissionFailed as e:
            self.machine = step(self.machine, SubmissionEvent.SUBMIT_ERROR, error=str(e)).machine
            raise
        except BaseException as e:
            # includes cancellation; the machine must not stay in submitting
            logger.exception("Submission for %s was interrupted", self.exam_code)
            error = str(e) or "Submission was interrupted"
            self.machine = step(self.machine, SubmissionEvent.SUBMIT_ERROR, error=error).machine
            raise

        transition = step(self.machine, SubmissionEvent.SUBMIT_OK)
        # stays in submitting until the server copy is back
        await self._run_effects(transition.effects)
        self.machine = transition.machine
        self.notice = SUBMITTED_NOTICE

    async def _reconcile(self) -> None:
        try:
            record = await reconcile(self.backend, self.exam_code)
        except BaseException as e:
            logger.error("Reloading %s after submission failed: %r", self.exam_code, e)
            error = str(e) or "Reloading the record was interrupted"
            self.machine = Machine(SubmissionState.FAILED, error=error)
            self.phase = Phase.UNAVAILABLE
            self.error = error
            raise
        self._clear_selection()
        self.entered_birth_year = None
        self._present(record)

    # ------------------------------------------------------------------

    def close(self) -> None:
        self.limiter.cancel()
        self._cancel_analysis()

    def pop_notice(self) -> str | None:
        notice, self.notice = self.notice, None
        return notice

    def view(self, consume_notice: bool = False) -> WorkflowView:
        """Snapshot for the UI. Only the caller that reports the outcome consumes the notice."""
        verdict = self.analysis.verdict
        ready = self.readiness()
        limit = self.limiter.state
        selection = None
        if self.selected_image is not None:
            selection = SelectionOut(
                filename=self.selected_image.filename,
                content_type=self.selected_image.content_type,
                size=self.selected_image.size,
            )
        return WorkflowView(
            phase=self.phase.value,
            exam_code=self.exam_code,
            record=self.record,
            entered_birth_year=self.entered_birth_year,
            selection=selection,
            analysis=AnalysisOut(
                status=self.analysis.status.value,
                verdict=verdict,
                passed=bool(verdict and verdict.passed),
                failed_checks=verdict.failed_checks() if verdict else [],
                error=self.analysis.error,
            ),
            readiness=ReadinessOut(ready=ready.ready, reasons=ready.reasons),
            rate_limit=RateLimitOut(
                attempts=limit.attempts,
                limit=self.limiter.limit,
                limited=limit.limited,
                remaining_seconds=limit.remaining_seconds,
            ),
            submission=SubmissionOut(state=self.machine.state.value, error=self.machine.error),
            error=self.error,
            notice=self.pop_notice() if consume_notice else None,
        )
