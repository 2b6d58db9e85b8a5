import pytest

from intake.workflow.readiness import ANALYSIS_NOT_PASSING, MISSING_PHOTO, Readiness
from intake.workflow.submission import (
    MISSING_IMAGE,
    Effect,
    Machine,
    SubmissionEvent,
    SubmissionState,
    step,
)

READY = Readiness(ready=True)
NOT_READY = Readiness(ready=False, reasons=[MISSING_PHOTO, ANALYSIS_NOT_PASSING])

IDLE = Machine()
CONFIRMING = Machine(SubmissionState.CONFIRMING)
SUBMITTING = Machine(SubmissionState.SUBMITTING)
FAILED = Machine(SubmissionState.FAILED, error="Error 500")
SUCCEEDED = Machine(SubmissionState.SUCCEEDED)

class TestRequestConfirm:
    def test_ready_moves_to_confirming(self):
        t = step(IDLE, SubmissionEvent.REQUEST_CONFIRM, readiness=READY)
        assert t.accepted
        assert t.machine.state == SubmissionState.CONFIRMING
        assert t.effects == []

    def test_not_ready_is_refused_without_change(self):
        t = step(IDLE, SubmissionEvent.REQUEST_CONFIRM, readiness=NOT_READY)
        assert not t.accepted
        assert t.machine is IDLE
        assert t.refused == [MISSING_PHOTO, ANALYSIS_NOT_PASSING]
        assert t.effects == []

    def test_retry_from_failed(self):
        t = step(FAILED, SubmissionEvent.REQUEST_CONFIRM, readiness=READY)
        assert t.machine == CONFIRMING

    @pytest.mark.parametrize("machine", [CONFIRMING, SUBMITTING, SUCCEEDED])
    def test_refused_from_other_states(self, machine):
        t = step(machine, SubmissionEvent.REQUEST_CONFIRM, readiness=READY)
        assert not t.accepted
        assert t.machine is machine

class TestConfirm:
    def test_sends_update(self):
        t = step(CONFIRMING, SubmissionEvent.CONFIRM, readiness=READY, has_image=True)
        assert t.machine.state == SubmissionState.SUBMITTING
        assert t.effects == [Effect.SEND_UPDATE]

    def test_without_image_aborts_to_idle(self):
        t = step(CONFIRMING, SubmissionEvent.CONFIRM, readiness=READY, has_image=False)
        assert t.machine.state == SubmissionState.IDLE
        assert t.machine.error
        assert t.refused == [MISSING_IMAGE]
        assert t.effects == []

    def test_readiness_lost_aborts_to_idle(self):
        t = step(CONFIRMING, SubmissionEvent.CONFIRM, readiness=NOT_READY, has_image=True)
        assert t.machine.state == SubmissionState.IDLE
        assert t.effects == []

    def test_only_from_confirming(self):
        t = step(IDLE, SubmissionEvent.CONFIRM, readiness=READY, has_image=True)
        assert not t.accepted
        assert t.machine is IDLE

class TestOutcome:
    def test_success_reconciles(self):
        t = step(SUBMITTING, SubmissionEvent.SUBMIT_OK)
        assert t.machine.state == SubmissionState.SUCCEEDED
        assert t.effects == [Effect.RECONCILE]

    def test_error_is_kept(self):
        t = step(SUBMITTING, SubmissionEvent.SUBMIT_ERROR, error="Error 500: boom")
        assert t.machine == Machine(SubmissionState.FAILED, error="Error 500: boom")

    def test_dismiss_returns_to_idle(self):
        assert step(FAILED, SubmissionEvent.DISMISS).machine == IDLE

    def test_cancel_returns_to_idle(self):
        assert step(CONFIRMING, SubmissionEvent.CANCEL).machine == IDLE

    @pytest.mark.parametrize("event", list(SubmissionEvent))
    def test_succeeded_is_terminal(self, event):
        t = step(SUCCEEDED, event, readiness=READY, has_image=True)
        assert t.machine is SUCCEEDED
        assert not t.accepted
