"""
Submission state machine.

`step()` is a pure reducer: it takes the current machine and an event and
returns the next machine plus the effects the caller must run. The caller
feeds back the outcome of `SEND_UPDATE` as SUBMIT_OK or SUBMIT_ERROR.

    idle | failed --REQUEST_CONFIRM--> confirming      (ready only)
    confirming    --CANCEL---------->  idle
    confirming    --CONFIRM--------->  submitting      (ready and image selected)
                                       idle + error    (otherwise)
    submitting    --SUBMIT_OK------->  succeeded       (terminal)
    submitting    --SUBMIT_ERROR---->  failed
    failed        --DISMISS--------->  idle
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from intake.workflow.readiness import Readiness

MISSING_IMAGE = "missing_image"

class SubmissionState(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class SubmissionEvent(str, Enum):
    REQUEST_CONFIRM = "request_confirm"
    CANCEL = "cancel"
    CONFIRM = "confirm"
    SUBMIT_OK = "submit_ok"
    SUBMIT_ERROR = "submit_error"
    DISMISS = "dismiss"

class Effect(str, Enum):
    SEND_UPDATE = "send_update"
    RECONCILE = "reconcile"

@dataclass(frozen=True)
class Machine:
    state: SubmissionState = SubmissionState.IDLE
    error: str | None = None

@dataclass(frozen=True)
class Transition:
    machine: Machine
    effects: list[Effect] = field(default_factory=list)
    # set when the event was refused; the machine is then unchanged
    refused: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not self.refused

def _refuse(machine: Machine, *reasons: str) -> Transition:
    return Transition(machine=machine, refused=list(reasons))

def step(
    machine: Machine,
    event: SubmissionEvent,
    readiness: Readiness | None = None,
    has_image: bool = False,
    error: str | None = None,
) -> Transition:
    state = machine.state

    if event == SubmissionEvent.REQUEST_CONFIRM:
        if state not in (SubmissionState.IDLE, SubmissionState.FAILED):
            return _refuse(machine, f"invalid_from_{state.value}")
        if readiness is None or not readiness.ready:
            return _refuse(machine, *(readiness.reasons if readiness else ["not_evaluated"]))
        return Transition(Machine(SubmissionState.CONFIRMING))

    if event == SubmissionEvent.CANCEL:
        if state != SubmissionState.CONFIRMING:
            return _refuse(machine, f"invalid_from_{state.value}")
        return Transition(Machine(SubmissionState.IDLE))

    if event == SubmissionEvent.CONFIRM:
        if state != SubmissionState.CONFIRMING:
            return _refuse(machine, f"invalid_from_{state.value}")
        if readiness is None:
            reasons = ["not_evaluated"]
        else:
            reasons = list(readiness.reasons)
        if not has_image:
            reasons.append(MISSING_IMAGE)
        if reasons:
            # aborted, not refused: the confirmation dialog closes
            return Transition(
                Machine(SubmissionState.IDLE, error="Select a photo and make sure the analysis passed"),
                refused=reasons,
            )
        return Transition(Machine(SubmissionState.SUBMITTING), effects=[Effect.SEND_UPDATE])

    if event == SubmissionEvent.SUBMIT_OK:
        if state != SubmissionState.SUBMITTING:
            return _refuse(machine, f"invalid_from_{state.value}")
        return Transition(Machine(SubmissionState.SUCCEEDED), effects=[Effect.RECONCILE])

    if event == SubmissionEvent.SUBMIT_ERROR:
        if state != SubmissionState.SUBMITTING:
            return _refuse(machine, f"invalid_from_{state.value}")
        return Transition(Machine(SubmissionState.FAILED, error=error or "Submission failed"))

    if event == SubmissionEvent.DISMISS:
        if state != SubmissionState.FAILED:
            return _refuse(machine, f"invalid_from_{state.value}")
        return Transition(Machine(SubmissionState.IDLE))

    raise ValueError(f"Unknown event {event!r}")
