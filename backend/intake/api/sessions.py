from typing import Callable

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile

from intake.core.errors import (
    AlreadySubmitted,
    AnalysisFailed,
    FetchFailed,
    IntakeError,
    InvalidBirthYear,
    RateLimited,
    SessionNotFound,
    SubmissionBlocked,
    SubmissionFailed,
)
from intake.schemas.session import BirthYearIn, SessionCreate, SessionOut, WorkflowView
from intake.schemas.student import SelectedImage
from intake.services.backend_client import HttpStudentBackend, StudentBackend
from intake.services.session_store import SessionStore, store
from intake.workflow.session import SubmissionWorkflow

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

def get_store() -> SessionStore:
    return store

def get_backend_factory() -> Callable[[str], StudentBackend]:
    return HttpStudentBackend

def bearer_token(authorization: str | None = Header(None)) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(401, "Missing bearer token")
    return token.strip()

def http_error(e: IntakeError) -> HTTPException:
    if isinstance(e, RateLimited):
        return HTTPException(
            429,
            {"error": "rate_limited", "message": str(e), "remaining_seconds": e.remaining_seconds},
            headers={"Retry-After": str(e.remaining_seconds)},
        )
    if isinstance(e, SessionNotFound):
        return HTTPException(404, {"error": "session_not_found", "message": str(e)})
    if isinstance(e, AlreadySubmitted):
        return HTTPException(409, {"error": "already_submitted", "message": str(e)})
    if isinstance(e, SubmissionBlocked):
        return HTTPException(409, {"error": "submission_blocked", "message": str(e), "reasons": e.reasons})
    if isinstance(e, InvalidBirthYear):
        return HTTPException(422, {"error": "invalid_birth_year", "message": str(e)})
    if isinstance(e, AnalysisFailed):
        return HTTPException(502, {"error": "analysis_failed", "message": str(e)})
    if isinstance(e, SubmissionFailed):
        return HTTPException(502, {"error": "submission_failed", "message": str(e)})
    if isinstance(e, FetchFailed):
        return HTTPException(502, {"error": "fetch_failed", "message": str(e)})
    return HTTPException(500, {"error": "intake_error", "message": str(e)})

def _workflow(session_id: str, sessions: SessionStore) -> SubmissionWorkflow:
    try:
        return sessions.get(session_id)
    except SessionNotFound as e:
        raise http_error(e)

@router.post("", response_model=SessionOut)
async def open_session(
    payload: SessionCreate,
    token: str = Depends(bearer_token),
    sessions: SessionStore = Depends(get_store),
    backend_factory: Callable[[str], StudentBackend] = Depends(get_backend_factory),
):
    exam_code = payload.exam_code.strip()
    if not exam_code:
        raise HTTPException(400, "exam_code is required")

    workflow = SubmissionWorkflow(backend_factory(token), exam_code)
    try:
        await workflow.load()
    except FetchFailed as e:
        workflow.close()
        raise http_error(e)

    session_id = sessions.add(workflow)
    return SessionOut(session_id=session_id, view=workflow.view())

@router.get("/{session_id}", response_model=WorkflowView)
async def get_session(session_id: str, sessions: SessionStore = Depends(get_store)):
    return _workflow(session_id, sessions).view()

@router.put("/{session_id}/birth-year", response_model=WorkflowView)
async def set_birth_year(session_id: str, payload: BirthYearIn, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        workflow.set_birth_year(payload.birth_year)
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.post("/{session_id}/image", response_model=WorkflowView)
async def select_image(
    session_id: str,
    file: UploadFile = File(...),
    sessions: SessionStore = Depends(get_store),
):
    workflow = _workflow(session_id, sessions)
    raw = await file.read()
    image = SelectedImage(
        filename=file.filename or "image",
        content_type=file.content_type or "application/octet-stream",
        content=raw,
    )
    try:
        await workflow.analyze_selection(image)
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.delete("/{session_id}/image", response_model=WorkflowView)
async def remove_image(session_id: str, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        workflow.remove_image()
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.post("/{session_id}/submit", response_model=WorkflowView)
async def request_submit(session_id: str, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        workflow.request_submit()
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.post("/{session_id}/cancel", response_model=WorkflowView)
async def cancel_submit(session_id: str, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        workflow.cancel()
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.post("/{session_id}/confirm", response_model=WorkflowView)
async def confirm_submit(session_id: str, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        await workflow.confirm()
    except IntakeError as e:
        raise http_error(e)
    return workflow.view(consume_notice=True)

@router.post("/{session_id}/dismiss", response_model=WorkflowView)
async def dismiss_error(session_id: str, sessions: SessionStore = Depends(get_store)):
    workflow = _workflow(session_id, sessions)
    try:
        workflow.dismiss()
    except IntakeError as e:
        raise http_error(e)
    return workflow.view()

@router.delete("/{session_id}")
async def close_session(session_id: str, sessions: SessionStore = Depends(get_store)):
    try:
        sessions.remove(session_id)
    except SessionNotFound as e:
        raise http_error(e)
    return {"ok": True}
