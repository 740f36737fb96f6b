# onboarding/main.py
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding import config
from onboarding.collaborators import AuditSink, IdentityDirectory
from onboarding.content import FileContentProvider
from onboarding.engine import OnboardingEngine
from onboarding.errors import GateNotSatisfied, InvalidRequest, OnboardingError
from onboarding.models import (
    HandoffMarkRequest,
    InitializeRequest,
    NavigateRequest,
    NdaPdfRequest,
    NdaSignRequest,
    OnboardingProgress,
    ProgressView,
    PublicContent,
    QuizResult,
    QuizSubmitRequest,
    ReadingTimeRequest,
    VideoCacheRequest,
    VideoProgressRequest,
    VideoSeekRequest,
    VideoSeekResult,
)

config.configure_logging()

app = FastAPI(title=config.SERVICE_TITLE)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_engine() -> OnboardingEngine:
    return OnboardingEngine(
        content_provider=FileContentProvider(),
        identity=IdentityDirectory(config.MANAGER_IDS),
        audit_sink=AuditSink(),
    )


def get_actor(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Authentication happens upstream; the gateway forwards the caller's id."""
    return x_user_id


def get_expected_version(if_match: Optional[str] = Header(None, alias="If-Match")) -> Optional[int]:
    if if_match is None:
        return None
    try:
        return int(if_match.strip('"'))
    except ValueError:
        raise InvalidRequest("If-Match must carry the progress version number")


@app.exception_handler(OnboardingError)
async def handle_onboarding_error(_: Request, exc: OnboardingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _view(engine: OnboardingEngine, employee_id: str, actor: str) -> ProgressView:
    return engine.get_view(employee_id, actor)


# ==========================================
# CONTENT & MANAGER QUERIES
# ==========================================
@app.get("/onboarding/content", response_model=PublicContent)
def get_public_content(engine: OnboardingEngine = Depends(get_engine)):
    return engine.public_content()


@app.get("/onboarding", response_model=List[OnboardingProgress])
def list_onboarding(
    incomplete: bool = False,
    actor: str = Depends(get_actor),
    engine: OnboardingEngine = Depends(get_engine),
):
    return engine.list_progress(actor, incomplete_only=incomplete)


# ==========================================
# LIFECYCLE
# ==========================================
@app.post("/onboarding/{employee_id}", response_model=ProgressView, status_code=status.HTTP_201_CREATED)
def initialize_onboarding(
    employee_id: str,
    body: InitializeRequest,
    actor: str = Depends(get_actor),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.initialize_onboarding(employee_id, body.employee_name, actor)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/start", response_model=ProgressView)
def start_onboarding(
    employee_id: str,
    body: InitializeRequest,
    actor: str = Depends(get_actor),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.start_onboarding(employee_id, body.employee_name, actor)
    return _view(engine, employee_id, actor)


@app.get("/onboarding/{employee_id}", response_model=ProgressView)
def get_onboarding(employee_id: str, actor: str = Depends(get_actor), engine: OnboardingEngine = Depends(get_engine)):
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/navigate", response_model=ProgressView)
def navigate(
    employee_id: str,
    body: NavigateRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.go_to_step(employee_id, actor, body.step, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/reset", response_model=ProgressView)
def reset_onboarding(
    employee_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.reset_onboarding(employee_id, actor, expected_version=version)
    return _view(engine, employee_id, actor)


# ==========================================
# NDA
# ==========================================
@app.post("/onboarding/{employee_id}/nda", response_model=ProgressView)
def sign_nda(
    employee_id: str,
    body: NdaSignRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    try:
        engine.sign_nda(
            employee_id,
            actor,
            body.signature_image,
            body.signed_by_name,
            body.scrolled_to_end,
            expected_version=version,
        )
    except GateNotSatisfied as exc:
        # An unscrolled agreement is a malformed submission, not a forbidden one
        exc.status_code = status.HTTP_400_BAD_REQUEST
        raise
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/nda/pdf", response_model=ProgressView)
def attach_nda_pdf(
    employee_id: str,
    body: NdaPdfRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.attach_nda_pdf(employee_id, actor, body.pdf_reference, expected_version=version)
    return _view(engine, employee_id, actor)


# ==========================================
# DOCUMENTS
# ==========================================
@app.post("/onboarding/{employee_id}/documents/{document_id}/start", response_model=ProgressView)
def start_document(
    employee_id: str,
    document_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.start_document(employee_id, actor, document_id, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/documents/{document_id}/scroll", response_model=ProgressView)
def record_scroll(
    employee_id: str,
    document_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.record_scroll_complete(employee_id, actor, document_id, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/documents/{document_id}/time", response_model=ProgressView)
def record_reading_time(
    employee_id: str,
    document_id: str,
    body: ReadingTimeRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.record_reading_time(employee_id, actor, document_id, body.delta_seconds, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/documents/{document_id}/confirm", response_model=ProgressView)
def confirm_document(
    employee_id: str,
    document_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.confirm_document(employee_id, actor, document_id, expected_version=version)
    return _view(engine, employee_id, actor)


# ==========================================
# VIDEO
# ==========================================
@app.post("/onboarding/{employee_id}/video/progress", response_model=ProgressView)
def report_video_progress(
    employee_id: str,
    body: VideoProgressRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.report_video_progress(employee_id, actor, body.position, body.duration, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/video/seek", response_model=VideoSeekResult)
def request_seek(
    employee_id: str,
    body: VideoSeekRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    return engine.request_seek(employee_id, actor, body.target, expected_version=version)


@app.post("/onboarding/{employee_id}/video/ended", response_model=ProgressView)
def mark_video_ended(
    employee_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.mark_video_ended(employee_id, actor, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/video/reconcile", response_model=ProgressView)
def reconcile_video_cache(
    employee_id: str,
    body: VideoCacheRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.reconcile_video_cache(
        employee_id, actor, body.last_position, body.furthest_reached, expected_version=version
    )
    return _view(engine, employee_id, actor)


# ==========================================
# QUIZ & NOTIFICATION
# ==========================================
@app.post("/onboarding/{employee_id}/quiz", response_model=QuizResult)
def submit_quiz(
    employee_id: str,
    body: QuizSubmitRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    return engine.submit_quiz_attempt(employee_id, actor, body.answers, expected_version=version)


@app.post("/onboarding/{employee_id}/notification/ack", response_model=ProgressView)
def acknowledge_notification(
    employee_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.acknowledge_notification(employee_id, actor, expected_version=version)
    return _view(engine, employee_id, actor)


# ==========================================
# HANDOFF & COMPLETION
# ==========================================
@app.post("/onboarding/{employee_id}/handoff/mark", response_model=ProgressView)
def mark_handoff(
    employee_id: str,
    body: HandoffMarkRequest,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.manager_mark_handoff(
        employee_id, actor, body.signature_image, body.signer_name, expected_version=version
    )
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/handoff/confirm", response_model=ProgressView)
def confirm_handoff(
    employee_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.employee_confirm_handoff(employee_id, actor, expected_version=version)
    return _view(engine, employee_id, actor)


@app.post("/onboarding/{employee_id}/complete", response_model=ProgressView)
def complete_onboarding(
    employee_id: str,
    actor: str = Depends(get_actor),
    version: Optional[int] = Depends(get_expected_version),
    engine: OnboardingEngine = Depends(get_engine),
):
    engine.complete_onboarding(employee_id, actor, expected_version=version)
    return _view(engine, employee_id, actor)
