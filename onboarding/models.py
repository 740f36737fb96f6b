# onboarding/models.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==========================================
# 1. STEPS & STATUS
# ==========================================
class OnboardingStep(str, Enum):
    NDA = "nda"
    DOCUMENTS = "documents"
    VIDEO = "video"
    QUIZ = "quiz"
    NOTIFICATION = "notification"
    HANDOFF = "handoff"
    CONFIRMATION = "confirmation"
    COMPLETE = "complete"


# The dependency chain. Never reordered at runtime.
STEP_ORDER: List[OnboardingStep] = list(OnboardingStep)

STEP_LABELS: Dict[OnboardingStep, str] = {
    OnboardingStep.NDA: "Confidentiality Agreement",
    OnboardingStep.DOCUMENTS: "Documents",
    OnboardingStep.VIDEO: "Training Video",
    OnboardingStep.QUIZ: "Knowledge Quiz",
    OnboardingStep.NOTIFICATION: "Notification",
    OnboardingStep.HANDOFF: "Equipment Handoff",
    OnboardingStep.CONFIRMATION: "Confirmation",
    OnboardingStep.COMPLETE: "Complete",
}


class StepStatus(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


AnswerValue = Union[str, List[str]]


# ==========================================
# 2. CONTENT (read-only configuration)
# ==========================================
class TrainingDocument(BaseModel):
    id: str
    title: str
    content: str = ""
    minimum_reading_seconds: int = Field(default=0, ge=0)


class VideoChapter(BaseModel):
    timestamp: float = Field(ge=0)
    title: str


class VideoConfig(BaseModel):
    url: Optional[str] = None
    description: Optional[str] = None
    duration_seconds: Optional[float] = Field(default=None, gt=0)
    chapters: List[VideoChapter] = Field(default_factory=list)


class QuizOption(BaseModel):
    id: str
    text: str


class QuizQuestion(BaseModel):
    id: str
    type: Literal["multiple_choice", "true_false", "multi_select", "open_text"]
    text: str
    options: List[QuizOption] = Field(default_factory=list)
    correct_answer: Optional[AnswerValue] = None


class PublicQuizQuestion(BaseModel):
    id: str
    type: str
    text: str
    options: List[QuizOption] = Field(default_factory=list)


class OnboardingContent(BaseModel):
    nda_text: str = ""
    documents: List[TrainingDocument] = Field(default_factory=list)
    video: VideoConfig = Field(default_factory=VideoConfig)
    questions: List[QuizQuestion] = Field(default_factory=list)
    quiz_pass_threshold: int = Field(default=80, ge=0, le=100)
    quiz_max_attempts: int = Field(default=3, ge=1)

    def get_document(self, document_id: str) -> Optional[TrainingDocument]:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None


class PublicContent(BaseModel):
    """What the wizard may see: everything except the answer key."""
    nda_text: str
    documents: List[TrainingDocument]
    video: VideoConfig
    questions: List[PublicQuizQuestion]
    quiz_pass_threshold: int
    quiz_max_attempts: int


# ==========================================
# 3. GATE STATE SUB-MODELS
# ==========================================
class AuditEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    step: OnboardingStep
    action: str
    performed_by: str
    details: Dict[str, Any] = Field(default_factory=dict)


class NdaRecord(BaseModel):
    signature_image: str
    signed_by: str
    signed_by_name: str
    signed_at: datetime
    pdf_reference: Optional[str] = None


class DocumentProgress(BaseModel):
    document_id: str
    started: bool = False
    started_at: Optional[datetime] = None
    scrolled_to_end: bool = False
    confirmed: bool = False
    confirmed_at: Optional[datetime] = None
    time_spent_seconds: float = 0


class VideoProgress(BaseModel):
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_position: float = 0
    furthest_reached: float = 0
    total_duration: float = 0
    completed: bool = False


class QuizAttempt(BaseModel):
    attempt_number: int
    score: int
    passed: bool
    submitted_at: datetime
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)


class ManagerSignature(BaseModel):
    image: str
    signed_by: str
    signer_name: str
    signed_at: datetime


class HandoffRecord(BaseModel):
    marked_by_manager: bool = False
    manager_signature: Optional[ManagerSignature] = None
    confirmed_by_employee: bool = False
    confirmed_at: Optional[datetime] = None


# ==========================================
# 4. THE PROGRESS AGGREGATE
# ==========================================
class OnboardingProgress(BaseModel):
    employee_id: str
    employee_name: str
    # The manager who signed the equipment handoff
    manager_id: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    current_step: OnboardingStep = OnboardingStep.NDA

    nda: Optional[NdaRecord] = None
    documents: List[DocumentProgress] = Field(default_factory=list)
    video: Optional[VideoProgress] = None
    quiz_attempts: List[QuizAttempt] = Field(default_factory=list)
    quiz_best_score: Optional[int] = None
    notification_acknowledged_at: Optional[datetime] = None
    physical_handoff: Optional[HandoffRecord] = None

    is_complete: bool = False
    completed_at: Optional[datetime] = None

    audit_log: List[AuditEntry] = Field(default_factory=list)

    # Optimistic concurrency token, bumped on every successful write
    version: int = 0

    def get_document(self, document_id: str) -> Optional[DocumentProgress]:
        for entry in self.documents:
            if entry.document_id == document_id:
                return entry
        return None

    @property
    def quiz_passed(self) -> bool:
        return any(attempt.passed for attempt in self.quiz_attempts)


# ==========================================
# 5. READ MODELS & REQUEST PAYLOADS
# ==========================================
class QuizResult(BaseModel):
    score: int
    passed: bool
    attempt_number: int
    attempts_remaining: int


class ProgressView(BaseModel):
    progress: OnboardingProgress
    step_statuses: Dict[OnboardingStep, StepStatus]
    attempts_remaining: int


class InitializeRequest(BaseModel):
    employee_name: str = Field(min_length=1)


class NavigateRequest(BaseModel):
    step: OnboardingStep


class NdaSignRequest(BaseModel):
    signature_image: str
    signed_by_name: str
    scrolled_to_end: bool = False


class NdaPdfRequest(BaseModel):
    pdf_reference: str = Field(min_length=1)


class ReadingTimeRequest(BaseModel):
    delta_seconds: float


class VideoProgressRequest(BaseModel):
    position: float
    duration: float


class VideoSeekRequest(BaseModel):
    target: float


class VideoSeekResult(BaseModel):
    position: float
    furthest_reached: float


class VideoCacheRequest(BaseModel):
    last_position: float = 0
    furthest_reached: float = 0


class QuizSubmitRequest(BaseModel):
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)


class HandoffMarkRequest(BaseModel):
    signature_image: str
    signer_name: Optional[str] = None
