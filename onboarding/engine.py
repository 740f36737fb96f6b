# onboarding/engine.py
"""
The Engine Facade.

Every public operation that changes onboarding progress goes through
`OnboardingEngine._mutate`. It does a read-modify-write under a per-employee
lock and finishes with a version-checked save, so the manager's and the
employee's sessions cannot race each other into an inconsistent record.
"""
import logging
import math
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from onboarding import handoff
from onboarding.collaborators import AuditSink, IdentityDirectory
from onboarding.content import ContentProvider, to_public
from onboarding.errors import (
    AlreadySatisfied,
    AttemptsExhausted,
    ConcurrencyConflict,
    GateNotSatisfied,
    InvalidRequest,
    NotAuthorized,
    RecordNotFound,
)
from onboarding.gates import (
    NDA_ALREADY_SIGNED,
    QUIZ_ALREADY_PASSED,
    attempts_remaining,
    document_gate,
    documents_gate,
    nda_gate,
    quiz_gate,
    reading_seconds_remaining,
)
from onboarding.models import (
    STEP_LABELS,
    STEP_ORDER,
    AnswerValue,
    DocumentProgress,
    NdaRecord,
    OnboardingContent,
    OnboardingProgress,
    OnboardingStep,
    ProgressView,
    PublicContent,
    QuizAttempt,
    QuizResult,
    StepStatus,
    VideoProgress,
    VideoSeekResult,
    utcnow,
)
from onboarding.scoring import grade
from onboarding.state_machine import (
    advance_from,
    derive_step_statuses,
    first_incomplete_step,
    go_to_step,
    record_audit,
    step_status,
)
from onboarding.store import InMemoryProgressStore

logger = logging.getLogger(__name__)

PREVIOUS_STEP_INCOMPLETE = "PREVIOUS_STEP_INCOMPLETE"

# mutation(progress, content, now) -> (changed, result)
Mutation = Callable[[OnboardingProgress, OnboardingContent, datetime], Tuple[bool, Any]]


class OnboardingEngine:
    def __init__(
        self,
        content_provider: ContentProvider,
        store: Optional[InMemoryProgressStore] = None,
        identity: Optional[IdentityDirectory] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.content_provider = content_provider
        self.store = store or InMemoryProgressStore()
        self.identity = identity or IdentityDirectory()
        self.audit_sink = audit_sink or AuditSink()
        self.clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ==========================================
    # 1. PLUMBING
    # ==========================================
    def _lock_for(self, employee_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(employee_id)
            if lock is None:
                lock = self._locks[employee_id] = threading.Lock()
            return lock

    def _load(self, employee_id: str) -> OnboardingProgress:
        progress = self.store.get(employee_id)
        if progress is None:
            raise RecordNotFound(f"No onboarding progress for employee {employee_id}")
        return progress

    def _mutate(
        self,
        employee_id: str,
        actor_id: str,
        action: str,
        mutation: Mutation,
        expected_version: Optional[int] = None,
    ) -> Tuple[OnboardingProgress, Any]:
        with self._lock_for(employee_id):
            progress = self._load(employee_id)
            if expected_version is not None and expected_version != progress.version:
                raise ConcurrencyConflict(
                    "Onboarding progress changed since it was read",
                    details={"expected_version": expected_version, "current_version": progress.version},
                )

            base_version = progress.version
            content = self.content_provider.get_content()
            changed, result = mutation(progress, content, self.clock())

            if not changed:
                logger.debug("%s for %s was a no-op", action, employee_id)
                return progress, result

            progress = self.store.save(progress, base_version)

        self.audit_sink.record(action, actor_id, employee_id, {"version": progress.version})
        return progress, result

    # ==========================================
    # 2. AUTHORIZATION (delegated to the identity directory)
    # ==========================================
    def _require_manager(self, actor_id: str) -> None:
        if not self.identity.is_manager(actor_id):
            raise NotAuthorized("This operation is restricted to managers")

    def _require_self_or_manager(self, actor_id: str, employee_id: str) -> None:
        if actor_id != employee_id and not self.identity.is_manager(actor_id):
            raise NotAuthorized("Access to another employee's onboarding is restricted to managers")

    def _require_self(self, actor_id: str, employee_id: str) -> None:
        if actor_id != employee_id:
            raise NotAuthorized("Only the employee can perform this confirmation")

    @staticmethod
    def _require_step_open(progress: OnboardingProgress, content: OnboardingContent, step: OnboardingStep) -> None:
        if step_status(progress, content, step) == StepStatus.LOCKED:
            blocking = first_incomplete_step(progress, content)
            raise GateNotSatisfied(
                f"Complete '{STEP_LABELS[blocking]}' before '{STEP_LABELS[step]}'",
                [PREVIOUS_STEP_INCOMPLETE],
                details={"step": step.value, "blocked_by": blocking.value},
            )

    # ==========================================
    # 3. LIFECYCLE
    # ==========================================
    def _new_progress(self, employee_id: str, employee_name: str, actor_id: str) -> OnboardingProgress:
        now = self.clock()
        progress = OnboardingProgress(employee_id=employee_id, employee_name=employee_name, started_at=now)
        record_audit(progress, OnboardingStep.NDA, "Onboarding initialized", actor_id, timestamp=now)
        return progress

    def initialize_onboarding(self, employee_id: str, employee_name: str, actor_id: str) -> OnboardingProgress:
        """A manager registers a new hire. Refused if the record already exists."""
        self._require_manager(actor_id)
        if not employee_name.strip():
            raise InvalidRequest("employee_name is required")

        progress = self.store.create(self._new_progress(employee_id, employee_name, actor_id))
        self.identity.mark_new_employee(employee_id)
        self.audit_sink.record("initialize_onboarding", actor_id, employee_id)
        logger.info("Onboarding initialized for %s by %s", employee_id, actor_id)
        return progress

    def start_onboarding(self, employee_id: str, employee_name: str, actor_id: str) -> OnboardingProgress:
        """First access by the employee: returns the existing record or creates one."""
        self._require_self_or_manager(actor_id, employee_id)
        with self._lock_for(employee_id):
            existing = self.store.get(employee_id)
            if existing is not None:
                return existing
            if not employee_name.strip():
                raise InvalidRequest("employee_name is required")
            progress = self.store.create(self._new_progress(employee_id, employee_name, actor_id))

        self.identity.mark_new_employee(employee_id)
        self.audit_sink.record("start_onboarding", actor_id, employee_id)
        logger.info("Onboarding started for %s", employee_id)
        return progress

    def reset_onboarding(
        self, employee_id: str, actor_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        """
        Destructive manager action: the record is re-created from scratch.
        Quiz attempts and audit history are discarded; only the version keeps counting.
        """
        self._require_manager(actor_id)

        with self._lock_for(employee_id):
            existing = self._load(employee_id)
            if expected_version is not None and expected_version != existing.version:
                raise ConcurrencyConflict(
                    "Onboarding progress changed since it was read",
                    details={"expected_version": expected_version, "current_version": existing.version},
                )
            now = self.clock()
            fresh = OnboardingProgress(
                employee_id=employee_id,
                employee_name=existing.employee_name,
                started_at=now,
                version=existing.version,
            )
            record_audit(
                fresh,
                OnboardingStep.NDA,
                "Onboarding reset by manager",
                actor_id,
                details={"previous_step": existing.current_step.value, "was_complete": existing.is_complete},
                timestamp=now,
            )
            progress = self.store.save(fresh, existing.version)

        self.identity.mark_new_employee(employee_id)
        self.audit_sink.record("reset_onboarding", actor_id, employee_id, {"version": progress.version})
        logger.warning("Onboarding for %s was reset by %s", employee_id, actor_id)
        return progress

    # ==========================================
    # 4. READ MODEL
    # ==========================================
    def get_progress(self, employee_id: str, actor_id: str) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)
        return self._load(employee_id)

    def get_view(self, employee_id: str, actor_id: str) -> ProgressView:
        progress = self.get_progress(employee_id, actor_id)
        content = self.content_provider.get_content()
        return ProgressView(
            progress=progress,
            step_statuses=derive_step_statuses(progress, content),
            attempts_remaining=attempts_remaining(progress, content),
        )

    def step_statuses(self, employee_id: str, actor_id: str) -> Dict[OnboardingStep, StepStatus]:
        return self.get_view(employee_id, actor_id).step_statuses

    def attempts_remaining(self, employee_id: str, actor_id: str) -> int:
        return self.get_view(employee_id, actor_id).attempts_remaining

    def list_progress(self, actor_id: str, incomplete_only: bool = False) -> List[OnboardingProgress]:
        """Read-only scan across employees; tolerates concurrent per-employee writes."""
        self._require_manager(actor_id)
        records = self.store.list()
        if incomplete_only:
            records = [record for record in records if not record.is_complete]
        return sorted(records, key=lambda record: record.started_at, reverse=True)

    def public_content(self) -> PublicContent:
        return to_public(self.content_provider.get_content())

    # ==========================================
    # 5. NAVIGATION
    # ==========================================
    def go_to_step(
        self, employee_id: str, actor_id: str, target: OnboardingStep, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            # Staying on a step that has since been locked is refused too
            previous = progress.current_step
            go_to_step(progress, content, target)
            return progress.current_step != previous, None

        progress, _ = self._mutate(employee_id, actor_id, "go_to_step", mutation, expected_version)
        return progress

    # ==========================================
    # 6. NDA
    # ==========================================
    def sign_nda(
        self,
        employee_id: str,
        actor_id: str,
        signature_image: str,
        signed_by_name: str,
        scrolled_to_end: bool,
        expected_version: Optional[int] = None,
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)
        if not signature_image or not signed_by_name.strip():
            raise InvalidRequest("signature_image and signed_by_name are required")

        def mutation(progress, content, now):
            gaps = nda_gate(progress, scrolled_to_end)
            if NDA_ALREADY_SIGNED in gaps:
                raise AlreadySatisfied("The confidentiality agreement is already signed")
            if gaps:
                raise GateNotSatisfied("Scroll to the end of the agreement before signing", gaps)

            progress.nda = NdaRecord(
                signature_image=signature_image,
                signed_by=actor_id,
                signed_by_name=signed_by_name,
                signed_at=now,
            )
            record_audit(progress, OnboardingStep.NDA, "NDA signed", actor_id, timestamp=now)
            advance_from(progress, OnboardingStep.NDA)
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "sign_nda", mutation, expected_version)
        return progress

    def attach_nda_pdf(
        self, employee_id: str, actor_id: str, pdf_reference: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        """Stores an opaque reference to the rendered agreement. Set once."""
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            if progress.nda is None:
                raise GateNotSatisfied("The agreement must be signed first", ["NDA_NOT_SIGNED"])
            if progress.nda.pdf_reference == pdf_reference:
                return False, None
            if progress.nda.pdf_reference is not None:
                raise AlreadySatisfied("A PDF is already attached to the signed agreement")
            progress.nda.pdf_reference = pdf_reference
            record_audit(progress, OnboardingStep.NDA, "NDA PDF attached", actor_id, timestamp=now)
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "attach_nda_pdf", mutation, expected_version)
        return progress

    # ==========================================
    # 7. DOCUMENTS
    # ==========================================
    @staticmethod
    def _document_entry(progress: OnboardingProgress, content: OnboardingContent, document_id: str, now: datetime):
        document = content.get_document(document_id)
        if document is None:
            raise RecordNotFound(f"Document {document_id} is not part of the onboarding content")

        entry = progress.get_document(document_id)
        created = False
        if entry is None:
            entry = DocumentProgress(document_id=document_id, started=True, started_at=now)
            progress.documents.append(entry)
            created = True
        elif not entry.started:
            entry.started = True
            entry.started_at = now
            created = True
        return document, entry, created

    def start_document(
        self, employee_id: str, actor_id: str, document_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.DOCUMENTS)
            _, _, created = self._document_entry(progress, content, document_id, now)
            return created, None

        progress, _ = self._mutate(employee_id, actor_id, "start_document", mutation, expected_version)
        return progress

    def record_scroll_complete(
        self, employee_id: str, actor_id: str, document_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        """The UI's scrolled-to-bottom signal. Advisory: trusted as reported."""
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.DOCUMENTS)
            _, entry, created = self._document_entry(progress, content, document_id, now)
            if entry.scrolled_to_end:
                return created, None
            entry.scrolled_to_end = True
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "record_scroll_complete", mutation, expected_version)
        return progress

    def record_reading_time(
        self,
        employee_id: str,
        actor_id: str,
        document_id: str,
        delta_seconds: float,
        expected_version: Optional[int] = None,
    ) -> OnboardingProgress:
        """Additive only. Time can never go down or be reset."""
        self._require_self_or_manager(actor_id, employee_id)
        if not math.isfinite(delta_seconds) or delta_seconds < 0:
            raise InvalidRequest("delta_seconds must be a non-negative number")

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.DOCUMENTS)
            _, entry, created = self._document_entry(progress, content, document_id, now)
            if delta_seconds == 0:
                return created, None
            entry.time_spent_seconds += delta_seconds
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "record_reading_time", mutation, expected_version)
        return progress

    def confirm_document(
        self, employee_id: str, actor_id: str, document_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            document = content.get_document(document_id)
            if document is None:
                raise RecordNotFound(f"Document {document_id} is not part of the onboarding content")
            entry = progress.get_document(document_id)
            if entry is not None and entry.confirmed:
                return False, None

            self._require_step_open(progress, content, OnboardingStep.DOCUMENTS)
            gaps = document_gate(entry, document)
            if gaps:
                raise GateNotSatisfied(
                    f"Document '{document.title}' cannot be confirmed yet",
                    gaps,
                    details={
                        "document_id": document_id,
                        "seconds_remaining": reading_seconds_remaining(entry, document),
                    },
                )

            entry.confirmed = True
            entry.confirmed_at = now
            record_audit(
                progress,
                OnboardingStep.DOCUMENTS,
                f"Document confirmed: {document_id}",
                actor_id,
                details={"document_id": document_id, "time_spent_seconds": entry.time_spent_seconds},
                timestamp=now,
            )
            if not documents_gate(progress, content):
                advance_from(progress, OnboardingStep.DOCUMENTS)
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "confirm_document", mutation, expected_version)
        return progress

    # ==========================================
    # 8. VIDEO (anti-skip)
    # ==========================================
    @staticmethod
    def _check_position(name: str, value: float) -> None:
        if not math.isfinite(value) or value < 0:
            raise InvalidRequest(f"{name} must be a non-negative number")

    @staticmethod
    def _resolve_duration(content: OnboardingContent, video: Optional[VideoProgress], reported: float = 0) -> float:
        """A configured duration is authoritative; otherwise the longest duration ever reported."""
        if content.video.duration_seconds:
            return content.video.duration_seconds
        known = video.total_duration if video else 0
        return max(known, reported)

    def report_video_progress(
        self,
        employee_id: str,
        actor_id: str,
        position: float,
        duration: float,
        expected_version: Optional[int] = None,
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)
        self._check_position("position", position)
        self._check_position("duration", duration)

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.VIDEO)
            video = progress.video or VideoProgress(started_at=now)
            total = self._resolve_duration(content, video, duration)
            if total <= 0:
                raise InvalidRequest("Video duration is unknown")

            clamped = min(position, total)
            video.total_duration = total
            video.last_position = clamped
            # Stale or forged positions may be lower; the max never goes back.
            # A shorter configured video caps what was already reached.
            video.furthest_reached = min(max(video.furthest_reached, clamped), total)
            progress.video = video
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "report_video_progress", mutation, expected_version)
        return progress

    def request_seek(
        self, employee_id: str, actor_id: str, target: float, expected_version: Optional[int] = None
    ) -> VideoSeekResult:
        """The caller never lands beyond what was already watched."""
        self._require_self_or_manager(actor_id, employee_id)
        self._check_position("target", target)

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.VIDEO)
            video = progress.video
            if video is None:
                return False, VideoSeekResult(position=0, furthest_reached=0)

            furthest = min(video.furthest_reached, self._resolve_duration(content, video))
            effective = min(target, furthest)
            result = VideoSeekResult(position=effective, furthest_reached=furthest)
            if video.last_position == effective:
                return False, result
            video.last_position = effective
            return True, result

        _, result = self._mutate(employee_id, actor_id, "request_seek", mutation, expected_version)
        return result

    def mark_video_ended(
        self, employee_id: str, actor_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        """Playback reached its natural end."""
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            if progress.video is not None and progress.video.completed:
                return False, None
            self._require_step_open(progress, content, OnboardingStep.VIDEO)

            video = progress.video or VideoProgress(started_at=now)
            total = self._resolve_duration(content, video)
            if total <= 0:
                raise InvalidRequest("Video duration is unknown")

            video.total_duration = total
            video.furthest_reached = total
            video.last_position = total
            video.completed = True
            video.completed_at = now
            progress.video = video
            record_audit(progress, OnboardingStep.VIDEO, "Training video completed", actor_id, timestamp=now)
            advance_from(progress, OnboardingStep.VIDEO)
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "mark_video_ended", mutation, expected_version)
        return progress

    def reconcile_video_cache(
        self,
        employee_id: str,
        actor_id: str,
        cached_last_position: float,
        cached_furthest: float,
        expected_version: Optional[int] = None,
    ) -> OnboardingProgress:
        """
        Merges a client-side resume cache into the authoritative record.
        The cache is a hint only: it goes through the same max/clamp rules as a progress report.
        """
        self._require_self_or_manager(actor_id, employee_id)
        self._check_position("last_position", cached_last_position)
        self._check_position("furthest_reached", cached_furthest)

        def mutation(progress, content, now):
            self._require_step_open(progress, content, OnboardingStep.VIDEO)
            video = progress.video or VideoProgress(started_at=now)
            total = self._resolve_duration(content, video)
            if total <= 0:
                # Nothing to clamp against until playback reports a duration
                return False, None

            furthest = min(max(video.furthest_reached, cached_furthest), total)
            last = min(max(video.last_position, cached_last_position), furthest)
            unchanged = (total, furthest, last) == (video.total_duration, video.furthest_reached, video.last_position)
            if progress.video is not None and unchanged:
                return False, None

            video.total_duration = total
            video.furthest_reached = furthest
            video.last_position = last
            progress.video = video
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "reconcile_video_cache", mutation, expected_version)
        return progress

    # ==========================================
    # 9. QUIZ
    # ==========================================
    def submit_quiz_attempt(
        self,
        employee_id: str,
        actor_id: str,
        answers: Dict[str, AnswerValue],
        expected_version: Optional[int] = None,
    ) -> QuizResult:
        """
        Scores server-side; the caller never supplies the score. An attempt is
        appended win or lose. After the last failed attempt the engine does not
        route anywhere: the caller reads `attempts_remaining` and sends the
        employee back to review.
        """
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            gaps = quiz_gate(progress, content)
            if QUIZ_ALREADY_PASSED in gaps:
                raise AlreadySatisfied("The quiz has already been passed")
            if gaps:
                raise AttemptsExhausted(
                    "No quiz attempts remaining; review the training material with your manager",
                    details={"max_attempts": content.quiz_max_attempts},
                )
            self._require_step_open(progress, content, OnboardingStep.QUIZ)

            score, passed = grade(content.questions, answers, content.quiz_pass_threshold)
            attempt = QuizAttempt(
                attempt_number=len(progress.quiz_attempts) + 1,
                score=score,
                passed=passed,
                submitted_at=now,
                answers=dict(answers),
            )
            progress.quiz_attempts.append(attempt)
            if progress.quiz_best_score is None or score > progress.quiz_best_score:
                progress.quiz_best_score = score

            outcome = "passed" if passed else "failed"
            record_audit(
                progress,
                OnboardingStep.QUIZ,
                f"Quiz {outcome} ({score}% - attempt {attempt.attempt_number})",
                actor_id,
                details={"score": score, "passed": passed, "attempt_number": attempt.attempt_number},
                timestamp=now,
            )
            if passed:
                advance_from(progress, OnboardingStep.QUIZ)

            return True, QuizResult(
                score=score,
                passed=passed,
                attempt_number=attempt.attempt_number,
                attempts_remaining=attempts_remaining(progress, content),
            )

        _, result = self._mutate(employee_id, actor_id, "submit_quiz_attempt", mutation, expected_version)
        logger.info(
            "Quiz attempt %d for %s: %d%% (%s)",
            result.attempt_number,
            employee_id,
            result.score,
            "passed" if result.passed else "failed",
        )
        return result

    # ==========================================
    # 10. NOTIFICATION, HANDOFF, COMPLETION
    # ==========================================
    def acknowledge_notification(
        self, employee_id: str, actor_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            if progress.notification_acknowledged_at is not None:
                return False, None
            self._require_step_open(progress, content, OnboardingStep.NOTIFICATION)

            progress.notification_acknowledged_at = now
            record_audit(progress, OnboardingStep.NOTIFICATION, "Notification acknowledged", actor_id, timestamp=now)
            if STEP_ORDER.index(progress.current_step) <= STEP_ORDER.index(OnboardingStep.NOTIFICATION):
                progress.current_step = OnboardingStep.HANDOFF
            return True, None

        progress, _ = self._mutate(employee_id, actor_id, "acknowledge_notification", mutation, expected_version)
        return progress

    def manager_mark_handoff(
        self,
        employee_id: str,
        actor_id: str,
        signature_image: str,
        signer_name: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OnboardingProgress:
        self._require_manager(actor_id)
        if not signature_image:
            raise InvalidRequest("The manager's signature is required")

        def mutation(progress, content, now):
            changed = handoff.mark_by_manager(
                progress, content, actor_id, signature_image, signer_name or actor_id, now
            )
            if changed:
                record_audit(
                    progress, OnboardingStep.HANDOFF, "Equipment handoff marked by manager", actor_id, timestamp=now
                )
            return changed, None

        progress, _ = self._mutate(employee_id, actor_id, "manager_mark_handoff", mutation, expected_version)
        return progress

    def employee_confirm_handoff(
        self, employee_id: str, actor_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        self._require_self(actor_id, employee_id)

        def mutation(progress, content, now):
            changed = handoff.confirm_by_employee(progress, now)
            if changed:
                record_audit(
                    progress,
                    OnboardingStep.CONFIRMATION,
                    "Equipment receipt confirmed by employee",
                    actor_id,
                    timestamp=now,
                )
            return changed, None

        progress, _ = self._mutate(employee_id, actor_id, "employee_confirm_handoff", mutation, expected_version)
        return progress

    def complete_onboarding(
        self, employee_id: str, actor_id: str, expected_version: Optional[int] = None
    ) -> OnboardingProgress:
        """The single trigger for "onboarding finished" side effects."""
        self._require_self_or_manager(actor_id, employee_id)

        def mutation(progress, content, now):
            changed = handoff.complete(progress, content, now)
            if changed:
                record_audit(
                    progress, OnboardingStep.COMPLETE, "Onboarding completed", actor_id, timestamp=now
                )
            return changed, changed

        progress, finished_now = self._mutate(
            employee_id, actor_id, "complete_onboarding", mutation, expected_version
        )
        if finished_now:
            self.identity.mark_onboarding_complete(employee_id)
            logger.info("Onboarding completed for %s", employee_id)
        return progress
