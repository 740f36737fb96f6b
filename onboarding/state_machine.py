# onboarding/state_machine.py
from datetime import datetime
from typing import Any, Dict, Optional

from onboarding.errors import InvalidTransition
from onboarding.gates import documents_gate, video_gate
from onboarding.models import (
    STEP_LABELS,
    STEP_ORDER,
    AuditEntry,
    OnboardingContent,
    OnboardingProgress,
    OnboardingStep,
    StepStatus,
    utcnow,
)


# ==========================================
# 1. PER-STEP COMPLETION PREDICATES
# ==========================================
def is_step_completed(progress: OnboardingProgress, content: OnboardingContent, step: OnboardingStep) -> bool:
    """The step's own predicate, ignoring whether earlier steps are done."""
    handoff = progress.physical_handoff

    if step == OnboardingStep.NDA:
        return progress.nda is not None
    if step == OnboardingStep.DOCUMENTS:
        return not documents_gate(progress, content)
    if step == OnboardingStep.VIDEO:
        return not video_gate(progress.video)
    if step == OnboardingStep.QUIZ:
        return progress.quiz_passed
    if step == OnboardingStep.NOTIFICATION:
        # A manager mark implies the notification was seen
        marked = handoff is not None and handoff.marked_by_manager
        return progress.quiz_passed and (progress.notification_acknowledged_at is not None or marked)
    if step == OnboardingStep.HANDOFF:
        return handoff is not None and handoff.marked_by_manager
    if step == OnboardingStep.CONFIRMATION:
        return handoff is not None and handoff.confirmed_by_employee
    if step == OnboardingStep.COMPLETE:
        return progress.is_complete
    raise ValueError(f"Unknown onboarding step: {step}")


# ==========================================
# 2. STATUS DERIVATION
# ==========================================
def derive_step_statuses(progress: OnboardingProgress, content: OnboardingContent) -> Dict[OnboardingStep, StepStatus]:
    """
    Walks the dependency chain once. Everything before the first incomplete step
    is completed, everything after it is locked. A later predicate that happens
    to hold (e.g. quiz passed, then a new document was configured) stays locked
    until the chain catches up.
    """
    statuses: Dict[OnboardingStep, StepStatus] = {}
    blocked = False

    for step in STEP_ORDER:
        if blocked:
            statuses[step] = StepStatus.LOCKED
        elif is_step_completed(progress, content, step):
            statuses[step] = StepStatus.COMPLETED
        else:
            blocked = True
            if progress.current_step == step:
                statuses[step] = StepStatus.IN_PROGRESS
            else:
                statuses[step] = StepStatus.AVAILABLE

    return statuses


def step_status(progress: OnboardingProgress, content: OnboardingContent, step: OnboardingStep) -> StepStatus:
    return derive_step_statuses(progress, content)[step]


def first_incomplete_step(progress: OnboardingProgress, content: OnboardingContent) -> Optional[OnboardingStep]:
    for step, status in derive_step_statuses(progress, content).items():
        if status != StepStatus.COMPLETED:
            return step
    return None


def can_access_step(progress: OnboardingProgress, content: OnboardingContent, step: OnboardingStep) -> bool:
    return step_status(progress, content, step) != StepStatus.LOCKED


def next_step(step: OnboardingStep) -> OnboardingStep:
    index = STEP_ORDER.index(step)
    return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]


# ==========================================
# 3. TRANSITIONS
# ==========================================
def advance_from(progress: OnboardingProgress, step: OnboardingStep) -> bool:
    """Move the pointer past a step that was just closed, only if the employee is on it."""
    if progress.current_step != step:
        return False
    progress.current_step = next_step(step)
    return True


def go_to_step(progress: OnboardingProgress, content: OnboardingContent, target: OnboardingStep) -> OnboardingProgress:
    """Explicit navigation. Locked targets are refused, never redirected."""
    status = step_status(progress, content, target)
    if status == StepStatus.LOCKED:
        blocking = first_incomplete_step(progress, content)
        raise InvalidTransition(
            f"Step '{STEP_LABELS[target]}' is locked until '{STEP_LABELS[blocking]}' is completed",
            details={"target": target.value, "blocked_by": blocking.value},
        )
    progress.current_step = target
    return progress


# ==========================================
# 4. THE APPEND-ONLY AUDIT LEDGER
# ==========================================
def record_audit(
    progress: OnboardingProgress,
    step: OnboardingStep,
    action: str,
    performed_by: str,
    details: Optional[Dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> AuditEntry:
    entry = AuditEntry(
        timestamp=timestamp or utcnow(),
        step=step,
        action=action,
        performed_by=performed_by,
        details=details or {},
    )
    progress.audit_log.append(entry)
    return entry
