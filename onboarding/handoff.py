# onboarding/handoff.py
"""
Two-party equipment handoff.

The manager and the employee act from separate sessions, so a stale client may
retry either side. Repeating an already-satisfied side is a no-op, never an error.
Each function returns True when it changed the record.
"""
from datetime import datetime

from onboarding.errors import GateNotSatisfied
from onboarding.models import (
    HandoffRecord,
    ManagerSignature,
    OnboardingContent,
    OnboardingProgress,
    OnboardingStep,
)
from onboarding.state_machine import advance_from, can_access_step, first_incomplete_step

HANDOFF_NOT_REACHED = "HANDOFF_NOT_REACHED"
HANDOFF_NOT_MARKED = "HANDOFF_NOT_MARKED"
HANDOFF_NOT_CONFIRMED = "HANDOFF_NOT_CONFIRMED"
STEPS_INCOMPLETE = "STEPS_INCOMPLETE"


def mark_by_manager(
    progress: OnboardingProgress,
    content: OnboardingContent,
    manager_id: str,
    signature_image: str,
    signer_name: str,
    now: datetime,
) -> bool:
    handoff = progress.physical_handoff or HandoffRecord()
    if handoff.marked_by_manager:
        return False

    if not can_access_step(progress, content, OnboardingStep.HANDOFF):
        blocking = first_incomplete_step(progress, content)
        raise GateNotSatisfied(
            "The employee has not reached the equipment handoff yet",
            [HANDOFF_NOT_REACHED],
            details={"blocked_by": blocking.value},
        )

    handoff.marked_by_manager = True
    handoff.manager_signature = ManagerSignature(
        image=signature_image,
        signed_by=manager_id,
        signer_name=signer_name,
        signed_at=now,
    )
    progress.physical_handoff = handoff
    progress.manager_id = manager_id
    advance_from(progress, OnboardingStep.HANDOFF)
    return True


def confirm_by_employee(progress: OnboardingProgress, now: datetime) -> bool:
    handoff = progress.physical_handoff
    if handoff is None or not handoff.marked_by_manager:
        raise GateNotSatisfied(
            "The manager must mark the handoff before it can be confirmed",
            [HANDOFF_NOT_MARKED],
        )
    if handoff.confirmed_by_employee:
        return False

    handoff.confirmed_by_employee = True
    handoff.confirmed_at = now
    advance_from(progress, OnboardingStep.CONFIRMATION)
    return True


def complete(progress: OnboardingProgress, content: OnboardingContent, now: datetime) -> bool:
    """The terminal transition. Only the first call returns True."""
    if progress.is_complete:
        return False

    handoff = progress.physical_handoff
    if handoff is None or not handoff.confirmed_by_employee:
        raise GateNotSatisfied(
            "Onboarding cannot finish before the employee confirms the handoff",
            [HANDOFF_NOT_CONFIRMED],
        )
    if not can_access_step(progress, content, OnboardingStep.COMPLETE):
        # Content changed after the handoff, e.g. a new required document
        blocking = first_incomplete_step(progress, content)
        raise GateNotSatisfied(
            "Every onboarding step must be completed first",
            [STEPS_INCOMPLETE],
            details={"blocked_by": blocking.value},
        )

    progress.is_complete = True
    progress.completed_at = now
    progress.current_step = OnboardingStep.COMPLETE
    return True
