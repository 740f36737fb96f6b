# onboarding/gates.py
from typing import List, Optional

from onboarding.models import (
    DocumentProgress,
    OnboardingContent,
    OnboardingProgress,
    TrainingDocument,
    VideoProgress,
)

# Gap codes. Stable strings the UI switches on.
NDA_ALREADY_SIGNED = "NDA_ALREADY_SIGNED"
SCROLL_AGREEMENT_TO_END = "SCROLL_AGREEMENT_TO_END"
DOCUMENT_NOT_STARTED = "DOCUMENT_NOT_STARTED"
SCROLL_DOCUMENT_TO_END = "SCROLL_DOCUMENT_TO_END"
MIN_READING_TIME_NOT_MET = "MIN_READING_TIME_NOT_MET"
DOCUMENT_NOT_CONFIRMED = "DOCUMENT_NOT_CONFIRMED"
VIDEO_NOT_STARTED = "VIDEO_NOT_STARTED"
VIDEO_NOT_WATCHED_TO_END = "VIDEO_NOT_WATCHED_TO_END"
QUIZ_ALREADY_PASSED = "QUIZ_ALREADY_PASSED"
NO_ATTEMPTS_REMAINING = "NO_ATTEMPTS_REMAINING"


def nda_gate(progress: OnboardingProgress, scrolled_to_end: bool) -> List[str]:
    """
    May a signature be accepted?
    The scroll flag comes from the caller; the engine cannot re-derive it.
    """
    gaps = []
    if not scrolled_to_end:
        gaps.append(SCROLL_AGREEMENT_TO_END)
    if progress.nda is not None:
        gaps.append(NDA_ALREADY_SIGNED)
    return gaps


def reading_seconds_remaining(entry: Optional[DocumentProgress], document: TrainingDocument) -> float:
    spent = entry.time_spent_seconds if entry else 0
    return max(0.0, document.minimum_reading_seconds - spent)


def document_gate(entry: Optional[DocumentProgress], document: TrainingDocument) -> List[str]:
    """May this document be confirmed? Evaluated against the configured minimum, never the caller's claim."""
    if entry is None or not entry.started:
        # Nothing else can be true for a document that was never opened
        return [DOCUMENT_NOT_STARTED]

    gaps = []
    if not entry.scrolled_to_end:
        gaps.append(SCROLL_DOCUMENT_TO_END)
    if entry.time_spent_seconds < document.minimum_reading_seconds:
        gaps.append(MIN_READING_TIME_NOT_MET)
    return gaps


def documents_gate(progress: OnboardingProgress, content: OnboardingContent) -> List[str]:
    """
    Is every currently configured document confirmed?
    Entries for documents that are no longer configured do not count, and a newly
    added document re-opens the gate for everyone who has not confirmed it.
    """
    gaps = []
    for document in content.documents:
        entry = progress.get_document(document.id)
        if entry is None or not entry.confirmed:
            gaps.append(f"{DOCUMENT_NOT_CONFIRMED}:{document.id}")
    return gaps


def video_gate(video: Optional[VideoProgress]) -> List[str]:
    if video is None:
        return [VIDEO_NOT_STARTED]
    if not video.completed:
        return [VIDEO_NOT_WATCHED_TO_END]
    return []


def quiz_gate(progress: OnboardingProgress, content: OnboardingContent) -> List[str]:
    """May another attempt be submitted? A pass is checked first: it wins over exhaustion."""
    if progress.quiz_passed:
        return [QUIZ_ALREADY_PASSED]
    if len(progress.quiz_attempts) >= content.quiz_max_attempts:
        return [NO_ATTEMPTS_REMAINING]
    return []


def attempts_remaining(progress: OnboardingProgress, content: OnboardingContent) -> int:
    return max(0, content.quiz_max_attempts - len(progress.quiz_attempts))
