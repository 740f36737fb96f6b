from conftest import build_content

from onboarding.gates import (
    DOCUMENT_NOT_STARTED,
    MIN_READING_TIME_NOT_MET,
    NDA_ALREADY_SIGNED,
    NO_ATTEMPTS_REMAINING,
    QUIZ_ALREADY_PASSED,
    SCROLL_AGREEMENT_TO_END,
    SCROLL_DOCUMENT_TO_END,
    VIDEO_NOT_STARTED,
    VIDEO_NOT_WATCHED_TO_END,
    attempts_remaining,
    document_gate,
    documents_gate,
    nda_gate,
    quiz_gate,
    reading_seconds_remaining,
    video_gate,
)
from onboarding.models import (
    DocumentProgress,
    NdaRecord,
    OnboardingProgress,
    QuizAttempt,
    TrainingDocument,
    VideoProgress,
    utcnow,
)


def _progress(**values):
    return OnboardingProgress(employee_id="emp-1", employee_name="Dana", **values)


def _attempt(number, passed):
    return QuizAttempt(attempt_number=number, score=90 if passed else 40, passed=passed, submitted_at=utcnow())


def test_nda_gate_requires_scroll_and_no_prior_signature():
    assert nda_gate(_progress(), scrolled_to_end=True) == []
    assert nda_gate(_progress(), scrolled_to_end=False) == [SCROLL_AGREEMENT_TO_END]

    signed = _progress(nda=NdaRecord(signature_image="x", signed_by="emp-1", signed_by_name="Dana", signed_at=utcnow()))
    assert NDA_ALREADY_SIGNED in nda_gate(signed, scrolled_to_end=True)


def test_document_gate_lists_every_unmet_condition():
    document = TrainingDocument(id="d", title="D", minimum_reading_seconds=30)

    assert document_gate(None, document) == [DOCUMENT_NOT_STARTED]

    entry = DocumentProgress(document_id="d", started=True, time_spent_seconds=29)
    assert document_gate(entry, document) == [SCROLL_DOCUMENT_TO_END, MIN_READING_TIME_NOT_MET]
    assert reading_seconds_remaining(entry, document) == 1

    entry.scrolled_to_end = True
    entry.time_spent_seconds = 30
    assert document_gate(entry, document) == []


def test_documents_gate_follows_the_currently_configured_documents():
    content = build_content()
    progress = _progress(
        documents=[
            DocumentProgress(document_id="doc-rules", started=True, confirmed=True),
            DocumentProgress(document_id="doc-safety", started=True, confirmed=True),
            DocumentProgress(document_id="doc-retired", started=True, confirmed=False),
        ]
    )
    assert documents_gate(progress, content) == []

    content.documents.append(TrainingDocument(id="doc-new", title="New", minimum_reading_seconds=10))
    assert documents_gate(progress, content) == ["DOCUMENT_NOT_CONFIRMED:doc-new"]


def test_video_gate():
    assert video_gate(None) == [VIDEO_NOT_STARTED]
    assert video_gate(VideoProgress(furthest_reached=300, total_duration=300)) == [VIDEO_NOT_WATCHED_TO_END]
    assert video_gate(VideoProgress(completed=True, furthest_reached=300, total_duration=300)) == []


def test_quiz_gate_prefers_already_passed_over_exhausted():
    content = build_content(quiz_max_attempts=2)

    assert quiz_gate(_progress(), content) == []
    exhausted = _progress(quiz_attempts=[_attempt(1, False), _attempt(2, False)])
    assert quiz_gate(exhausted, content) == [NO_ATTEMPTS_REMAINING]
    assert attempts_remaining(exhausted, content) == 0

    passed_last = _progress(quiz_attempts=[_attempt(1, False), _attempt(2, True)])
    assert quiz_gate(passed_last, content) == [QUIZ_ALREADY_PASSED]
