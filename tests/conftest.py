from datetime import datetime, timedelta, timezone

import pytest

from onboarding.collaborators import AuditSink, IdentityDirectory
from onboarding.content import StaticContentProvider
from onboarding.engine import OnboardingEngine
from onboarding.models import OnboardingContent, QuizOption, QuizQuestion, TrainingDocument, VideoConfig

EMPLOYEE = "emp-1"
MANAGER = "mgr-1"
SIGNATURE = "data:image/png;base64,iVBORw0KGgo="


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class RecordingAuditSink(AuditSink):
    def __init__(self):
        self.records = []

    def record(self, action, actor, employee_id, details=None):
        self.records.append((action, actor, employee_id))
        super().record(action, actor, employee_id, details)


def build_questions():
    """Ten scorable questions plus one open-text question left for manual review."""
    questions = []
    for i in range(1, 9):
        questions.append(
            QuizQuestion(
                id=f"q{i}",
                type="multiple_choice" if i <= 6 else "true_false",
                text=f"Question {i}",
                options=[QuizOption(id="a", text="A"), QuizOption(id="b", text="B")],
                correct_answer="a",
            )
        )
    for i in (9, 10):
        questions.append(
            QuizQuestion(
                id=f"q{i}",
                type="multi_select",
                text=f"Question {i}",
                options=[QuizOption(id=o, text=o.upper()) for o in "abcd"],
                correct_answer=["a", "b"],
            )
        )
    questions.append(QuizQuestion(id="q11", type="open_text", text="Explain the evacuation route."))
    return questions


def answers_with(correct_count):
    """Answers where exactly `correct_count` of the ten scorable questions are right."""
    answers = {}
    for i in range(1, 11):
        right = i <= correct_count
        if i <= 8:
            answers[f"q{i}"] = "a" if right else "b"
        else:
            answers[f"q{i}"] = ["b", "a"] if right else ["a"]
    answers["q11"] = "Through the north exit."
    return answers


def build_content(**overrides):
    values = dict(
        nda_text="Keep company information confidential.",
        documents=[
            TrainingDocument(id="doc-rules", title="House Rules", content="...", minimum_reading_seconds=30),
            TrainingDocument(id="doc-safety", title="Safety", content="...", minimum_reading_seconds=45),
        ],
        video=VideoConfig(url="https://media.example.com/training.mp4", duration_seconds=300),
        questions=build_questions(),
        quiz_pass_threshold=80,
        quiz_max_attempts=3,
    )
    values.update(overrides)
    return OnboardingContent(**values)


class Flow:
    """Drives an employee through the steps so tests can start from any point."""

    def __init__(self, engine, employee_id=EMPLOYEE, manager_id=MANAGER):
        self.engine = engine
        self.employee = employee_id
        self.manager = manager_id

    def start(self):
        return self.engine.initialize_onboarding(self.employee, "Dana Novak", self.manager)

    def sign_nda(self):
        return self.engine.sign_nda(self.employee, self.employee, SIGNATURE, "Dana Novak", scrolled_to_end=True)

    def read_document(self, document_id, seconds):
        self.engine.start_document(self.employee, self.employee, document_id)
        self.engine.record_scroll_complete(self.employee, self.employee, document_id)
        self.engine.record_reading_time(self.employee, self.employee, document_id, seconds)
        return self.engine.confirm_document(self.employee, self.employee, document_id)

    def read_all_documents(self):
        progress = None
        for document in self.engine.content_provider.get_content().documents:
            progress = self.read_document(document.id, document.minimum_reading_seconds)
        return progress

    def watch_video(self):
        self.engine.report_video_progress(self.employee, self.employee, 150, 300)
        return self.engine.mark_video_ended(self.employee, self.employee)

    def pass_quiz(self):
        return self.engine.submit_quiz_attempt(self.employee, self.employee, answers_with(10))

    def acknowledge(self):
        return self.engine.acknowledge_notification(self.employee, self.employee)

    def to_quiz(self):
        self.start()
        self.sign_nda()
        self.read_all_documents()
        return self.watch_video()

    def to_handoff(self):
        self.to_quiz()
        self.pass_quiz()
        return self.acknowledge()

    def mark(self):
        return self.engine.manager_mark_handoff(self.employee, self.manager, SIGNATURE, "Mara Manager")

    def confirm(self):
        return self.engine.employee_confirm_handoff(self.employee, self.employee)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def content_provider():
    return StaticContentProvider(build_content())


@pytest.fixture
def identity():
    return IdentityDirectory([MANAGER])


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def engine(content_provider, identity, audit_sink, clock):
    return OnboardingEngine(
        content_provider=content_provider,
        identity=identity,
        audit_sink=audit_sink,
        clock=clock,
    )


@pytest.fixture
def flow(engine):
    return Flow(engine)
