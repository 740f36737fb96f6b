# onboarding/content.py
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Optional

from onboarding import config
from onboarding.models import OnboardingContent, PublicContent, PublicQuizQuestion

logger = logging.getLogger(__name__)


class ContentProvider(ABC):
    """Read-only source of agreement text, documents, video and quiz configuration."""

    @abstractmethod
    def get_content(self) -> OnboardingContent:
        ...


class StaticContentProvider(ContentProvider):
    """Holds content in memory. `replace` swaps it atomically, e.g. when a document is added."""

    def __init__(self, content: OnboardingContent):
        self._content = content
        self._lock = threading.Lock()

    def get_content(self) -> OnboardingContent:
        with self._lock:
            return self._content

    def replace(self, content: OnboardingContent) -> None:
        with self._lock:
            self._content = content
        logger.info(
            "Onboarding content replaced: %d documents, %d questions",
            len(content.documents),
            len(content.questions),
        )


class FileContentProvider(StaticContentProvider):
    """Loads content from a JSON file once; `reload` re-reads it."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.CONTENT_PATH
        super().__init__(load_content(self.path))

    def reload(self) -> None:
        self.replace(load_content(self.path))


def load_content(path: str) -> OnboardingContent:
    """Reads and validates the content file. Quiz settings fall back to the environment defaults."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Could not find onboarding content at {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    raw.setdefault("quiz_pass_threshold", config.QUIZ_PASS_THRESHOLD)
    raw.setdefault("quiz_max_attempts", config.QUIZ_MAX_ATTEMPTS)

    content = OnboardingContent.model_validate(raw)
    logger.info(
        "Loaded onboarding content from %s: %d documents, %d questions",
        path,
        len(content.documents),
        len(content.questions),
    )
    return content


def to_public(content: OnboardingContent) -> PublicContent:
    """Strips the answer key before content goes to the wizard."""
    return PublicContent(
        nda_text=content.nda_text,
        documents=content.documents,
        video=content.video,
        questions=[
            PublicQuizQuestion(id=q.id, type=q.type, text=q.text, options=q.options)
            for q in content.questions
        ],
        quiz_pass_threshold=content.quiz_pass_threshold,
        quiz_max_attempts=content.quiz_max_attempts,
    )
