# onboarding/store.py
import threading
from typing import Dict, List, Optional

from onboarding.errors import ConcurrencyConflict, RecordAlreadyExists
from onboarding.models import OnboardingProgress


class InMemoryProgressStore:
    """
    Process-local progress records keyed by employee id.

    Every read hands out a deep copy and every write is a compare-and-set on
    `version`, so a caller holding a stale record cannot overwrite a newer one.
    """

    def __init__(self):
        self._records: Dict[str, OnboardingProgress] = {}
        self._lock = threading.Lock()

    def get(self, employee_id: str) -> Optional[OnboardingProgress]:
        with self._lock:
            record = self._records.get(employee_id)
            return record.model_copy(deep=True) if record else None

    def list(self) -> List[OnboardingProgress]:
        with self._lock:
            return [record.model_copy(deep=True) for record in self._records.values()]

    def create(self, progress: OnboardingProgress) -> OnboardingProgress:
        with self._lock:
            if progress.employee_id in self._records:
                raise RecordAlreadyExists(f"Onboarding already initialized for employee {progress.employee_id}")
            self._records[progress.employee_id] = progress.model_copy(deep=True)
            return progress

    def save(self, progress: OnboardingProgress, expected_version: int) -> OnboardingProgress:
        """Stores `progress` only if the stored version still equals `expected_version`."""
        with self._lock:
            current = self._records.get(progress.employee_id)
            stored_version = current.version if current else None
            if stored_version != expected_version:
                raise ConcurrencyConflict(
                    "Onboarding progress was modified by another session",
                    details={"expected_version": expected_version, "current_version": stored_version},
                )
            progress.version = expected_version + 1
            self._records[progress.employee_id] = progress.model_copy(deep=True)
            return progress
