# onboarding/collaborators.py
import json
import logging
import threading
from typing import Any, Dict, Iterable, Optional, Set

from onboarding.models import utcnow

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("onboarding.audit")


class IdentityDirectory:
    """
    Stand-in for the identity/authorization system.
    It answers who is a manager and tracks the "new employee" flag that
    restricts normal system access until onboarding completes.
    """

    def __init__(self, manager_ids: Optional[Iterable[str]] = None):
        self._managers: Set[str] = set(manager_ids or [])
        self._new_employees: Set[str] = set()
        self._lock = threading.Lock()

    def is_manager(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._managers

    def add_manager(self, user_id: str) -> None:
        with self._lock:
            self._managers.add(user_id)

    def is_new_employee(self, employee_id: str) -> bool:
        with self._lock:
            return employee_id in self._new_employees

    def mark_new_employee(self, employee_id: str) -> None:
        with self._lock:
            self._new_employees.add(employee_id)
        logger.info("Employee %s flagged as new; normal access restricted", employee_id)

    def mark_onboarding_complete(self, employee_id: str) -> None:
        with self._lock:
            self._new_employees.discard(employee_id)
        logger.info("Employee %s finished onboarding; normal access unlocked", employee_id)


class AuditSink:
    """Structured, append-only audit trail of every mutating call."""

    def record(self, action: str, actor: str, employee_id: str, details: Optional[Dict[str, Any]] = None) -> None:
        payload = {
            "timestamp": utcnow().isoformat(),
            "action": action,
            "actor": actor,
            "employee_id": employee_id,
            "details": details or {},
        }
        audit_logger.info(json.dumps(payload, default=str))
