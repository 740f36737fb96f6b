import threading

import pytest
from conftest import EMPLOYEE, MANAGER, answers_with

from onboarding.errors import ConcurrencyConflict, NotAuthorized, RecordAlreadyExists, RecordNotFound
from onboarding.models import OnboardingStep, StepStatus


def test_full_onboarding_with_one_failed_attempt(engine, flow, identity, audit_sink):
    flow.to_quiz()

    failed = engine.submit_quiz_attempt(EMPLOYEE, EMPLOYEE, answers_with(6))
    assert (failed.score, failed.passed) == (60, False)
    assert engine.attempts_remaining(EMPLOYEE, EMPLOYEE) == 2

    passed = engine.submit_quiz_attempt(EMPLOYEE, EMPLOYEE, answers_with(9))
    assert (passed.score, passed.passed) == (90, True)

    flow.acknowledge()
    flow.mark()
    flow.confirm()
    progress = engine.complete_onboarding(EMPLOYEE, EMPLOYEE)

    assert progress.is_complete
    assert progress.completed_at is not None
    assert progress.current_step == OnboardingStep.COMPLETE
    assert engine.step_statuses(EMPLOYEE, EMPLOYEE)[OnboardingStep.COMPLETE] == StepStatus.COMPLETED
    assert not identity.is_new_employee(EMPLOYEE)
    assert ("complete_onboarding", EMPLOYEE, EMPLOYEE) in audit_sink.records


def test_reset_starts_over_but_keeps_counting_versions(engine, flow, identity, clock):
    flow.to_handoff()
    flow.mark()
    flow.confirm()
    engine.complete_onboarding(EMPLOYEE, EMPLOYEE)
    before = engine.get_progress(EMPLOYEE, MANAGER)
    assert (before.quiz_best_score, before.manager_id) == (100, MANAGER)
    clock.advance(3600)

    progress = engine.reset_onboarding(EMPLOYEE, MANAGER)

    assert progress.current_step == OnboardingStep.NDA
    assert progress.quiz_attempts == []
    assert progress.quiz_best_score is None
    assert progress.manager_id is None
    assert progress.nda is None
    assert not progress.is_complete
    assert progress.version == before.version + 1
    assert progress.started_at == clock.now
    assert [e.action for e in progress.audit_log] == ["Onboarding reset by manager"]
    assert progress.audit_log[0].details == {"previous_step": "complete", "was_complete": True}
    assert identity.is_new_employee(EMPLOYEE)


def test_reset_is_restricted_to_managers(engine, flow):
    flow.start()

    with pytest.raises(NotAuthorized):
        engine.reset_onboarding(EMPLOYEE, EMPLOYEE)


def test_stale_version_is_rejected(engine, flow):
    progress = flow.start()

    flow.sign_nda()

    with pytest.raises(ConcurrencyConflict) as exc_info:
        engine.start_document(EMPLOYEE, EMPLOYEE, "doc-rules", expected_version=progress.version)
    assert exc_info.value.details["current_version"] == progress.version + 1


def test_matching_version_is_accepted(engine, flow):
    flow.start()
    progress = flow.sign_nda()

    updated = engine.start_document(EMPLOYEE, EMPLOYEE, "doc-rules", expected_version=progress.version)

    assert updated.version == progress.version + 1


def test_concurrent_reading_time_reports_are_all_counted(engine, flow):
    flow.start()
    flow.sign_nda()

    def report():
        for _ in range(20):
            engine.record_reading_time(EMPLOYEE, EMPLOYEE, "doc-rules", 1)

    threads = [threading.Thread(target=report) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert engine.get_progress(EMPLOYEE, EMPLOYEE).get_document("doc-rules").time_spent_seconds == 100


def test_initialize_twice_is_refused(engine, flow):
    flow.start()

    with pytest.raises(RecordAlreadyExists):
        flow.start()


def test_initialize_is_restricted_to_managers(engine):
    with pytest.raises(NotAuthorized):
        engine.initialize_onboarding(EMPLOYEE, "Dana Novak", EMPLOYEE)


def test_start_returns_the_existing_record(engine, flow, identity):
    created = engine.start_onboarding("emp-2", "Lee Park", "emp-2")
    assert identity.is_new_employee("emp-2")

    again = engine.start_onboarding("emp-2", "Someone Else", "emp-2")

    assert again == created
    assert again.employee_name == "Lee Park"


def test_unknown_employee_is_not_found(engine):
    with pytest.raises(RecordNotFound):
        engine.get_progress("emp-404", MANAGER)


def test_employees_only_see_their_own_record(engine, flow):
    flow.start()

    with pytest.raises(NotAuthorized):
        engine.get_progress(EMPLOYEE, "emp-2")


def test_list_progress_is_for_managers_and_filters_incomplete(engine, flow, clock):
    flow.to_handoff()
    flow.mark()
    flow.confirm()
    engine.complete_onboarding(EMPLOYEE, EMPLOYEE)
    clock.advance(60)
    engine.start_onboarding("emp-2", "Lee Park", "emp-2")

    with pytest.raises(NotAuthorized):
        engine.list_progress(EMPLOYEE)

    assert [p.employee_id for p in engine.list_progress(MANAGER)] == ["emp-2", EMPLOYEE]
    assert [p.employee_id for p in engine.list_progress(MANAGER, incomplete_only=True)] == ["emp-2"]


def test_every_mutation_reaches_the_audit_sink(engine, flow, audit_sink):
    flow.start()
    flow.sign_nda()

    actions = [action for action, _, _ in audit_sink.records]
    assert actions == ["initialize_onboarding", "sign_nda"]
    assert audit_sink.records[0][1] == MANAGER


def test_no_op_calls_are_not_audited(engine, flow, audit_sink):
    flow.start()
    flow.sign_nda()
    flow.read_document("doc-rules", 30)
    count = len(audit_sink.records)

    engine.confirm_document(EMPLOYEE, EMPLOYEE, "doc-rules")

    assert len(audit_sink.records) == count
