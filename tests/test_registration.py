import datetime as dt
import gc

import pytest

from domain.constants import STATUS_PAID, STATUS_PENDING
from domain.errors import DuplicateRegistrationError, RegistrationError
from domain.models import ExamForm, Profile, Student
from services.catalog import ExamCatalogManager
from services.ledger import UNRESOLVED, RegistrationLedger
from services.registration import RegistrationWorkflow
from utils.formatting import format_fee


def add_exam(store, config, **overrides):
    values = dict(name='Intro to Systems', course_code='CS101', description='Systems basics',
                  fee='1500', deadline='2025-12-01')
    values.update(overrides)
    catalog = ExamCatalogManager(store, config)
    try:
        return catalog.create_or_update_exam(ExamForm(**values))
    finally:
        catalog.close()


def registration_count(store, config):
    return len(store.query(config.collection_path('registrations')))


def test_admin_requires_student_profile(store, config, admin):
    with pytest.raises(RegistrationError):
        RegistrationWorkflow(store, config, admin)


def test_second_register_on_same_cached_view_is_rejected(store, config, student):
    exam = add_exam(store, config)
    workflow = RegistrationWorkflow(store, config, student)

    registration = workflow.register(exam.id)
    assert registration.status == STATUS_PENDING
    assert workflow.payment_exam_id == exam.id

    with pytest.raises(DuplicateRegistrationError):
        workflow.register(exam.id)
    assert registration_count(store, config) == 1


def test_register_unknown_exam_is_rejected(store, config, student):
    workflow = RegistrationWorkflow(store, config, student)
    with pytest.raises(RegistrationError, match='no longer available'):
        workflow.register('missing')
    assert registration_count(store, config) == 0


def test_deadline_enforcement_is_opt_in(store, config, student):
    exam = add_exam(store, config, deadline='2025-12-01')
    late = dt.date(2026, 1, 15)

    strict = RegistrationWorkflow(store, config, student, enforce_deadlines=True)
    with pytest.raises(RegistrationError, match='closed'):
        strict.register(exam.id, today=late)
    strict.close()

    lenient = RegistrationWorkflow(store, config, student)
    assert lenient.register(exam.id, today=late).exam_id == exam.id


def test_my_registrations_only_shows_own_records(store, config, student):
    exam = add_exam(store, config)
    other = Profile(uid='u2', name='Otieno', role=Student('S2002'))
    RegistrationWorkflow(store, config, other).register(exam.id)

    workflow = RegistrationWorkflow(store, config, student)
    assert workflow.list_my_registrations() == []
    workflow.register(exam.id)
    mine = workflow.list_my_registrations()
    assert [r.student_id for r in mine] == ['S1001']
    assert mine[0].student_name == 'Jane Wanjiru'


def test_confirm_payment_requires_pending_registration(store, config, student):
    exam = add_exam(store, config)
    workflow = RegistrationWorkflow(store, config, student)

    with pytest.raises(RegistrationError, match='No exam selected'):
        workflow.confirm_payment()
    with pytest.raises(RegistrationError, match='No pending registration'):
        workflow.confirm_payment(exam.id)

    workflow.register(exam.id)
    paid = workflow.confirm_payment()
    assert paid.status == STATUS_PAID
    assert paid.payment_timestamp
    assert workflow.payment_exam_id is None

    # paid is terminal
    with pytest.raises(RegistrationError):
        workflow.confirm_payment(exam.id)
    with pytest.raises(RegistrationError):
        workflow.open_payment(exam.id)


def test_cancel_payment_keeps_pending_registration(store, config, student):
    exam = add_exam(store, config)
    workflow = RegistrationWorkflow(store, config, student)
    workflow.register(exam.id)
    workflow.cancel_payment()
    assert workflow.payment_exam_id is None
    assert workflow.registration_for(exam.id).status == STATUS_PENDING

    workflow.open_payment(exam.id)
    assert workflow.payment_exam_id == exam.id


def test_end_to_end_scenario(store, config, student):
    exam = add_exam(store, config, name='Intro to Systems', course_code='CS101', fee='1500',
                    deadline='2025-12-01')
    workflow = RegistrationWorkflow(store, config, student)
    ledger = RegistrationLedger(store, config)

    listed = workflow.list_exams()
    assert [e.course_code for e in listed] == ['CS101']
    assert format_fee(listed[0].fee, config.currency) == 'KES 1,500'

    workflow.register(exam.id)
    mine = workflow.registrations_with_details()
    assert len(mine) == 1
    assert mine[0].registration.status == STATUS_PENDING
    assert mine[0].exam.id == exam.id

    workflow.confirm_payment(exam.id)
    paid = workflow.registrations_with_details()[0].registration
    assert paid.status == STATUS_PAID
    assert paid.payment_timestamp is not None

    catalog = ExamCatalogManager(store, config)
    catalog.delete_exam(exam.id, confirmed=True)

    # orphaned: dropped from the student's joined view
    assert workflow.registrations_with_details() == []
    assert len(workflow.list_my_registrations()) == 1
    # still in the ledger, exam unresolved
    entries = ledger.entries()
    assert len(entries) == 1
    assert entries[0].exam is None
    assert ledger.rows()[0]['Exam Name'] == UNRESOLVED


def test_concurrent_sessions_cannot_both_register(store, config, student):
    exam = add_exam(store, config)
    session_a = RegistrationWorkflow(store, config, student)
    session_b = RegistrationWorkflow(store, config, student)

    # Simulate B's cache lagging behind A's write.
    session_b._registrations.close()
    session_b._registrations._items = []

    session_a.register(exam.id)
    assert session_b.registration_for(exam.id) is None
    with pytest.raises(DuplicateRegistrationError):
        session_b.register(exam.id)
    assert registration_count(store, config) == 1


def test_close_releases_every_subscription(store, config, student):
    exams_path = config.collection_path('exams')
    regs_path = config.collection_path('registrations')
    workflow = RegistrationWorkflow(store, config, student)
    assert store.listener_count(exams_path) == 1
    assert store.listener_count(regs_path) == 1

    with workflow:
        pass
    assert workflow.closed
    assert store.listener_count(exams_path) == 0
    assert store.listener_count(regs_path) == 0

    workflow.close()  # idempotent
    assert store.listener_count(exams_path) == 0


def test_abandoned_workflow_is_unregistered_after_collection(store, config, student):
    exams_path = config.collection_path('exams')
    regs_path = config.collection_path('registrations')
    for _ in range(5):
        RegistrationWorkflow(store, config, student)
    kept = RegistrationWorkflow(store, config, student)

    gc.collect()
    assert store.listener_count(exams_path) == 1
    assert store.listener_count(regs_path) == 1

    # writes still reach the live session
    exam = add_exam(store, config)
    assert kept.find_exam(exam.id) is not None
    kept.close()
    assert store.listener_count(exams_path) == 0
