"""Student-facing registration workflow.

Holds two live queries (the exam catalog and the student's own
registrations) and the payment confirmation step. All checks run against the
cached snapshots; the store's `add_unique` is the final guard against a
duplicate (student, exam) registration from another session.
"""
import datetime as dt
import logging
from typing import List, Optional

from domain.config import AppConfig
from domain.constants import EXAMS, REGISTRATIONS, STATUS_PAID, STATUS_PENDING
from domain.errors import DuplicateRegistrationError, RegistrationError
from domain.models import (
    Exam, Profile, Registration, RegistrationView, exam_from_dict,
    registration_from_dict,
)
from services.live import LiveQuery, SubscriptionOwner
from services.persistence import SERVER_TIMESTAMP, DocumentStore, Where

logger = logging.getLogger(__name__)

UNIQUE_REGISTRATION_KEY = ('studentId', 'examId')


def join_registrations(registrations: List[Registration], exams: List[Exam]) -> List[RegistrationView]:
    exam_map = {e.id: e for e in exams}
    return [RegistrationView(registration=r, exam=exam_map.get(r.exam_id)) for r in registrations]


class RegistrationWorkflow(SubscriptionOwner):
    def __init__(self, store: DocumentStore, config: AppConfig, profile: Profile,
                 enforce_deadlines: bool = False):
        super().__init__()
        if profile.student_id is None:
            raise RegistrationError("Only student profiles can register for exams.")
        self.store = store
        self.config = config
        self.profile = profile
        self.enforce_deadlines = enforce_deadlines
        self.payment_exam_id: Optional[str] = None
        self.exams_path = config.collection_path(EXAMS)
        self.registrations_path = config.collection_path(REGISTRATIONS)
        self._exams = self._watch(LiveQuery(store, self.exams_path, exam_from_dict))
        self._registrations = self._watch(LiveQuery(
            store, self.registrations_path, registration_from_dict,
            where=[Where('studentId', '==', profile.student_id)]))

    @property
    def student_id(self) -> str:
        return self.profile.student_id

    # --- reads ---

    def list_exams(self) -> List[Exam]:
        return self._exams.snapshot()

    def list_my_registrations(self) -> List[Registration]:
        return self._registrations.snapshot()

    def find_exam(self, exam_id: str) -> Optional[Exam]:
        return self._exams.find(lambda e: e.id == exam_id)

    def registration_for(self, exam_id: str) -> Optional[Registration]:
        return self._registrations.find(
            lambda r: r.exam_id == exam_id and r.student_id == self.student_id)

    def registrations_with_details(self) -> List[RegistrationView]:
        """Own registrations joined to the catalog; unresolved exams are dropped."""
        joined = join_registrations(self.list_my_registrations(), self.list_exams())
        return [v for v in joined if v.exam is not None]

    @property
    def load_error(self):
        return self._exams.error or self._registrations.error

    # --- actions ---

    def register(self, exam_id: str, today: Optional[dt.date] = None) -> Registration:
        if self.registration_for(exam_id) is not None:
            logger.warning("Duplicate registration blocked for %s on %s", self.student_id, exam_id)
            raise DuplicateRegistrationError(
                "You have already registered for this exam or your registration is pending/paid.")
        exam = self.find_exam(exam_id)
        if exam is None:
            raise RegistrationError("This exam is no longer available.")
        if self.enforce_deadlines and not exam.is_open(today):
            raise RegistrationError(f"Registration for {exam.name} closed on {exam.registration_deadline}.")

        data = {
            'studentId': self.student_id,
            'studentName': self.profile.name,
            'examId': exam_id,
            'status': STATUS_PENDING,
            'timestamp': SERVER_TIMESTAMP,
        }
        doc_id = self.store.add_unique(self.registrations_path, data, UNIQUE_REGISTRATION_KEY)
        if doc_id is None:
            raise DuplicateRegistrationError(
                "You have already registered for this exam or your registration is pending/paid.")
        logger.info("Student %s registered for %s (%s)", self.student_id, exam_id, doc_id)
        self.payment_exam_id = exam_id
        registration = self._registrations.find(lambda r: r.id == doc_id)
        return registration or Registration(id=doc_id, student_id=self.student_id,
                                            student_name=self.profile.name, exam_id=exam_id)

    def open_payment(self, exam_id: str):
        registration = self.registration_for(exam_id)
        if registration is None or registration.status != STATUS_PENDING:
            raise RegistrationError("No pending registration found for this exam.")
        self.payment_exam_id = exam_id

    def cancel_payment(self):
        self.payment_exam_id = None

    def confirm_payment(self, exam_id: Optional[str] = None) -> Registration:
        """Flip the pending registration for the exam to paid. No money moves."""
        exam_id = exam_id or self.payment_exam_id
        if not exam_id:
            raise RegistrationError("No exam selected for payment.")
        registration = self.registration_for(exam_id)
        if registration is None or registration.status != STATUS_PENDING:
            raise RegistrationError("No pending registration found for this exam.")
        updated = self.store.update(self.registrations_path, registration.id, {
            'status': STATUS_PAID,
            'paymentTimestamp': SERVER_TIMESTAMP,
        })
        logger.info("Payment simulated for registration %s", registration.id)
        self.payment_exam_id = None
        return registration_from_dict(updated)
