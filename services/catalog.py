"""Admin-facing exam catalog management.

The manager owns the exam form and its mode: create mode
(``editing_exam_id is None``) or edit mode keyed by an exam id. Deletion is a
two-step request/confirm so the view can ask the admin first.
"""
import datetime as dt
import logging
import math
from typing import List, Optional, Tuple

from domain.config import AppConfig
from domain.constants import DATE_FORMAT, EXAMS
from domain.errors import ExamValidationError
from domain.models import Exam, ExamForm, exam_from_dict
from services.live import LiveQuery, SubscriptionOwner
from services.persistence import SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)


def parse_fee(raw: str) -> float:
    """Positive finite amount; commas are thousands separators ('1,500' -> 1500.0)."""
    try:
        fee = float(str(raw).strip().replace(',', ''))
    except ValueError:
        raise ExamValidationError("Fee must be a positive number.", field='fee')
    if not math.isfinite(fee) or fee <= 0:
        raise ExamValidationError("Fee must be a positive number.", field='fee')
    return fee


def parse_deadline(raw: str) -> dt.date:
    try:
        return dt.datetime.strptime(str(raw).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ExamValidationError("Invalid registration deadline date.", field='deadline')


def format_fee_input(fee: float) -> str:
    """Fee as it is typed into the form: 1500.0 -> '1500', 1500.5 -> '1500.5'."""
    return str(int(fee)) if float(fee).is_integer() else repr(float(fee))


def validate_exam_form(form: ExamForm) -> Tuple[float, dt.date]:
    values = (form.name, form.course_code, form.description, form.fee, form.deadline)
    if not all(str(v or '').strip() for v in values):
        raise ExamValidationError("All fields are required.")
    return parse_fee(form.fee), parse_deadline(form.deadline)


def form_from_exam(exam: Exam) -> ExamForm:
    return ExamForm(
        name=exam.name,
        course_code=exam.course_code,
        description=exam.description,
        fee=format_fee_input(exam.fee),
        deadline=exam.deadline_date.strftime(DATE_FORMAT) if exam.deadline_date else '',
    )


class ExamCatalogManager(SubscriptionOwner):
    def __init__(self, store: DocumentStore, config: AppConfig):
        super().__init__()
        self.store = store
        self.config = config
        self.exams_path = config.collection_path(EXAMS)
        self.form = ExamForm()
        self.editing_exam_id: Optional[str] = None
        self.pending_delete_id: Optional[str] = None
        # bumped whenever the form is replaced so widgets re-read their values
        self.form_version = 0
        self._exams = self._watch(LiveQuery(store, self.exams_path, exam_from_dict))

    def list_exams(self) -> List[Exam]:
        return self._exams.snapshot()

    def find_exam(self, exam_id: str) -> Optional[Exam]:
        return self._exams.find(lambda e: e.id == exam_id)

    @property
    def is_editing(self) -> bool:
        return self.editing_exam_id is not None

    def _replace_form(self, form: ExamForm, editing_exam_id: Optional[str]):
        self.form = form
        self.editing_exam_id = editing_exam_id
        self.form_version += 1

    # --- form modes ---

    def begin_edit(self, exam: Exam):
        self._replace_form(form_from_exam(exam), exam.id)

    def cancel_edit(self):
        self._replace_form(ExamForm(), None)

    # --- writes ---

    def create_or_update_exam(self, form: Optional[ExamForm] = None) -> Exam:
        form = form or self.form
        self.form = form
        fee, deadline = validate_exam_form(form)
        data = {
            'name': form.name.strip(),
            'courseCode': form.course_code.strip(),
            'description': form.description.strip(),
            'fee': fee,
            'registrationDeadline': deadline.strftime(DATE_FORMAT),
            'lastUpdated': SERVER_TIMESTAMP,
        }
        if self.editing_exam_id:
            exam_id = self.editing_exam_id
            stored = self.store.update(self.exams_path, exam_id, data)
            logger.info("Updated exam %s", exam_id)
        else:
            data['createdAt'] = SERVER_TIMESTAMP
            exam_id = self.store.add(self.exams_path, data)
            stored = self.store.get(self.exams_path, exam_id) or {**data, 'id': exam_id}
            logger.info("Created exam %s (%s)", exam_id, data['courseCode'])
        self.cancel_edit()
        return exam_from_dict(stored)

    def request_delete(self, exam_id: str):
        self.pending_delete_id = exam_id

    def cancel_delete(self):
        self.pending_delete_id = None

    def confirm_delete(self) -> bool:
        """Delete the requested exam. Registrations that reference it are left as-is."""
        exam_id = self.pending_delete_id
        if exam_id is None:
            raise ExamValidationError("No exam selected for deletion.")
        self.pending_delete_id = None
        removed = self.store.delete(self.exams_path, exam_id)
        if self.editing_exam_id == exam_id:
            self.cancel_edit()
        logger.info("Deleted exam %s (found=%s)", exam_id, removed)
        return removed

    def delete_exam(self, exam_id: str, confirmed: bool = False) -> bool:
        """Request deletion; performs it only when the caller has confirmed."""
        self.request_delete(exam_id)
        if not confirmed:
            return False
        return self.confirm_delete()
