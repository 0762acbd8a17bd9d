"""
Read-only administrative ledger: every registration joined to the exam
catalog. Rows whose exam was deleted stay in the ledger with the exam columns
left unresolved.
"""
import csv
import io
import logging
from typing import Any, Dict, List

import pandas as pd

from domain.config import AppConfig
from domain.constants import EXAMS, REGISTRATIONS, STATUS_PAID, STATUS_PENDING
from domain.models import LedgerSummary, RegistrationView, exam_from_dict, registration_from_dict
from services.live import LiveQuery, SubscriptionOwner
from services.persistence import DocumentStore
from services.registration import join_registrations

logger = logging.getLogger(__name__)

UNRESOLVED = 'N/A'

LEDGER_COLUMNS = ['Student Name', 'Student ID', 'Exam Name', 'Course Code',
                  'Status', 'Registration Date', 'Payment Date']


class RegistrationLedger(SubscriptionOwner):
    def __init__(self, store: DocumentStore, config: AppConfig):
        super().__init__()
        self._exams = self._watch(LiveQuery(store, config.collection_path(EXAMS), exam_from_dict))
        self._registrations = self._watch(LiveQuery(
            store, config.collection_path(REGISTRATIONS), registration_from_dict))

    def entries(self) -> List[RegistrationView]:
        regs = sorted(self._registrations.snapshot(), key=lambda r: r.timestamp or '', reverse=True)
        return join_registrations(regs, self._exams.snapshot())

    def rows(self) -> List[Dict[str, Any]]:
        rows = []
        for view in self.entries():
            reg, exam = view.registration, view.exam
            rows.append({
                'Student Name': reg.student_name,
                'Student ID': reg.student_id,
                'Exam Name': exam.name if exam else UNRESOLVED,
                'Course Code': exam.course_code if exam else UNRESOLVED,
                'Status': reg.status.upper(),
                'Registration Date': (reg.timestamp or '')[:10] or UNRESOLVED,
                'Payment Date': (reg.payment_timestamp or '')[:10],
            })
        return rows

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows(), columns=LEDGER_COLUMNS)

    def summary(self) -> LedgerSummary:
        entries = self.entries()
        summary = LedgerSummary(total_exams=len(self._exams), total_registrations=len(entries))
        for view in entries:
            reg = view.registration
            if reg.status == STATUS_PAID:
                summary.paid += 1
                if view.exam:
                    summary.fees_collected += view.exam.fee
            elif reg.status == STATUS_PENDING:
                summary.pending += 1
            if view.exam is None:
                summary.unresolved += 1
            else:
                summary.by_exam[view.exam.course_code] = summary.by_exam.get(view.exam.course_code, 0) + 1
        return summary

    def export_csv(self) -> str:
        rows = self.rows()
        if not rows:
            return ""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=LEDGER_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
        logger.info("Exported %d ledger rows", len(rows))
        return output.getvalue()
